#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/printer/base.py
"""Base class for tree printers.

A printer turns a Root back into text. Printers hold only their options;
everything that changes while printing one tree lives in a per-call state
object, so a single printer may serve concurrent runs.

"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Any, Optional, Union

from markpipe.ast.nodes import Root
from markpipe.exceptions import ConfigurationError


class BasePrinter(ABC):
    """Abstract base class for printers.

    Parameters
    ----------
    options : Any, optional
        Printer-specific options

    Examples
    --------
    Creating a custom printer:

        >>> class PlainPrinter(BasePrinter):
        ...     def print(self, tree):
        ...         return to_text(tree)

    """

    def __init__(self, options: Optional[Any] = None):
        """Initialize the printer with optional configuration."""
        self.options = options

    @abstractmethod
    def print(self, tree: Root) -> str:
        """Return the text of ``tree``.

        Raises
        ------
        PrintingError
            If the tree holds a node the printer cannot handle

        """

    def write(self, tree: Root, output: Union[str, Path, IO[str], IO[bytes]]) -> None:
        """Print ``tree`` to a file path or stream.

        Parameters
        ----------
        tree : Root
            Tree to print
        output : str, Path or file-like
            Destination; binary streams receive UTF-8 bytes

        """
        text = self.print(tree)
        if isinstance(output, (str, Path)):
            Path(output).write_text(text, encoding="utf-8")
            return
        try:
            output.write(text)  # type: ignore[arg-type]
        except TypeError:
            output.write(text.encode("utf-8"))  # type: ignore[arg-type]

    @staticmethod
    def _validate_options_type(options: Any, expected_type: type, printer_name: str) -> None:
        """Raise ``ConfigurationError`` if ``options`` is not ``expected_type`` (or None)."""
        if options is not None and not isinstance(options, expected_type):
            raise ConfigurationError(
                f"{printer_name} printer expects {expected_type.__name__}, got {type(options).__name__}",
                parameter_name="options",
                parameter_value=options,
            )
