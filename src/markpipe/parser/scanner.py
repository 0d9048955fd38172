#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/parser/scanner.py
"""Markdown scanner: text in, positioned tree out.

Examples
--------
    >>> scanner = MarkdownScanner()
    >>> tree = scanner.parse_text("# Title\\n\\nBody *text*.")
    >>> [child.kind for child in tree.children]
    ['heading', 'paragraph']

"""

from __future__ import annotations

import logging
from typing import Optional, Union

from markpipe.ast.nodes import Position, Root
from markpipe.constants import SCANNER_SOURCE
from markpipe.exceptions import ParsingError
from markpipe.options import ScannerOptions
from markpipe.parser.block import BlockTokenizer
from markpipe.parser.locator import Locator
from markpipe.parser.reducer import reduce_events
from markpipe.vfile import VFile

logger = logging.getLogger(__name__)


class MarkdownScanner:
    """Parse markup text into a tree.

    The scanner holds only its options; all per-document state lives in the
    tokenizers created for each call, so one instance may be shared freely.

    Parameters
    ----------
    options : ScannerOptions, optional
        Scanner settings

    """

    def __init__(self, options: Optional[ScannerOptions] = None):
        """Initialize the scanner."""
        self.options = options or ScannerOptions()

    def __repr__(self) -> str:
        return f"MarkdownScanner(options={self.options!r})"

    def parse(self, vfile: VFile) -> VFile:
        """Parse the text of ``vfile`` and attach the tree to it.

        Recoverable anomalies become WARNING diagnostics on the file.

        Parameters
        ----------
        vfile : VFile
            File holding the source text

        Returns
        -------
        VFile
            The same file, with ``tree`` set

        Raises
        ------
        VFileFailure
            If the input cannot be decoded

        """
        text = vfile.decode()
        locator = Locator(text)

        def report(message: str, start: int, end: int, rule_id: str) -> None:
            position = Position(locator.point(start), locator.point(max(start, end)))
            logger.debug("Scanner anomaly at %d: %s", start, message)
            vfile.message(message, position=position, rule_id=rule_id, source=SCANNER_SOURCE)

        events = BlockTokenizer(text, self.options, report).tokenize()
        vfile.tree = reduce_events(events, locator)
        logger.debug("Parsed %s into %d top-level blocks", vfile.path or "<input>", len(vfile.tree.children))
        return vfile

    def parse_text(self, text: Union[str, bytes], path: Optional[str] = None) -> Root:
        """Parse ``text`` and return the tree, discarding diagnostics."""
        vfile = self.parse(VFile(text, path=path))
        if vfile.tree is None:
            raise ParsingError("Scanner returned without a tree")
        return vfile.tree


def parse(text: Union[str, bytes], options: Optional[ScannerOptions] = None) -> Root:
    """Parse ``text`` with a throwaway scanner."""
    return MarkdownScanner(options).parse_text(text)
