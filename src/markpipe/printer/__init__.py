#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/printer/__init__.py
"""Printers converting trees back into text."""

from markpipe.printer.base import BasePrinter
from markpipe.printer.markdown import (
    DEFAULT_HANDLERS,
    ContainerFrame,
    Handler,
    InlineContext,
    MarkdownPrinter,
    PrintState,
    print_markdown,
)

__all__ = [
    "BasePrinter",
    "ContainerFrame",
    "DEFAULT_HANDLERS",
    "Handler",
    "InlineContext",
    "MarkdownPrinter",
    "PrintState",
    "print_markdown",
]
