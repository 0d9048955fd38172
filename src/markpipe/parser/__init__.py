#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/parser/__init__.py
"""Scanner turning markup text into a positioned tree.

Parsing runs in two phases. The block and inline tokenizers describe the
document as a flat stream of enter/exit events; the reducer then builds
nodes from that stream, converting offsets to line/column points.

"""

from markpipe.parser.block import BlockTokenizer, Line, split_lines
from markpipe.parser.events import Event, EventSink
from markpipe.parser.inline import InlineTokenizer, SourceMap, unescape
from markpipe.parser.locator import Locator
from markpipe.parser.reducer import reduce_events
from markpipe.parser.scanner import MarkdownScanner, parse

__all__ = [
    "MarkdownScanner",
    "parse",
    "BlockTokenizer",
    "InlineTokenizer",
    "Event",
    "EventSink",
    "Line",
    "Locator",
    "SourceMap",
    "reduce_events",
    "split_lines",
    "unescape",
]
