#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/parser/locator.py
"""Offset to line/column conversion for source text."""

from __future__ import annotations

import bisect

from markpipe.ast.nodes import Point


class Locator:
    """Convert 0-based offsets into ``Point`` objects for one source text.

    Lines are split on ``\\n``; a ``\\r`` before it belongs to the line.

    Parameters
    ----------
    text : str
        The complete source text

    """

    def __init__(self, text: str):
        """Index the line starts of ``text``."""
        self.length = len(text)
        self._line_starts = [0]
        index = text.find("\n")
        while index != -1:
            self._line_starts.append(index + 1)
            index = text.find("\n", index + 1)

    def point(self, offset: int) -> Point:
        """Return the point for ``offset`` (clamped to the text bounds)."""
        offset = max(0, min(offset, self.length))
        line_index = bisect.bisect_right(self._line_starts, offset) - 1
        return Point(line=line_index + 1, column=offset - self._line_starts[line_index] + 1, offset=offset)

    def offset(self, line: int, column: int) -> int:
        """Return the offset of a 1-based ``line`` and ``column``."""
        if not 1 <= line <= len(self._line_starts):
            raise ValueError(f"Line {line} is out of range")
        return min(self._line_starts[line - 1] + column - 1, self.length)
