#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/parser/block.py
"""Block tokenizer.

Splits the source into lines and recognizes block structure line by line.
Container blocks (block quotes and list items) strip their markers and
indentation from their lines and recurse; leaf blocks (headings, code,
paragraphs, thematic breaks) emit their events directly, handing inline
content to ``InlineTokenizer``.

Every ``Line`` remembers the absolute offset of its first character, so
stripping a prefix never loses the mapping back to the source.

"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from markpipe.constants import (
    RULE_HEADING_NO_SPACE,
    RULE_NESTING_LIMIT,
    RULE_UNCLOSED_FENCE,
)
from markpipe.options import ScannerOptions
from markpipe.parser.events import Event, EventSink
from markpipe.parser.inline import InlineTokenizer, Reporter, SourceMap

logger = logging.getLogger(__name__)

_ATX_RE = re.compile(r"(#{1,6})(?=[ \t]|$)")
_ATX_NO_SPACE_RE = re.compile(r"#{1,6}[^#\s]")
_ATX_CLOSING_RE = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_FENCE_RE = re.compile(r"(`{3,}|~{3,})(.*)$")
_THEMATIC_RE = re.compile(r"([-*_])(?:[ \t]*\1){2,}[ \t]*$")
_SETEXT_RE = re.compile(r"(=+|-+)[ \t]*$")
_BULLET_RE = re.compile(r"([-+*])(?=[ \t]|$)")
_ORDERED_RE = re.compile(r"(\d{1,9})([.)])(?=[ \t]|$)")
_TASK_RE = re.compile(r"\[([ xX])\][ \t]+(?=\S)")
_FRONT_MATTER_OPEN_RE = re.compile(r"---[ \t]*$")
_FRONT_MATTER_CLOSE_RE = re.compile(r"(?:---|\.\.\.)[ \t]*$")


@dataclass(frozen=True)
class Line:
    """Content of one source line inside its current container.

    Parameters
    ----------
    text : str
        Line content without the line ending and without container prefixes
    offset : int
        Absolute source offset of ``text[0]``

    """

    text: str
    offset: int

    @property
    def end(self) -> int:
        """Absolute offset just past the line content."""
        return self.offset + len(self.text)

    @property
    def is_blank(self) -> bool:
        """True if the line holds only whitespace."""
        return not self.text.strip()


@dataclass(frozen=True)
class _ListMarker:
    ordered: bool
    symbol: str
    number: Optional[int]
    start: int
    end: int
    content_indent: int
    content: Line

    def continues(self, other: _ListMarker) -> bool:
        return self.ordered == other.ordered and self.symbol == other.symbol


def split_lines(text: str) -> list[Line]:
    """Split ``text`` into lines, dropping the empty tail after a final newline."""
    lines = []
    offset = 0
    for raw in text.split("\n"):
        content = raw[:-1] if raw.endswith("\r") else raw
        lines.append(Line(content, offset))
        offset += len(raw) + 1
    if lines and not lines[-1].text and text.endswith("\n"):
        lines.pop()
    if len(lines) == 1 and not text:
        return []
    return lines


class BlockTokenizer:
    """Tokenize a whole document into block and inline events.

    Parameters
    ----------
    text : str
        Decoded source text
    options : ScannerOptions
        Scanner settings
    report : callable
        Called as ``report(message, start, end, rule_id)`` for recoverable
        anomalies

    """

    def __init__(self, text: str, options: ScannerOptions, report: Reporter):
        """Initialize the tokenizer for one document."""
        self.text = text
        self.options = options
        self.report = report
        self.inline = InlineTokenizer(report)

    def tokenize(self) -> list[Event]:
        """Return the full, balanced event stream of the document."""
        sink = EventSink()
        lines = split_lines(self.text)
        sink.enter("root", 0)

        start = 0
        if self.options.front_matter:
            start = self._front_matter(lines, sink)

        events, _ = self._blocks(lines[start:], depth=0, in_list_item=False)
        sink.extend(events)
        sink.exit("root", len(self.text))
        logger.debug("Tokenized %d lines into %d events", len(lines), len(sink))
        return sink.events

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _indent(self, text: str) -> int:
        width = 0
        for char in text:
            if char == " ":
                width += 1
            elif char == "\t":
                width += self.options.tab_size - width % self.options.tab_size
            else:
                break
        return width

    def _strip_columns(self, line: Line, columns: int) -> Line:
        width = 0
        index = 0
        while index < len(line.text) and width < columns:
            char = line.text[index]
            if char == " ":
                width += 1
            elif char == "\t":
                width += self.options.tab_size - width % self.options.tab_size
            else:
                break
            index += 1
        return Line(line.text[index:], line.offset + index)

    @staticmethod
    def _lstrip(line: Line) -> Line:
        stripped = line.text.lstrip()
        return Line(stripped, line.offset + len(line.text) - len(stripped))

    def _list_marker(self, line: Line) -> Optional[_ListMarker]:
        indent = self._indent(line.text)
        if indent >= 4:
            return None
        body = self._lstrip(line)
        if _THEMATIC_RE.match(body.text):
            return None
        bullet = _BULLET_RE.match(body.text)
        ordered = None if bullet else _ORDERED_RE.match(body.text)
        match = bullet or ordered
        if match is None:
            return None

        marker_end = body.offset + match.end()
        rest = Line(body.text[match.end() :], marker_end)
        spaces = self._indent(rest.text)
        marker_width = indent + match.end()
        if rest.is_blank:
            content_indent = marker_width + 1
            content = Line("", rest.end)
        elif spaces > 4:
            content_indent = marker_width + 1
            content = self._strip_columns(rest, 1)
        else:
            content_indent = marker_width + spaces
            content = self._strip_columns(rest, spaces)

        if bullet:
            return _ListMarker(False, bullet.group(1), None, body.offset, marker_end, content_indent, content)
        assert ordered is not None
        return _ListMarker(
            True, ordered.group(2), int(ordered.group(1)), body.offset, marker_end, content_indent, content
        )

    def _interrupts_paragraph(self, line: Line, in_list_item: bool, containers: bool) -> bool:
        if self._indent(line.text) >= 4:
            return False
        body = self._lstrip(line).text
        if _ATX_RE.match(body) or _THEMATIC_RE.match(body):
            return True
        fence = _FENCE_RE.match(body)
        if fence and not (fence.group(1)[0] == "`" and "`" in fence.group(2)):
            return True
        if not containers:
            return False
        if body.startswith(">"):
            return True
        marker = self._list_marker(line)
        if marker is None:
            return False
        if in_list_item:
            return True
        return not marker.content.is_blank and (not marker.ordered or marker.number == 1)

    # ------------------------------------------------------------------
    # Block dispatch
    # ------------------------------------------------------------------

    def _blocks(self, lines: list[Line], depth: int, in_list_item: bool) -> tuple[list[Event], list[tuple[int, int]]]:
        """Tokenize ``lines`` as a sequence of blocks.

        Returns the events and the ``(first, last)`` line index span of each
        top-level block, which list items use to detect blank-line gaps.

        """
        sink = EventSink()
        spans: list[tuple[int, int]] = []
        containers = depth < self.options.max_nesting
        index = 0
        while index < len(lines):
            line = lines[index]
            if line.is_blank:
                index += 1
                continue

            indent = self._indent(line.text)
            body = self._lstrip(line)
            if indent >= 4:
                end = self._indented_code(lines, index, sink)
            elif _FENCE_RE.match(body.text) and not self._is_backtick_info_invalid(body.text):
                end = self._fenced_code(lines, index, sink)
            elif _ATX_RE.match(body.text):
                end = self._atx_heading(body, sink, index)
            elif _THEMATIC_RE.match(body.text):
                sink.void("thematic_break", body.offset, body.offset + len(body.text.rstrip()))
                end = index + 1
            elif body.text.startswith(">") and containers:
                end = self._block_quote(lines, index, sink, depth)
            elif containers and self._list_marker(line) is not None:
                end = self._list(lines, index, sink, depth)
            else:
                if not containers and (body.text.startswith(">") or self._list_marker(line) is not None):
                    self.report(
                        f"Containers nested deeper than {self.options.max_nesting} levels are read as text",
                        body.offset,
                        body.end,
                        RULE_NESTING_LIMIT,
                    )
                if _ATX_NO_SPACE_RE.match(body.text):
                    self.report(
                        "Heading marker must be followed by a space; read as text",
                        body.offset,
                        body.end,
                        RULE_HEADING_NO_SPACE,
                    )
                end = self._paragraph(lines, index, sink, in_list_item, containers)
            spans.append((index, end - 1))
            index = end
        return sink.events, spans

    @staticmethod
    def _is_backtick_info_invalid(body: str) -> bool:
        match = _FENCE_RE.match(body)
        return bool(match and match.group(1)[0] == "`" and "`" in match.group(2))

    # ------------------------------------------------------------------
    # Leaf blocks
    # ------------------------------------------------------------------

    def _front_matter(self, lines: list[Line], sink: EventSink) -> int:
        if not lines or not _FRONT_MATTER_OPEN_RE.match(lines[0].text):
            return 0
        for index in range(1, len(lines)):
            if _FRONT_MATTER_CLOSE_RE.match(lines[index].text):
                value = "\n".join(line.text for line in lines[1:index])
                sink.literal("front_matter", lines[0].offset, lines[index].end, value)
                return index + 1
        return 0

    def _atx_heading(self, body: Line, sink: EventSink, index: int) -> int:
        match = _ATX_RE.match(body.text)
        assert match is not None
        depth = len(match.group(1))
        content = self._lstrip(Line(body.text[match.end() :], body.offset + match.end()))
        closing = _ATX_CLOSING_RE.search(content.text)
        text = content.text[: closing.start()] if closing else content.text.rstrip()

        source_map = SourceMap()
        source_map.add(text, content.offset)
        sink.enter("heading", body.offset, depth=depth)
        self.inline.tokenize(source_map, sink)
        sink.exit("heading", body.offset + len(body.text.rstrip()))
        return index + 1

    def _fenced_code(self, lines: list[Line], index: int, sink: EventSink) -> int:
        opening = lines[index]
        fence_indent = self._indent(opening.text)
        body = self._lstrip(opening)
        match = _FENCE_RE.match(body.text)
        assert match is not None
        fence = match.group(1)
        info = match.group(2).strip()
        lang, _, meta = info.partition(" ")
        closing_re = re.compile(re.escape(fence[0]) + "{" + str(len(fence)) + r",}[ \t]*$")

        content: list[str] = []
        cursor = index + 1
        closed = False
        while cursor < len(lines):
            line = lines[cursor]
            if self._indent(line.text) < 4 and closing_re.match(self._lstrip(line).text):
                closed = True
                break
            content.append(self._strip_columns(line, fence_indent).text)
            cursor += 1

        if closed:
            end_offset = lines[cursor].offset + len(lines[cursor].text.rstrip())
            next_index = cursor + 1
        else:
            last_content = next(line for line in reversed(lines[index:cursor]) if not line.is_blank)
            end_offset = last_content.offset + len(last_content.text.rstrip())
            next_index = cursor
            self.report(
                f"Code fence {fence!r} is never closed; it runs to the end of its container",
                body.offset,
                body.offset + len(fence),
                RULE_UNCLOSED_FENCE,
            )

        sink.literal(
            "code_block",
            body.offset,
            end_offset,
            "\n".join(content),
            lang=lang or None,
            meta=meta.strip() or None,
        )
        return next_index

    def _indented_code(self, lines: list[Line], index: int, sink: EventSink) -> int:
        cursor = index
        last = index
        while cursor < len(lines):
            line = lines[cursor]
            if line.is_blank:
                cursor += 1
                continue
            if self._indent(line.text) < 4:
                break
            last = cursor
            cursor += 1

        content = [self._strip_columns(line, 4).text for line in lines[index : last + 1]]
        first = self._strip_columns(lines[index], 4)
        end = lines[last].offset + len(lines[last].text.rstrip())
        sink.literal("code_block", first.offset, end, "\n".join(content), lang=None, meta=None)
        return last + 1

    def _paragraph(
        self, lines: list[Line], index: int, sink: EventSink, in_list_item: bool, containers: bool
    ) -> int:
        collected = [self._lstrip(lines[index])]
        cursor = index + 1
        setext_depth = 0
        underline: Optional[Line] = None
        while cursor < len(lines):
            line = lines[cursor]
            if line.is_blank:
                break
            body = self._lstrip(line)
            if self._indent(line.text) < 4 and _SETEXT_RE.match(body.text):
                setext_depth = 1 if body.text[0] == "=" else 2
                underline = body
                cursor += 1
                break
            if self._interrupts_paragraph(line, in_list_item, containers):
                break
            collected.append(body)
            cursor += 1

        last = collected[-1]
        collected[-1] = Line(last.text.rstrip(), last.offset)
        source_map = SourceMap()
        for line in collected:
            source_map.add(line.text, line.offset)

        kind = "heading" if setext_depth else "paragraph"
        attributes = {"depth": setext_depth} if setext_depth else {}
        end = underline.offset + len(underline.text.rstrip()) if underline else collected[-1].end
        sink.enter(kind, collected[0].offset, **attributes)
        self.inline.tokenize(source_map, sink)
        sink.exit(kind, end)
        return cursor

    # ------------------------------------------------------------------
    # Container blocks
    # ------------------------------------------------------------------

    def _block_quote(self, lines: list[Line], index: int, sink: EventSink, depth: int) -> int:
        inner: list[Line] = []
        cursor = index
        while cursor < len(lines):
            line = lines[cursor]
            if line.is_blank or self._indent(line.text) >= 4:
                break
            body = self._lstrip(line)
            if not body.text.startswith(">"):
                break
            rest = Line(body.text[1:], body.offset + 1)
            if rest.text[:1] in (" ", "\t"):
                rest = Line(rest.text[1:], rest.offset + 1)
            inner.append(rest)
            cursor += 1

        events, _ = self._blocks(inner, depth + 1, in_list_item=False)
        start = self._lstrip(lines[index]).offset
        sink.enter("block_quote", start)
        sink.extend(events)
        sink.exit("block_quote", lines[cursor - 1].offset + len(lines[cursor - 1].text.rstrip()))
        return cursor

    def _list(self, lines: list[Line], index: int, sink: EventSink, depth: int) -> int:
        first_marker = self._list_marker(lines[index])
        assert first_marker is not None
        items: list[tuple[list[Event], int, int]] = []
        spread = False
        cursor = index
        marker: Optional[_ListMarker] = first_marker

        while marker is not None:
            item_events, item_end, next_cursor, item_spread, trailing_blank = self._list_item(
                lines, cursor, marker, depth
            )
            items.append((item_events, marker.start, item_end))
            spread = spread or item_spread
            cursor = next_cursor
            if cursor >= len(lines):
                break
            following = self._list_marker(lines[cursor])
            if following is None or not following.continues(first_marker):
                break
            spread = spread or trailing_blank
            marker = following

        attributes = {"ordered": first_marker.ordered, "start": first_marker.number, "spread": spread}
        sink.enter("list", first_marker.start, **attributes)
        for item_events, _, _ in items:
            sink.extend(item_events)
        sink.exit("list", items[-1][2])

        # Trailing blank lines after the list belong to no block
        return cursor

    def _list_item(
        self, lines: list[Line], index: int, marker: _ListMarker, depth: int
    ) -> tuple[list[Event], int, int, bool, bool]:
        """Tokenize one list item.

        Returns ``(events, end_offset, next_index, spread, trailing_blank)``.

        """
        content = marker.content
        checked: Optional[bool] = None
        task = _TASK_RE.match(content.text)
        if task:
            checked = task.group(1) != " "
            content = Line(content.text[task.end() :], content.offset + task.end())

        inner = [content]
        cursor = index + 1
        open_fence: Optional[str] = self._fence_opened(content.text, None)
        while cursor < len(lines):
            line = lines[cursor]
            if line.is_blank:
                inner.append(self._strip_columns(line, marker.content_indent))
                cursor += 1
                continue
            if self._indent(line.text) >= marker.content_indent:
                stripped = self._strip_columns(line, marker.content_indent)
            elif self._is_lazy_line(line, inner, open_fence):
                stripped = self._lstrip(line)
            else:
                break
            inner.append(stripped)
            open_fence = self._fence_opened(stripped.text, open_fence)
            cursor += 1

        trailing_blank = False
        while len(inner) > 1 and inner[-1].is_blank:
            inner.pop()
            trailing_blank = True

        events, spans = self._blocks(inner, depth + 1, in_list_item=True)
        spread = any(
            any(inner[gap].is_blank for gap in range(previous[1] + 1, current[0]))
            for previous, current in zip(spans, spans[1:])
        )

        # An empty item ends at its marker
        last = inner[-1]
        end = marker.end if last.is_blank else max(marker.end, last.offset + len(last.text.rstrip()))
        item_events = [Event("enter", "list_item", marker.start, {"spread": spread, "checked": checked})]
        item_events.extend(events)
        item_events.append(Event("exit", "list_item", end))
        return item_events, end, cursor, spread, trailing_blank

    def _is_lazy_line(self, line: Line, inner: list[Line], open_fence: Optional[str]) -> bool:
        if open_fence is not None or not inner or inner[-1].is_blank:
            return False
        previous = self._lstrip(inner[-1]).text
        if _ATX_RE.match(previous) or _THEMATIC_RE.match(previous) or _SETEXT_RE.match(previous):
            return False
        if self._interrupts_paragraph(line, in_list_item=True, containers=True):
            return False
        return not _SETEXT_RE.match(self._lstrip(line).text)

    def _fence_opened(self, text: str, open_fence: Optional[str]) -> Optional[str]:
        body = text.lstrip()
        match = _FENCE_RE.match(body)
        if open_fence is None:
            if match and not self._is_backtick_info_invalid(body):
                return match.group(1)
            return None
        if match and match.group(1)[0] == open_fence[0] and len(match.group(1)) >= len(open_fence):
            if not match.group(2).strip():
                return None
        return open_fence
