#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/parser/inline.py
"""Inline tokenizer.

Turns the text content of a paragraph or heading into inline events. The
content is first split into a flat list of pieces (text, delimiter runs,
bracket openers and finished constructs); links are resolved when their
closing bracket is seen and emphasis is resolved with a delimiter stack,
following the CommonMark algorithm for the supported subset. Pieces that
never pair up fall back to plain text.

Offsets inside the content string are mapped back to the source with a
``SourceMap`` because block prefixes and indentation are removed before
inline scanning.

"""

from __future__ import annotations

import bisect
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from markpipe.constants import (
    ESCAPABLE_CHARS,
    RULE_UNCLOSED_INLINE_CODE,
    RULE_UNCLOSED_LINK,
    RULE_UNMATCHED_DELIMITER,
)
from markpipe.parser.events import EventSink

# (message, start offset, end offset, rule id)
Reporter = Callable[[str, int, int, str], None]

_PLAIN_RE = re.compile(r"[^\\`*_!\[\]<\n ]+")
_URI_AUTOLINK_RE = re.compile(r"<([A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>\x00-\x1f]*)>")
_EMAIL_AUTOLINK_RE = re.compile(
    r"<([A-Za-z0-9.!#$%&'*+/=?^_`{|}~\-]+@[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9\-]{0,61}[A-Za-z0-9])?)*)>"
)
_ESCAPE_RE = re.compile(r"\\([" + re.escape(ESCAPABLE_CHARS) + r"])")


class SourceMap:
    """Map indices of assembled inline content back to source offsets.

    Content is built from line segments joined with ``\\n``; each newline
    maps to the end of the line it terminates.

    """

    def __init__(self) -> None:
        """Create an empty map."""
        self._starts: list[int] = []
        self._offsets: list[int] = []
        self._parts: list[str] = []
        self.length = 0

    def add(self, text: str, offset: int) -> None:
        """Append one line segment that starts at source ``offset``."""
        if self._starts:
            self._parts.append("\n")
            self.length += 1
        self._starts.append(self.length)
        self._offsets.append(offset)
        self._parts.append(text)
        self.length += len(text)

    @property
    def text(self) -> str:
        """The assembled content."""
        return "".join(self._parts)

    def to_source(self, index: int) -> int:
        """Return the source offset of content index ``index``."""
        segment = max(0, bisect.bisect_right(self._starts, index) - 1)
        return self._offsets[segment] + (index - self._starts[segment])


def unescape(text: str) -> str:
    """Remove backslashes in front of escapable punctuation."""
    return _ESCAPE_RE.sub(r"\1", text)


def _is_punctuation(char: str) -> bool:
    return unicodedata.category(char)[0] in ("P", "S")


def _is_whitespace(char: str) -> bool:
    return char.isspace()


# ============================================================================
# Pieces
# ============================================================================


@dataclass(eq=False)
class _TextPiece:
    start: int
    end: int
    value: str


@dataclass(eq=False)
class _DelimiterRun:
    char: str
    count: int
    original_count: int
    start: int
    end: int
    can_open: bool
    can_close: bool

    @property
    def value(self) -> str:
        return self.char * self.count


@dataclass(eq=False)
class _BracketOpener:
    start: int
    end: int
    image: bool
    active: bool = True

    @property
    def value(self) -> str:
        return "![" if self.image else "["


@dataclass(eq=False)
class _NodePiece:
    kind: str
    start: int
    end: int
    attributes: dict[str, Any] = field(default_factory=dict)
    children: list[_Piece] = field(default_factory=list)
    value: Optional[str] = None


_Piece = Union[_TextPiece, _DelimiterRun, _BracketOpener, _NodePiece]


@dataclass(frozen=True)
class _LinkTail:
    destination: str
    title: Optional[str]
    end: int


# ============================================================================
# Tokenizer
# ============================================================================


class InlineTokenizer:
    """Tokenize inline content into events.

    Parameters
    ----------
    report : callable
        Called as ``report(message, start, end, rule_id)`` with source
        offsets for every recoverable anomaly

    """

    def __init__(self, report: Reporter):
        """Initialize the tokenizer."""
        self.report = report

    def tokenize(self, source_map: SourceMap, sink: EventSink) -> None:
        """Emit inline events for the content held by ``source_map``."""
        text = source_map.text
        if not text:
            return
        pieces = self._scan(text, source_map)
        self._process_emphasis(pieces)
        self._emit(pieces, sink, source_map)

    # ------------------------------------------------------------------
    # Phase 1: split into pieces
    # ------------------------------------------------------------------

    def _scan(self, text: str, source_map: SourceMap) -> list[_Piece]:
        pieces: list[_Piece] = []
        length = len(text)
        index = 0
        while index < length:
            char = text[index]
            plain = _PLAIN_RE.match(text, index)
            if plain:
                pieces.append(_TextPiece(index, plain.end(), plain.group()))
                index = plain.end()
            elif char == "\\":
                index = self._scan_escape(text, index, pieces)
            elif char == " ":
                index = self._scan_spaces(text, index, pieces)
            elif char == "\n":
                pieces.append(_TextPiece(index, index + 1, "\n"))
                index += 1
            elif char == "`":
                index = self._scan_code_span(text, index, pieces, source_map)
            elif char in "*_":
                index = self._scan_delimiter_run(text, index, pieces)
            elif char == "!":
                if index + 1 < length and text[index + 1] == "[":
                    pieces.append(_BracketOpener(index, index + 2, image=True))
                    index += 2
                else:
                    pieces.append(_TextPiece(index, index + 1, "!"))
                    index += 1
            elif char == "[":
                pieces.append(_BracketOpener(index, index + 1, image=False))
                index += 1
            elif char == "]":
                index = self._scan_close_bracket(text, index, pieces, source_map)
            else:  # "<"
                index = self._scan_autolink(text, index, pieces)
        return pieces

    @staticmethod
    def _scan_escape(text: str, index: int, pieces: list[_Piece]) -> int:
        following = text[index + 1] if index + 1 < len(text) else ""
        if following and following in ESCAPABLE_CHARS:
            pieces.append(_TextPiece(index, index + 2, following))
            return index + 2
        if following == "\n":
            pieces.append(_NodePiece("break", index, index + 2))
            return index + 2
        pieces.append(_TextPiece(index, index + 1, "\\"))
        return index + 1

    @staticmethod
    def _scan_spaces(text: str, index: int, pieces: list[_Piece]) -> int:
        end = index
        while end < len(text) and text[end] == " ":
            end += 1
        if end < len(text) and text[end] == "\n":
            # Spaces before a line ending never reach the tree
            if end - index >= 2:
                pieces.append(_NodePiece("break", index, end + 1))
            else:
                pieces.append(_TextPiece(index, end + 1, "\n"))
            return end + 1
        pieces.append(_TextPiece(index, end, text[index:end]))
        return end

    def _scan_code_span(self, text: str, index: int, pieces: list[_Piece], source_map: SourceMap) -> int:
        run_end = index
        while run_end < len(text) and text[run_end] == "`":
            run_end += 1
        size = run_end - index

        search = run_end
        while True:
            found = text.find("`" * size, search)
            if found == -1:
                break
            closing_end = found + size
            while closing_end < len(text) and text[closing_end] == "`":
                closing_end += 1
            if closing_end - found == size:
                value = text[run_end:found].replace("\n", " ")
                if len(value) >= 2 and value[0] == " " and value[-1] == " " and value.strip(" "):
                    value = value[1:-1]
                pieces.append(_NodePiece("inline_code", index, closing_end, value=value))
                return closing_end
            search = closing_end

        self.report(
            "Code span is never closed",
            source_map.to_source(index),
            source_map.to_source(run_end),
            RULE_UNCLOSED_INLINE_CODE,
        )
        pieces.append(_TextPiece(index, run_end, text[index:run_end]))
        return run_end

    @staticmethod
    def _scan_delimiter_run(text: str, index: int, pieces: list[_Piece]) -> int:
        char = text[index]
        end = index
        while end < len(text) and text[end] == char:
            end += 1

        before = text[index - 1] if index > 0 else " "
        after = text[end] if end < len(text) else " "
        left_flanking = not _is_whitespace(after) and (
            not _is_punctuation(after) or _is_whitespace(before) or _is_punctuation(before)
        )
        right_flanking = not _is_whitespace(before) and (
            not _is_punctuation(before) or _is_whitespace(after) or _is_punctuation(after)
        )
        if char == "*":
            can_open, can_close = left_flanking, right_flanking
        else:
            can_open = left_flanking and (not right_flanking or _is_punctuation(before))
            can_close = right_flanking and (not left_flanking or _is_punctuation(after))

        count = end - index
        pieces.append(_DelimiterRun(char, count, count, index, end, can_open, can_close))
        return end

    @staticmethod
    def _scan_autolink(text: str, index: int, pieces: list[_Piece]) -> int:
        match = _URI_AUTOLINK_RE.match(text, index)
        destination = None
        if match:
            destination = match.group(1)
        else:
            match = _EMAIL_AUTOLINK_RE.match(text, index)
            if match:
                destination = f"mailto:{match.group(1)}"
        if match is None or destination is None:
            pieces.append(_TextPiece(index, index + 1, "<"))
            return index + 1
        label = match.group(1)
        child = _TextPiece(index + 1, match.end() - 1, label)
        pieces.append(
            _NodePiece("link", index, match.end(), attributes={"destination": destination, "title": None}, children=[child])
        )
        return match.end()

    def _scan_close_bracket(self, text: str, index: int, pieces: list[_Piece], source_map: SourceMap) -> int:
        opener_index = None
        for position in range(len(pieces) - 1, -1, -1):
            if isinstance(pieces[position], _BracketOpener):
                opener_index = position
                break

        if opener_index is None:
            pieces.append(_TextPiece(index, index + 1, "]"))
            return index + 1

        opener = pieces[opener_index]
        assert isinstance(opener, _BracketOpener)
        tail = self._parse_link_tail(text, index + 1) if opener.active else None
        if tail is None:
            if opener.active and index + 1 < len(text) and text[index + 1] == "(" and text.find(")", index + 1) == -1:
                self.report(
                    "Link destination is never closed",
                    source_map.to_source(opener.start),
                    source_map.to_source(len(text)),
                    RULE_UNCLOSED_LINK,
                )
            pieces[opener_index] = _TextPiece(opener.start, opener.end, opener.value)
            pieces.append(_TextPiece(index, index + 1, "]"))
            return index + 1

        children = pieces[opener_index + 1 :]
        self._process_emphasis(children)
        if opener.image:
            node = _NodePiece(
                "image",
                opener.start,
                tail.end,
                attributes={"destination": tail.destination, "alt": _plain_text(children), "title": tail.title},
            )
        else:
            node = _NodePiece(
                "link",
                opener.start,
                tail.end,
                attributes={"destination": tail.destination, "title": tail.title},
                children=children,
            )
            # Links may not contain other links
            for piece in pieces[:opener_index]:
                if isinstance(piece, _BracketOpener) and not piece.image:
                    piece.active = False
        pieces[opener_index:] = [node]
        return tail.end

    @staticmethod
    def _parse_link_tail(text: str, index: int) -> Optional[_LinkTail]:
        length = len(text)
        if index >= length or text[index] != "(":
            return None
        position = index + 1
        while position < length and text[position] in " \t\n":
            position += 1

        # Destination
        if position < length and text[position] == "<":
            cursor = position + 1
            while cursor < length and text[cursor] not in "<>\n":
                cursor += 2 if text[cursor] == "\\" and cursor + 1 < length else 1
            if cursor >= length or text[cursor] != ">":
                return None
            destination = unescape(text[position + 1 : cursor])
            position = cursor + 1
        else:
            cursor = position
            depth = 0
            while cursor < length:
                char = text[cursor]
                if char == "\\" and cursor + 1 < length and text[cursor + 1] in ESCAPABLE_CHARS:
                    cursor += 2
                    continue
                if char.isspace() or ord(char) < 0x20:
                    break
                if char == "(":
                    depth += 1
                elif char == ")":
                    if depth == 0:
                        break
                    depth -= 1
                cursor += 1
            if depth:
                return None
            destination = unescape(text[position:cursor])
            position = cursor

        # Optional title, separated by whitespace
        title = None
        separated = position < length and text[position] in " \t\n"
        while position < length and text[position] in " \t\n":
            position += 1
        if separated and position < length and text[position] in "\"'(":
            closer = ")" if text[position] == "(" else text[position]
            cursor = position + 1
            while cursor < length and text[cursor] != closer:
                cursor += 2 if text[cursor] == "\\" and cursor + 1 < length else 1
            if cursor >= length:
                return None
            title = unescape(text[position + 1 : cursor])
            position = cursor + 1
            while position < length and text[position] in " \t\n":
                position += 1

        if position >= length or text[position] != ")":
            return None
        return _LinkTail(destination, title, position + 1)

    # ------------------------------------------------------------------
    # Phase 2: resolve emphasis
    # ------------------------------------------------------------------

    @staticmethod
    def _process_emphasis(pieces: list[_Piece]) -> None:
        index = 0
        while index < len(pieces):
            closer = pieces[index]
            if not (isinstance(closer, _DelimiterRun) and closer.can_close and closer.count):
                index += 1
                continue

            opener_index = None
            for candidate_index in range(index - 1, -1, -1):
                candidate = pieces[candidate_index]
                if not (
                    isinstance(candidate, _DelimiterRun)
                    and candidate.char == closer.char
                    and candidate.can_open
                    and candidate.count
                ):
                    continue
                # Rule of three
                if (
                    (candidate.can_close or closer.can_open)
                    and (candidate.original_count + closer.original_count) % 3 == 0
                    and not (candidate.original_count % 3 == 0 and closer.original_count % 3 == 0)
                ):
                    continue
                opener_index = candidate_index
                break

            if opener_index is None:
                index += 1
                continue

            opener = pieces[opener_index]
            assert isinstance(opener, _DelimiterRun)
            used = 2 if opener.count >= 2 and closer.count >= 2 else 1
            opener.count -= used
            opener.end -= used
            closer.count -= used
            closer.start += used

            node = _NodePiece(
                "strong" if used == 2 else "emphasis",
                opener.end,
                closer.start,
                children=pieces[opener_index + 1 : index],
            )
            pieces[opener_index + 1 : index] = [node]
            index = opener_index + 2
            if opener.count == 0:
                del pieces[opener_index]
                index -= 1
            if closer.count == 0:
                del pieces[index]

    # ------------------------------------------------------------------
    # Phase 3: emit events
    # ------------------------------------------------------------------

    def _emit(self, pieces: list[_Piece], sink: EventSink, source_map: SourceMap) -> None:
        pending: list[_Piece] = []

        def flush() -> None:
            if pending:
                value = "".join(piece.value for piece in pending)  # type: ignore[union-attr]
                sink.literal(
                    "text",
                    source_map.to_source(pending[0].start),
                    source_map.to_source(pending[-1].end),
                    value,
                )
                pending.clear()

        for piece in pieces:
            if isinstance(piece, _NodePiece):
                flush()
                self._emit_node(piece, sink, source_map)
                continue
            if isinstance(piece, _DelimiterRun) and piece.count and (piece.can_open or piece.can_close):
                self.report(
                    f"Unmatched emphasis delimiter {piece.value!r}",
                    source_map.to_source(piece.start),
                    source_map.to_source(piece.end),
                    RULE_UNMATCHED_DELIMITER,
                )
            if isinstance(piece, _DelimiterRun) and not piece.count:
                continue
            pending.append(piece)
        flush()

    def _emit_node(self, piece: _NodePiece, sink: EventSink, source_map: SourceMap) -> None:
        start = source_map.to_source(piece.start)
        end = source_map.to_source(piece.end)
        if piece.value is not None:
            sink.literal(piece.kind, start, end, piece.value, **piece.attributes)
            return
        sink.enter(piece.kind, start, **piece.attributes)
        self._emit(piece.children, sink, source_map)
        sink.exit(piece.kind, end)


def _plain_text(pieces: list[_Piece]) -> str:
    parts = []
    for piece in pieces:
        if isinstance(piece, _NodePiece):
            if piece.value is not None:
                parts.append(piece.value)
            elif piece.kind == "image":
                parts.append(piece.attributes.get("alt", ""))
            elif piece.kind == "break":
                parts.append("\n")
            else:
                parts.append(_plain_text(piece.children))
        elif isinstance(piece, _DelimiterRun):
            parts.append(piece.value)
        else:
            parts.append(piece.value)
    return "".join(parts)
