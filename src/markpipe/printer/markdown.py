#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/printer/markdown.py
"""Markdown printer.

This module provides ``MarkdownPrinter``, which stringifies a tree through
a table of per-kind handlers. Each call to ``print`` creates a fresh
``PrintState`` holding the container stack (root, block quotes, lists and
list items) and the inline context of the node being printed, so printers
are reentrant and may be shared between threads.

Output is not byte-identical to whatever source produced the tree. It is
built so that scanning it again yields a structurally equal tree for any
``PrinterOptions``: text is escaped so it re-parses as text, and delimiter
characters are switched where the preferred one would merge with a
neighbour or fail to open inside a word. When that local choice would
still scan back with different emphasis nesting, the inline content of the
block is scanned with ``InlineTokenizer`` and other delimiter assignments
are tried until one survives.

Examples
--------
    >>> from markpipe.ast import build
    >>> tree = build("root", build("heading", "Title", depth=1))
    >>> MarkdownPrinter().print(tree)
    '# Title\\n'

Custom handlers receive the printer, the node and the state:

    >>> def shout(printer, node, state):
    ...     return printer.escape(node.value.upper(), state.inline.at_line_start)
    >>> MarkdownPrinter().with_handlers(text=shout).print(tree)
    '# TITLE\\n'

"""

from __future__ import annotations

import itertools
import logging
import re
import unicodedata
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from markpipe.ast.nodes import (
    BlockQuote,
    Break,
    CodeBlock,
    Emphasis,
    FrontMatter,
    Heading,
    Image,
    InlineCode,
    Link,
    List,
    ListItem,
    Node,
    Paragraph,
    Root,
    Strong,
    Text,
    ThematicBreak,
)
from markpipe.ast.visit import iter_nodes
from markpipe.exceptions import PrintingError
from markpipe.options import PrinterOptions
from markpipe.parser.events import Event, EventSink
from markpipe.parser.inline import InlineTokenizer, SourceMap
from markpipe.parser.locator import Locator
from markpipe.parser.reducer import reduce_events
from markpipe.printer.base import BasePrinter

logger = logging.getLogger(__name__)

_ALWAYS_ESCAPED = frozenset("\\`*_[]<")
_LINE_START_CHARS = frozenset("#>+-=~")
_ORDERED_MARKER_RE = re.compile(r"(\d{1,9})([.)])")
_INLINE_KINDS = ("text", "emphasis", "strong", "inline_code", "link", "image", "break")

# Paragraphs with more emphasis nodes keep the locally chosen delimiters
DELIMITER_SEARCH_LIMIT = 8


def _is_word_char(char: str) -> bool:
    return bool(char) and not char.isspace() and unicodedata.category(char)[0] not in ("P", "S")


# ============================================================================
# Per-call state
# ============================================================================


@dataclass
class ContainerFrame:
    """One open container while printing.

    Attributes
    ----------
    kind : str
        Kind of the container node ("root", "block_quote", "list", "list_item")
    node : Node
        The container being printed
    separator : str
        Text placed between the container's block children
    prefix : str
        Text the container puts in front of each line of its content
    previous : Node or None
        Most recently printed child
    symbol : str
        List marker symbol in use (lists and list items only)
    list_symbol : str or None
        Symbol used by the last list printed as a direct child
    marker : str
        Marker of the item currently printed (lists only)

    """

    kind: str
    node: Node
    separator: str = "\n\n"
    prefix: str = ""
    previous: Optional[Node] = None
    symbol: str = ""
    list_symbol: Optional[str] = None
    marker: str = ""


@dataclass
class InlineContext:
    """Surroundings of the inline node being printed.

    Attributes
    ----------
    before : str
        Character printed just before the node ("" at the start of a block)
    after : str
        First character expected after the node ("" at the end of a block)
    adjacent : frozenset of str
        Emphasis delimiter characters directly touching the node
    next_kind : str or None
        Kind of the following sibling

    """

    before: str = ""
    after: str = ""
    adjacent: frozenset[str] = field(default_factory=frozenset)
    next_kind: Optional[str] = None

    @property
    def at_line_start(self) -> bool:
        """True if the node starts a line of output."""
        return self.before in ("", "\n")


class PrintState:
    """Mutable state of a single ``print`` call."""

    def __init__(self) -> None:
        """Create an empty state."""
        self.frames: list[ContainerFrame] = []
        self.inline = InlineContext()
        self.in_atx = False
        # Forced emphasis delimiters, keyed by node id
        self.delimiters: dict[int, str] = {}

    @contextmanager
    def container(self, kind: str, node: Node, separator: str = "\n\n", prefix: str = "") -> Iterator[ContainerFrame]:
        """Push a container frame for the duration of the block."""
        frame = ContainerFrame(kind=kind, node=node, separator=separator, prefix=prefix)
        self.frames.append(frame)
        try:
            yield frame
        finally:
            self.frames.pop()

    @property
    def current(self) -> Optional[ContainerFrame]:
        """Innermost open container, if any."""
        return self.frames[-1] if self.frames else None

    @property
    def prefix(self) -> str:
        """Combined line prefix of all open containers."""
        return "".join(frame.prefix for frame in self.frames)

    @property
    def list_depth(self) -> int:
        """Number of open lists."""
        return sum(1 for frame in self.frames if frame.kind == "list")

    @property
    def quote_depth(self) -> int:
        """Number of open block quotes."""
        return sum(1 for frame in self.frames if frame.kind == "block_quote")


Handler = Callable[["MarkdownPrinter", Node, PrintState], str]


# ============================================================================
# Printer
# ============================================================================


class MarkdownPrinter(BasePrinter):
    """Print trees as Markdown text.

    Parameters
    ----------
    options : PrinterOptions, optional
        Formatting rules
    handlers : dict, optional
        Handlers overriding the defaults, keyed by node kind

    Attributes
    ----------
    handlers : dict of str to callable
        Handler table used by ``render``; each handler is called as
        ``handler(printer, node, state)`` and returns the node's text

    """

    def __init__(self, options: Optional[PrinterOptions] = None, handlers: Optional[dict[str, Handler]] = None):
        """Initialize the printer with options and optional handler overrides."""
        BasePrinter._validate_options_type(options, PrinterOptions, "markdown")
        super().__init__(options or PrinterOptions())
        self.options: PrinterOptions
        self.handlers: dict[str, Handler] = dict(DEFAULT_HANDLERS)
        if handlers:
            self.handlers.update(handlers)

    def __repr__(self) -> str:
        return f"MarkdownPrinter(options={self.options!r})"

    def with_handlers(self, **handlers: Handler) -> MarkdownPrinter:
        """Return a new printer whose handler table includes ``handlers``."""
        merged = dict(self.handlers)
        merged.update(handlers)
        return MarkdownPrinter(self.options, merged)

    def print(self, tree: Root) -> str:
        """Return the Markdown text of ``tree``, ending with a newline.

        Raises
        ------
        PrintingError
            If ``tree`` is not a Root or holds a kind without a handler

        """
        if not isinstance(tree, Root):
            raise PrintingError(f"Can only print a root node, got {type(tree).__name__}", node_kind=tree.kind)
        text = self.render(tree, PrintState())
        logger.debug("Printed %d characters", len(text))
        return f"{text}\n" if text else ""

    def render(self, node: Node, state: PrintState) -> str:
        """Dispatch ``node`` to its handler."""
        handler = self.handlers.get(node.kind)
        if handler is None:
            raise PrintingError(f"No handler for node kind {node.kind!r}", node_kind=node.kind)
        return handler(self, node, state)

    def render_blocks(self, nodes: list[Node], state: PrintState) -> str:
        """Render block children of the current container."""
        frame = state.current
        assert frame is not None
        parts = []
        for node in nodes:
            text = self.render(node, state)
            frame.previous = node
            if text:
                parts.append(text)
        return frame.separator.join(parts)

    def render_inlines(
        self, nodes: list[Node], state: PrintState, before: str = "", after: str = "", delimiter: str = ""
    ) -> str:
        """Render inline siblings.

        Parameters
        ----------
        nodes : list of Node
            The siblings
        state : PrintState
            Current print state
        before, after : str
            Characters surrounding the run of siblings
        delimiter : str
            Emphasis delimiter of the enclosing node, if any

        """
        output: list[str] = []
        previous_char = before
        previous_delimiter = ""
        last = len(nodes) - 1
        for index, node in enumerate(nodes):
            following = nodes[index + 1] if index < last else None
            adjacent = set()
            if delimiter and index in (0, last):
                adjacent.add(delimiter)
            if previous_delimiter:
                adjacent.add(previous_delimiter)
            state.inline = InlineContext(
                before=previous_char,
                after=_leading_char(following) if following is not None else after,
                adjacent=frozenset(adjacent),
                next_kind=following.kind if following is not None else None,
            )
            text = self.render(node, state)
            output.append(text)
            if text:
                previous_char = text[-1]
            previous_delimiter = text[0] if isinstance(node, (Emphasis, Strong)) and text else ""
        return "".join(output)

    def render_phrasing(self, nodes: list[Node], state: PrintState) -> str:
        """Render the inline content of a paragraph or heading.

        Delimiters are first chosen node by node from the surrounding
        characters. If the result would scan back with different emphasis,
        every assignment of ``*`` and ``_`` to the emphasis and strong nodes
        is tried in turn and the first one that scans back intact wins.
        Paragraphs with more than ``DELIMITER_SEARCH_LIMIT`` such nodes, or
        printers with custom inline handlers, keep the local choice.

        """
        text = self.render_inlines(nodes, state)
        emphasis = [
            descendant for node in nodes for descendant in iter_nodes(node) if isinstance(descendant, (Emphasis, Strong))
        ]
        if not emphasis or not self._has_default_inline_handlers():
            return text

        expected = _phrasing_signature(nodes, state.in_atx)
        if _scan_phrasing(text, state.in_atx) == expected:
            return text
        if len(emphasis) > DELIMITER_SEARCH_LIMIT:
            logger.debug("Keeping local delimiter choice for %d emphasis nodes", len(emphasis))
            return text

        for choice in itertools.product("*_", repeat=len(emphasis)):
            state.delimiters = {id(node): char for node, char in zip(emphasis, choice)}
            try:
                candidate = self.render_inlines(nodes, state)
            finally:
                state.delimiters = {}
            if _scan_phrasing(candidate, state.in_atx) == expected:
                return candidate
        logger.debug("No delimiter assignment scans back intact for %r", text)
        return text

    def _has_default_inline_handlers(self) -> bool:
        return all(self.handlers.get(kind) is DEFAULT_HANDLERS[kind] for kind in _INLINE_KINDS)

    # ------------------------------------------------------------------
    # Escaping
    # ------------------------------------------------------------------

    def escape(self, text: str, at_line_start: bool = False, in_atx: bool = False) -> str:
        """Escape ``text`` so it scans back as the same plain text.

        Parameters
        ----------
        text : str
            Literal text
        at_line_start : bool
            Whether the text begins a line of output
        in_atx : bool
            Whether the text sits inside an ATX heading (hashes are escaped)

        """
        special = _ALWAYS_ESCAPED | {"#"} if in_atx else _ALWAYS_ESCAPED
        lines = []
        for number, line in enumerate(text.split("\n")):
            escaped = "".join(f"\\{char}" if char in special else char for char in line)
            if number > 0 or at_line_start:
                escaped = _escape_line_start(escaped)
            lines.append(escaped)
        return "\n".join(lines)

    def _choose_delimiter(self, preferred: str, context: InlineContext) -> str:
        other = "_" if preferred == "*" else "*"
        inside_word = _is_word_char(context.before) or _is_word_char(context.after)
        candidates = [char for char in (preferred, other) if char == "*" or not inside_word]
        for char in candidates:
            if char not in context.adjacent:
                return char
        return candidates[0]

    # ------------------------------------------------------------------
    # Block handlers
    # ------------------------------------------------------------------

    def _print_root(self, node: Root, state: PrintState) -> str:
        with state.container("root", node):
            return self.render_blocks(node.children, state)

    def _print_front_matter(self, node: FrontMatter, state: PrintState) -> str:
        if not node.value:
            return "---\n---"
        return f"---\n{node.value}\n---"

    def _print_heading(self, node: Heading, state: PrintState) -> str:
        frame = state.current
        after_tight_paragraph = (
            frame is not None and frame.separator == "\n" and isinstance(frame.previous, Paragraph)
        )
        multiline = any(
            isinstance(child, Break) or (isinstance(child, Text) and "\n" in child.value)
            for child in iter_nodes(node)
            if child is not node
        )
        if node.depth <= 2 and (self.options.setext or multiline) and not after_tight_paragraph:
            content = self.render_phrasing(node.children, state)
            if content.strip():
                underline = "=" if node.depth == 1 else "-"
                return f"{content}\n{underline * 3}"

        state.in_atx = True
        try:
            content = self.render_phrasing(node.children, state)
        finally:
            state.in_atx = False
        marker = "#" * node.depth
        if not content:
            return marker
        closing = f" {marker}" if self.options.close_atx else ""
        return f"{marker} {content}{closing}"

    def _print_paragraph(self, node: Paragraph, state: PrintState) -> str:
        return self.render_phrasing(node.children, state)

    def _print_code_block(self, node: CodeBlock, state: PrintState) -> str:
        info = node.lang or ""
        if node.meta:
            info = f"{info} {node.meta}" if info else node.meta
        fence_char = self.options.fence
        if fence_char == "`" and "`" in info:
            fence_char = "~"
        longest = max((len(run) for run in re.findall(re.escape(fence_char) + "+", node.value)), default=0)
        fence = fence_char * max(3, longest + 1)
        if not node.value:
            return f"{fence}{info}\n{fence}"
        return f"{fence}{info}\n{node.value}\n{fence}"

    def _print_block_quote(self, node: BlockQuote, state: PrintState) -> str:
        with state.container("block_quote", node, prefix="> "):
            content = self.render_blocks(node.children, state)
        if not content:
            return ">"
        return "\n".join(f"> {line}" if line else ">" for line in content.split("\n"))

    def _print_list(self, node: List, state: PrintState) -> str:
        parent = state.current
        if node.ordered:
            symbol = self.options.ordered_delimiter
            alternative = ")" if symbol == "." else "."
        else:
            symbol = self.options.bullet
            alternative = "*" if symbol == "-" else "-"
        # Adjacent lists with the same marker would merge into one
        if parent is not None:
            if isinstance(parent.previous, List) and parent.previous.ordered == node.ordered:
                if parent.list_symbol == symbol:
                    symbol = alternative
            parent.list_symbol = symbol

        separator = "\n\n" if node.spread else "\n"
        items = []
        with state.container("list", node, separator=separator) as frame:
            frame.symbol = symbol
            start = node.start if node.start is not None else 1
            for index, item in enumerate(node.children):
                frame.marker = f"{start + index}{symbol} " if node.ordered else f"{symbol} "
                items.append(self.render(item, state))
                frame.previous = item
        return separator.join(items)

    def _print_list_item(self, node: ListItem, state: PrintState) -> str:
        parent = state.current
        if parent is not None and parent.kind == "list":
            marker = parent.marker
        else:
            marker = f"{self.options.bullet} "
        checkbox = ""
        if node.checked is not None:
            checkbox = "[x] " if node.checked else "[ ] "

        indent = " " * len(marker)
        separator = "\n\n" if node.spread else "\n"
        with state.container("list_item", node, separator=separator, prefix=indent) as frame:
            frame.symbol = marker.strip()
            content = self.render_blocks(node.children, state)
        if not content:
            return f"{marker}{checkbox}".rstrip()
        lines = content.split("\n")
        rest = [f"{indent}{line}" if line else "" for line in lines[1:]]
        return "\n".join([f"{marker}{checkbox}{lines[0]}", *rest])

    def _print_thematic_break(self, node: ThematicBreak, state: PrintState) -> str:
        char = self.options.rule
        frame = state.current
        if char != "_" and frame is not None:
            first_in_item = frame.kind == "list_item" and frame.previous is None and frame.symbol == char
            setext_hazard = char == "-" and frame.separator == "\n" and isinstance(frame.previous, Paragraph)
            front_matter_hazard = char == "-" and frame.kind == "root" and frame.previous is None
            if first_in_item or setext_hazard or front_matter_hazard:
                char = "_"
        return char * 3

    # ------------------------------------------------------------------
    # Inline handlers
    # ------------------------------------------------------------------

    def _print_text(self, node: Text, state: PrintState) -> str:
        context = state.inline
        value = node.value.replace("\n", " ") if state.in_atx else node.value
        text = self.escape(value, at_line_start=context.at_line_start, in_atx=state.in_atx)
        # "!" directly before a link would turn it into an image
        if context.next_kind == "link" and text.endswith("!"):
            text = f"{text[:-1]}\\!"
        return text

    def _print_emphasis(self, node: Emphasis, state: PrintState) -> str:
        char = state.delimiters.get(id(node)) or self._choose_delimiter(self.options.emphasis, state.inline)
        inner = self.render_inlines(node.children, state, before=char, after=char, delimiter=char)
        return f"{char}{inner}{char}"

    def _print_strong(self, node: Strong, state: PrintState) -> str:
        char = state.delimiters.get(id(node)) or self._choose_delimiter(self.options.strong, state.inline)
        inner = self.render_inlines(node.children, state, before=char, after=char, delimiter=char)
        return f"{char * 2}{inner}{char * 2}"

    def _print_inline_code(self, node: InlineCode, state: PrintState) -> str:
        value = node.value.replace("\n", " ")
        longest = max((len(run) for run in re.findall(r"`+", value)), default=0)
        fence = "`" * (longest + 1)
        padded = value.startswith("`") or value.endswith("`")
        padded = padded or (len(value) >= 2 and value[0] == " " and value[-1] == " " and bool(value.strip(" ")))
        if padded:
            value = f" {value} "
        return f"{fence}{value}{fence}"

    def _print_link(self, node: Link, state: PrintState) -> str:
        text = self.render_inlines(node.children, state, before="[", after="]")
        return f"[{text}]({_format_destination(node.destination)}{_format_title(node.title)})"

    def _print_image(self, node: Image, state: PrintState) -> str:
        alt = self.escape(node.alt)
        return f"![{alt}]({_format_destination(node.destination)}{_format_title(node.title)})"

    def _print_break(self, node: Break, state: PrintState) -> str:
        return " " if state.in_atx else "\\\n"


DEFAULT_HANDLERS: dict[str, Handler] = {
    "root": MarkdownPrinter._print_root,  # type: ignore[dict-item]
    "front_matter": MarkdownPrinter._print_front_matter,  # type: ignore[dict-item]
    "heading": MarkdownPrinter._print_heading,  # type: ignore[dict-item]
    "paragraph": MarkdownPrinter._print_paragraph,  # type: ignore[dict-item]
    "code_block": MarkdownPrinter._print_code_block,  # type: ignore[dict-item]
    "block_quote": MarkdownPrinter._print_block_quote,  # type: ignore[dict-item]
    "list": MarkdownPrinter._print_list,  # type: ignore[dict-item]
    "list_item": MarkdownPrinter._print_list_item,  # type: ignore[dict-item]
    "thematic_break": MarkdownPrinter._print_thematic_break,  # type: ignore[dict-item]
    "text": MarkdownPrinter._print_text,  # type: ignore[dict-item]
    "emphasis": MarkdownPrinter._print_emphasis,  # type: ignore[dict-item]
    "strong": MarkdownPrinter._print_strong,  # type: ignore[dict-item]
    "inline_code": MarkdownPrinter._print_inline_code,  # type: ignore[dict-item]
    "link": MarkdownPrinter._print_link,  # type: ignore[dict-item]
    "image": MarkdownPrinter._print_image,  # type: ignore[dict-item]
    "break": MarkdownPrinter._print_break,  # type: ignore[dict-item]
}


def _phrasing_signature(nodes: list[Node], in_atx: bool) -> list:
    """Reduce inline nodes to what must survive a print and rescan.

    Adjacent text is merged; inside ATX headings newlines and breaks read
    as spaces, matching how they are printed there.

    """
    signature: list = []
    for node in nodes:
        if isinstance(node, Text) or (in_atx and isinstance(node, Break)):
            value = node.value if isinstance(node, Text) else " "
            if in_atx:
                value = value.replace("\n", " ")
            if not value:
                continue
            if signature and isinstance(signature[-1], str):
                signature[-1] += value
            else:
                signature.append(value)
        elif isinstance(node, (Emphasis, Strong)):
            signature.append((node.kind, _phrasing_signature(node.children, in_atx)))
        elif isinstance(node, Link):
            signature.append(("link", node.destination, node.title, _phrasing_signature(node.children, in_atx)))
        else:
            signature.append(node)
    return signature


def _scan_phrasing(text: str, in_atx: bool) -> list:
    """Scan printed inline content the way the block scanner hands it over."""
    lines = [text.strip()] if in_atx else [line.lstrip() for line in text.split("\n")]
    lines[-1] = lines[-1].rstrip()
    source_map = SourceMap()
    offset = 0
    for line in lines:
        source_map.add(line, offset)
        offset += len(line) + 1

    sink = EventSink()
    InlineTokenizer(lambda *_: None).tokenize(source_map, sink)
    events = [Event("enter", "root", 0), *sink.events, Event("exit", "root", source_map.length)]
    root = reduce_events(events, Locator(source_map.text))
    return _phrasing_signature(root.children, in_atx)


def _leading_char(node: Node) -> str:
    if isinstance(node, Text):
        return node.value[:1]
    return ""


def _escape_line_start(line: str) -> str:
    if line[:1] in _LINE_START_CHARS:
        return f"\\{line}"
    match = _ORDERED_MARKER_RE.match(line)
    if match:
        return f"{match.group(1)}\\{line[match.end(1):]}"
    return line


def _format_destination(destination: str) -> str:
    if not destination or any(char in " \t\n<>" or ord(char) < 0x20 for char in destination):
        escaped = re.sub(r"([\\<>])", r"\\\1", destination)
        return f"<{escaped}>"
    return re.sub(r"([\\()])", r"\\\1", destination)


def _format_title(title: Optional[str]) -> str:
    if title is None:
        return ""
    escaped = re.sub(r'([\\"])', r"\\\1", title)
    return f' "{escaped}"'


def print_markdown(tree: Root, options: Optional[PrinterOptions] = None) -> str:
    """Print ``tree`` with a throwaway printer."""
    return MarkdownPrinter(options).print(tree)
