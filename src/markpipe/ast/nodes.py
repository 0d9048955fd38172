#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/ast/nodes.py
"""Tree node classes for document representation.

This module defines the node hierarchy produced by the scanner, rewritten by
plugins and consumed by the printer. Every node is a plain dataclass: there
is no immutability enforcement, but a node instance must belong to exactly
one tree. Use ``markpipe.ast.utils.clone_node`` before copying a subtree
into another document.

Node Hierarchy
--------------
Every node has a class-level ``kind`` tag, an optional ``position`` and a
namespaced ``data`` sidecar.

Parent nodes carry ``children``:
    - Root, Heading, Paragraph, BlockQuote, List, ListItem
    - Emphasis, Strong, Link

Literal nodes carry ``value``:
    - Text, InlineCode, CodeBlock, FrontMatter

Void nodes carry neither:
    - Image, Break, ThematicBreak

Equality
--------
``==`` compares kind, attributes, values and children. ``position`` and
``data`` never take part in comparisons, so a re-parsed tree equals the
original regardless of where its nodes came from.

"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Optional

from markpipe.ast.data import DataMap
from markpipe.constants import MAX_HEADING_DEPTH, MIN_HEADING_DEPTH

# Registry of kind tag -> node class, filled in by Node.__init_subclass__
NODE_TYPES: dict[str, type[Node]] = {}


@dataclass(frozen=True)
class Point:
    """A place in the source text.

    Parameters
    ----------
    line : int
        1-based line number
    column : int
        1-based column number
    offset : int
        0-based character offset into the source text

    """

    line: int
    column: int
    offset: int


@dataclass(frozen=True)
class Position:
    """Span of source text a node was produced from.

    ``end`` is exclusive: ``text[start.offset:end.offset]`` is the source
    slice of the node.

    """

    start: Point
    end: Point

    def __post_init__(self) -> None:
        if self.end.offset < self.start.offset:
            raise ValueError(f"Position end {self.end.offset} precedes start {self.start.offset}")

    def contains(self, other: Position) -> bool:
        """Return True if ``other`` lies within this span."""
        return self.start.offset <= other.start.offset and other.end.offset <= self.end.offset

    def overlaps(self, other: Position) -> bool:
        """Return True if the two spans share at least one character."""
        return self.start.offset < other.end.offset and other.start.offset < self.end.offset

    def slice(self, text: str) -> str:
        """Return the source text covered by this span."""
        return text[self.start.offset : self.end.offset]


class Node:
    """Base class for all tree nodes.

    Attributes
    ----------
    kind : str
        Closed tag identifying the node type
    position : Position or None
        Source span, or None for synthetic nodes
    data : DataMap
        Namespaced sidecar for plugins; never interpreted by the core

    """

    kind: ClassVar[str] = ""
    is_parent: ClassVar[bool] = False
    is_literal: ClassVar[bool] = False
    is_block: ClassVar[bool] = False
    attribute_names: ClassVar[tuple[str, ...]] = ()

    position: Optional[Position]
    data: DataMap

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.kind:
            NODE_TYPES[cls.kind] = cls

    @property
    def attributes(self) -> dict[str, Any]:
        """Kind-specific fields of this node as a dictionary."""
        return {name: getattr(self, name) for name in self.attribute_names}

    @property
    def is_synthetic(self) -> bool:
        """True when the node has no source mapping."""
        return self.position is None


def _position_field() -> Any:
    return field(default=None, compare=False, repr=False)


def _data_field() -> Any:
    return field(default_factory=DataMap, compare=False, repr=False)


# ============================================================================
# Block-level Nodes
# ============================================================================


@dataclass
class Root(Node):
    """Top-level node of a document tree.

    Parameters
    ----------
    children : list of Node, default = empty list
        Block-level nodes of the document

    """

    kind: ClassVar[str] = "root"
    is_parent: ClassVar[bool] = True

    children: list[Node] = field(default_factory=list)
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class FrontMatter(Node):
    """Raw front matter block at the very start of a document.

    The value is the text between the ``---`` fences, without the fences.
    Interpreting it (e.g. as YAML) is left to plugins.

    """

    kind: ClassVar[str] = "front_matter"
    is_literal: ClassVar[bool] = True
    is_block: ClassVar[bool] = True

    value: str = ""
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class Heading(Node):
    """Heading node (h1-h6).

    Parameters
    ----------
    depth : int
        Heading depth, 1 to 6
    children : list of Node, default = empty list
        Inline content

    """

    kind: ClassVar[str] = "heading"
    is_parent: ClassVar[bool] = True
    is_block: ClassVar[bool] = True
    attribute_names: ClassVar[tuple[str, ...]] = ("depth",)

    depth: int = 1
    children: list[Node] = field(default_factory=list)
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()

    def __post_init__(self) -> None:
        if not MIN_HEADING_DEPTH <= self.depth <= MAX_HEADING_DEPTH:
            raise ValueError(
                f"Heading depth must be between {MIN_HEADING_DEPTH} and {MAX_HEADING_DEPTH}, got {self.depth}"
            )


@dataclass
class Paragraph(Node):
    """Paragraph of inline content."""

    kind: ClassVar[str] = "paragraph"
    is_parent: ClassVar[bool] = True
    is_block: ClassVar[bool] = True

    children: list[Node] = field(default_factory=list)
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class CodeBlock(Node):
    """Fenced or indented code block.

    Parameters
    ----------
    value : str
        Code content without the trailing newline
    lang : str or None
        Language identifier from the fence info string
    meta : str or None
        Remainder of the info string after the language

    """

    kind: ClassVar[str] = "code_block"
    is_literal: ClassVar[bool] = True
    is_block: ClassVar[bool] = True
    attribute_names: ClassVar[tuple[str, ...]] = ("lang", "meta")

    value: str = ""
    lang: Optional[str] = None
    meta: Optional[str] = None
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class BlockQuote(Node):
    """Block quote containing other blocks."""

    kind: ClassVar[str] = "block_quote"
    is_parent: ClassVar[bool] = True
    is_block: ClassVar[bool] = True

    children: list[Node] = field(default_factory=list)
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class List(Node):
    """Ordered or unordered list.

    Parameters
    ----------
    children : list of ListItem
        Items of the list
    ordered : bool, default False
        Whether the list is numbered
    start : int or None
        First number of an ordered list; None for unordered lists
    spread : bool, default False
        Whether items are separated by blank lines (a loose list)

    """

    kind: ClassVar[str] = "list"
    is_parent: ClassVar[bool] = True
    is_block: ClassVar[bool] = True
    attribute_names: ClassVar[tuple[str, ...]] = ("ordered", "start", "spread")

    children: list[Node] = field(default_factory=list)
    ordered: bool = False
    start: Optional[int] = None
    spread: bool = False
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()

    def __post_init__(self) -> None:
        if self.ordered and self.start is None:
            self.start = 1
        if not self.ordered and self.start is not None:
            raise ValueError("Unordered lists cannot have a start number")
        if self.start is not None and self.start < 0:
            raise ValueError(f"List start must be non-negative, got {self.start}")


@dataclass
class ListItem(Node):
    """Single item of a list.

    Parameters
    ----------
    children : list of Node
        Block content of the item
    spread : bool, default False
        Whether the item's blocks are separated by blank lines
    checked : bool or None
        Task list state; None for ordinary items

    """

    kind: ClassVar[str] = "list_item"
    is_parent: ClassVar[bool] = True
    is_block: ClassVar[bool] = True
    attribute_names: ClassVar[tuple[str, ...]] = ("spread", "checked")

    children: list[Node] = field(default_factory=list)
    spread: bool = False
    checked: Optional[bool] = None
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class ThematicBreak(Node):
    """Horizontal rule."""

    kind: ClassVar[str] = "thematic_break"
    is_block: ClassVar[bool] = True

    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


# ============================================================================
# Inline Nodes
# ============================================================================


@dataclass
class Text(Node):
    """Plain text content."""

    kind: ClassVar[str] = "text"
    is_literal: ClassVar[bool] = True

    value: str = ""
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class Emphasis(Node):
    """Emphasized (italic) content."""

    kind: ClassVar[str] = "emphasis"
    is_parent: ClassVar[bool] = True

    children: list[Node] = field(default_factory=list)
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class Strong(Node):
    """Strongly emphasized (bold) content."""

    kind: ClassVar[str] = "strong"
    is_parent: ClassVar[bool] = True

    children: list[Node] = field(default_factory=list)
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class InlineCode(Node):
    """Inline code span."""

    kind: ClassVar[str] = "inline_code"
    is_literal: ClassVar[bool] = True

    value: str = ""
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class Link(Node):
    """Hyperlink.

    Parameters
    ----------
    destination : str
        Link target
    children : list of Node
        Link text as inline nodes
    title : str or None
        Optional link title

    """

    kind: ClassVar[str] = "link"
    is_parent: ClassVar[bool] = True
    attribute_names: ClassVar[tuple[str, ...]] = ("destination", "title")

    destination: str = ""
    children: list[Node] = field(default_factory=list)
    title: Optional[str] = None
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class Image(Node):
    """Image reference.

    Parameters
    ----------
    destination : str
        Image source
    alt : str
        Alternative text (plain text; inline markup is flattened)
    title : str or None
        Optional image title

    """

    kind: ClassVar[str] = "image"
    attribute_names: ClassVar[tuple[str, ...]] = ("destination", "alt", "title")

    destination: str = ""
    alt: str = ""
    title: Optional[str] = None
    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


@dataclass
class Break(Node):
    """Hard line break."""

    kind: ClassVar[str] = "break"

    position: Optional[Position] = _position_field()
    data: DataMap = _data_field()


LITERAL_KINDS = frozenset(kind for kind, cls in NODE_TYPES.items() if cls.is_literal)
PARENT_KINDS = frozenset(kind for kind, cls in NODE_TYPES.items() if cls.is_parent)
BLOCK_KINDS = frozenset(kind for kind, cls in NODE_TYPES.items() if cls.is_block)


def node_class(kind: str) -> type[Node]:
    """Return the node class registered for ``kind``.

    Raises
    ------
    KeyError
        If no node class uses that kind tag

    """
    try:
        return NODE_TYPES[kind]
    except KeyError:
        raise KeyError(f"Unknown node kind: {kind!r}") from None


def build(kind: str, *children: Node | str, **attributes: Any) -> Node:
    """Construct a node by kind name.

    Positional arguments become children for parent kinds; for literal kinds
    a single string positional argument becomes the value. Plain strings
    passed as children of a parent kind are wrapped in Text nodes.

    Examples
    --------
    >>> build("heading", "Title", depth=1)
    Heading(depth=1, children=[Text(value='Title')])
    >>> build("paragraph", "Body ", build("emphasis", "text"), ".")
    Paragraph(children=[Text(value='Body '), Emphasis(children=[Text(value='text')]), Text(value='.')])

    """
    cls = node_class(kind)
    if cls.is_literal:
        if len(children) > 1 or (children and not isinstance(children[0], str)):
            raise TypeError(f"{cls.__name__} takes a single string value")
        if children:
            attributes["value"] = children[0]
        return cls(**attributes)
    if cls.is_parent:
        attributes["children"] = [Text(value=child) if isinstance(child, str) else child for child in children]
        return cls(**attributes)
    if children:
        raise TypeError(f"{cls.__name__} cannot have children")
    return cls(**attributes)


def get_children(node: Node) -> list[Node]:
    """Return the live children list of a parent node, or an empty list for leaves.

    The returned list is the node's own list for parents, so callers may
    splice it in place.

    """
    if node.is_parent:
        return node.children  # type: ignore[attr-defined,no-any-return]
    return []


def node_fields(node: Node) -> list[str]:
    """Return the dataclass field names of a node, excluding position and data."""
    return [f.name for f in fields(node) if f.name not in ("position", "data")]  # type: ignore[arg-type]
