#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/options.py
"""Option classes for the scanner and the printer.

Options are frozen dataclasses so a configured processor can be shared
between concurrent runs. Use ``create_updated`` to derive a modified copy.

"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from typing import Any

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

from markpipe.constants import (
    DEFAULT_BULLET,
    DEFAULT_CLOSE_ATX,
    DEFAULT_EMPHASIS,
    DEFAULT_FENCE,
    DEFAULT_MAX_NESTING,
    DEFAULT_ORDERED_DELIMITER,
    DEFAULT_PARSE_FRONT_MATTER,
    DEFAULT_RULE,
    DEFAULT_SETEXT,
    DEFAULT_STRONG,
    DEFAULT_TAB_SIZE,
    BulletChar,
    CodeFenceChar,
    EmphasisSymbol,
    OrderedDelimiter,
    RuleChar,
)


@dataclass(frozen=True)
class CloneFrozenMixin:
    """Mixin providing frozen dataclass cloning capabilities."""

    def create_updated(self, **kwargs: Any) -> Self:
        """Create a new instance with updated field values.

        Parameters
        ----------
        **kwargs : Any
            Field names and their new values

        Returns
        -------
        Self
            New instance with specified fields updated

        """
        return replace(self, **kwargs)


@dataclass(frozen=True)
class ScannerOptions(CloneFrozenMixin):
    """Configuration for ``MarkdownScanner``.

    Parameters
    ----------
    front_matter : bool, default True
        Recognize a leading ``---`` fenced YAML block as a FrontMatter node
    tab_size : int, default 4
        Column width of a tab stop when measuring indentation
    max_nesting : int, default 64
        Maximum container nesting (block quotes and lists) before deeper
        markers are treated as text

    """

    front_matter: bool = field(
        default=DEFAULT_PARSE_FRONT_MATTER,
        metadata={"help": "Recognize leading YAML front matter", "importance": "core"},
    )
    tab_size: int = field(
        default=DEFAULT_TAB_SIZE,
        metadata={"help": "Tab stop width used for indentation", "importance": "advanced"},
    )
    max_nesting: int = field(
        default=DEFAULT_MAX_NESTING,
        metadata={"help": "Maximum block container nesting depth", "importance": "security"},
    )

    def __post_init__(self) -> None:
        """Validate numeric ranges.

        Raises
        ------
        ValueError
            If any field value is outside its valid range.

        """
        if self.tab_size < 1:
            raise ValueError(f"tab_size must be positive, got {self.tab_size}")
        if self.max_nesting < 1:
            raise ValueError(f"max_nesting must be positive, got {self.max_nesting}")


@dataclass(frozen=True)
class PrinterOptions(CloneFrozenMixin):
    """Formatting rules for ``MarkdownPrinter``.

    Any two option sets print trees that re-parse to semantically equal
    trees; only the surface syntax differs.

    Parameters
    ----------
    bullet : {"*", "-", "+"}, default "*"
        Marker for unordered list items
    emphasis : {"*", "_"}, default "*"
        Delimiter for emphasis
    strong : {"*", "_"}, default "*"
        Delimiter (doubled) for strong emphasis
    fence : {"`", "~"}, default "`"
        Fence character for code blocks
    rule : {"*", "-", "_"}, default "*"
        Character used for thematic breaks
    setext : bool, default False
        Use setext underlines for depth 1 and 2 headings
    ordered_delimiter : {".", ")"}, default "."
        Delimiter after ordered list numbers
    close_atx : bool, default False
        Append closing hashes to ATX headings

    """

    bullet: BulletChar = field(default=DEFAULT_BULLET, metadata={"help": "Bullet character", "importance": "core"})
    emphasis: EmphasisSymbol = field(
        default=DEFAULT_EMPHASIS, metadata={"help": "Emphasis delimiter", "importance": "core"}
    )
    strong: EmphasisSymbol = field(default=DEFAULT_STRONG, metadata={"help": "Strong delimiter", "importance": "core"})
    fence: CodeFenceChar = field(default=DEFAULT_FENCE, metadata={"help": "Code fence character", "importance": "core"})
    rule: RuleChar = field(default=DEFAULT_RULE, metadata={"help": "Thematic break character", "importance": "core"})
    setext: bool = field(
        default=DEFAULT_SETEXT, metadata={"help": "Use setext headings for depth 1-2", "importance": "advanced"}
    )
    ordered_delimiter: OrderedDelimiter = field(
        default=DEFAULT_ORDERED_DELIMITER,
        metadata={"help": "Delimiter after ordered list numbers", "importance": "advanced"},
    )
    close_atx: bool = field(
        default=DEFAULT_CLOSE_ATX, metadata={"help": "Close ATX headings with hashes", "importance": "advanced"}
    )

    def __post_init__(self) -> None:
        """Validate choice fields.

        Raises
        ------
        ValueError
            If any field holds an unsupported value.

        """
        choices = {
            "bullet": ("*", "-", "+"),
            "emphasis": ("*", "_"),
            "strong": ("*", "_"),
            "fence": ("`", "~"),
            "rule": ("*", "-", "_"),
            "ordered_delimiter": (".", ")"),
        }
        for name, allowed in choices.items():
            value = getattr(self, name)
            if value not in allowed:
                raise ValueError(f"{name} must be one of {allowed!r}, got {value!r}")
