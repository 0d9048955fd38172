#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/parser/reducer.py
"""Build a tree from a balanced event stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from markpipe.ast.nodes import Node, Position, Root, node_class
from markpipe.exceptions import ParsingError
from markpipe.parser.events import Event
from markpipe.parser.locator import Locator


@dataclass
class _Frame:
    kind: str
    start: int
    attributes: dict[str, Any]
    value: Optional[str]
    children: list[Node] = field(default_factory=list)


def _make_node(frame: _Frame, position: Position) -> Node:
    cls = node_class(frame.kind)
    kwargs = dict(frame.attributes)
    if cls.is_literal:
        kwargs["value"] = frame.value or ""
    if cls.is_parent:
        kwargs["children"] = frame.children
    return cls(position=position, **kwargs)


def reduce_events(events: Iterable[Event], locator: Locator) -> Root:
    """Reduce ``events`` into a Root node with a position on every node.

    Parameters
    ----------
    events : iterable of Event
        Balanced enter/exit stream whose outermost pair is ``root``
    locator : Locator
        Locator for the source text the offsets refer to

    Returns
    -------
    Root
        The reduced tree

    Raises
    ------
    ParsingError
        If the stream is unbalanced or does not describe a single root

    """
    stack: list[_Frame] = []
    root: Optional[Node] = None
    for event in events:
        if event.action == "enter":
            if root is not None:
                raise ParsingError(f"Event {event.kind!r} follows the end of the document", parsing_stage="reduce")
            stack.append(_Frame(event.kind, event.offset, event.attributes, event.value))
            continue

        if not stack or stack[-1].kind != event.kind:
            expected = stack[-1].kind if stack else None
            raise ParsingError(
                f"Unbalanced event stream: exit of {event.kind!r} while {expected!r} is open",
                parsing_stage="reduce",
            )
        frame = stack.pop()
        try:
            node = _make_node(frame, Position(locator.point(frame.start), locator.point(event.offset)))
        except (KeyError, TypeError, ValueError) as e:
            raise ParsingError(f"Cannot build {frame.kind!r} node: {e}", parsing_stage="reduce", original_error=e) from e
        if stack:
            stack[-1].children.append(node)
        else:
            root = node

    if stack:
        raise ParsingError(f"Event stream ended with {stack[-1].kind!r} still open", parsing_stage="reduce")
    if not isinstance(root, Root):
        raise ParsingError("Event stream does not describe a root node", parsing_stage="reduce")
    return root
