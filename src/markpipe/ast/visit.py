#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/ast/visit.py
"""Pre-order tree traversal with splice-safe sibling iteration.

``visit`` walks a tree depth-first in document order and calls a callback
for every node that matches a test. The callback steers the walk through
its return value:

- ``CONTINUE`` (or ``None``): descend into the node's children, then go on
- ``SKIP``: do not descend into this node's children
- ``STOP``: end the whole traversal
- an ``int``: continue with the sibling at that index in the parent

Callbacks may insert, remove or replace siblings of the current node.
After each callback the walker re-reads ``parent.children`` by index and
checks the bounds again:

- nodes inserted after the current node are visited in turn
- when the current node was removed, the walk resumes with the node that
  shifted into its index
- when the current node was replaced, the replacement is not passed to the
  callback again but its children are walked

Examples
--------
Collect heading text:

    >>> titles = []
    >>> visit(tree, "heading", lambda node, index, parent: titles.append(to_text(node)))

Remove all images:

    >>> visit(tree, Image, lambda node, index, parent: parent.children.pop(index) and None)

"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterator
from typing import Optional, Union

from markpipe.ast.nodes import Node, get_children


class Action(enum.Enum):
    """Traversal directives returned by visit callbacks."""

    CONTINUE = "continue"
    SKIP = "skip"
    STOP = "stop"


CONTINUE = Action.CONTINUE
SKIP = Action.SKIP
STOP = Action.STOP

Test = Union[None, str, type, tuple, Callable[[Node], bool]]
VisitResult = Union[None, Action, int]
Visitor = Callable[[Node, Optional[int], Optional[Node]], VisitResult]


def convert_test(test: Test) -> Callable[[Node], bool]:
    """Turn a test specification into a predicate.

    Parameters
    ----------
    test : None, str, type, tuple or callable
        ``None`` matches every node, a string matches a kind tag, a class
        matches instances, a tuple matches any of its members, a callable is
        used as is

    Returns
    -------
    callable
        Predicate taking a node

    """
    if test is None:
        return lambda node: True
    if isinstance(test, str):
        return lambda node: node.kind == test
    if isinstance(test, type):
        return lambda node: isinstance(node, test)
    if isinstance(test, tuple):
        checks = [convert_test(item) for item in test]
        return lambda node: any(check(node) for check in checks)
    if callable(test):
        return test
    raise TypeError(f"Invalid visit test: {test!r}")


def visit(tree: Node, test: Test, callback: Visitor, reverse: bool = False) -> None:
    """Walk ``tree`` in pre-order and call ``callback`` on matching nodes.

    Parameters
    ----------
    tree : Node
        Node to start from; it is visited itself with index and parent None
    test : None, str, type, tuple or callable
        Which nodes to call the callback on; see ``convert_test``
    callback : callable
        ``callback(node, index, parent)`` returning a traversal directive
    reverse : bool, default False
        Visit siblings last-to-first

    """
    matches = convert_test(test)
    _walk(tree, None, None, matches, callback, reverse)


def _walk(
    node: Node,
    index: Optional[int],
    parent: Optional[Node],
    matches: Callable[[Node], bool],
    callback: Visitor,
    reverse: bool,
) -> Union[Action, int]:
    result: VisitResult = None
    resume: Union[Action, int] = CONTINUE
    if matches(node):
        length_before = len(get_children(parent)) if parent is not None else 0
        result = callback(node, index, parent)
        if isinstance(result, bool) or (result is not None and not isinstance(result, (Action, int))):
            raise TypeError(f"Visit callbacks must return an Action, an int or None, got {result!r}")

        if result is STOP:
            return STOP
        if isinstance(result, int):
            return result
        if result is SKIP:
            return CONTINUE

        if parent is not None and index is not None:
            siblings = get_children(parent)
            if index >= len(siblings) or siblings[index] is not node:
                moved_to = next((i for i, sibling in enumerate(siblings) if sibling is node), None)
                if moved_to is not None:
                    # Siblings were inserted before the node; keep walking from its new place.
                    resume = moved_to + (-1 if reverse else 1)
                elif len(siblings) < length_before:
                    # Node was removed; the next sibling shifted into its index.
                    return index - 1 if reverse else index
                elif index < len(siblings):
                    # Node was replaced; walk the replacement's children without re-calling.
                    node = siblings[index]
                else:
                    return CONTINUE

    if node.is_parent:
        children = get_children(node)
        position = len(children) - 1 if reverse else 0
        step = -1 if reverse else 1
        while 0 <= position < len(children):
            child = children[position]
            outcome = _walk(child, position, node, matches, callback, reverse)
            if outcome is STOP:
                return STOP
            if isinstance(outcome, int) and not isinstance(outcome, bool):
                position = outcome
            else:
                position += step
            # Re-read the live list; callbacks may have spliced it.
            children = get_children(node)
    return resume


def iter_nodes(tree: Node, test: Test = None) -> Iterator[Node]:
    """Yield nodes of ``tree`` in document order.

    The tree must not be modified while the iterator is consumed.

    """
    matches = convert_test(test)
    stack = [tree]
    while stack:
        node = stack.pop()
        if matches(node):
            yield node
        stack.extend(reversed(get_children(node)))


def find(tree: Node, test: Test) -> Optional[Node]:
    """Return the first node in document order matching ``test``."""
    return next(iter_nodes(tree, test), None)
