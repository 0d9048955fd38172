#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/ast/utils.py
"""Helpers for copying, comparing and flattening trees.

Examples
--------
    >>> from markpipe.ast import Paragraph, Strong, Text
    >>> para = Paragraph(children=[Text("This is "), Strong(children=[Text("bold")]), Text(".")])
    >>> to_text(para)
    'This is bold.'

"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Union

from markpipe.ast.data import DataMap
from markpipe.ast.nodes import Image, Node, get_children
from markpipe.ast.visit import iter_nodes


def clone_node(node: Node, keep_positions: bool = True, keep_data: bool = True) -> Node:
    """Create a deep copy of a node and its subtree.

    Parameters
    ----------
    node : Node
        Node to clone
    keep_positions : bool, default True
        Copy source positions; when False the clone is marked synthetic
    keep_data : bool, default True
        Copy ``data`` sidecars; when False every clone gets an empty map

    Returns
    -------
    Node
        Independent copy that shares no node instances with ``node``

    """
    cloned = copy.deepcopy(node)
    if not keep_positions:
        strip_positions(cloned)
    if not keep_data:
        for descendant in iter_nodes(cloned):
            descendant.data = DataMap()
    return cloned


def strip_positions(node: Node) -> Node:
    """Clear ``position`` on ``node`` and all descendants, in place.

    Returns
    -------
    Node
        The same node, for chaining

    """
    for descendant in iter_nodes(node):
        descendant.position = None
    return node


def nodes_equal(left: Node, right: Node, ignore_position: bool = True) -> bool:
    """Compare two trees structurally.

    Parameters
    ----------
    left, right : Node
        Trees to compare
    ignore_position : bool, default True
        When False, positions must also match node for node

    Returns
    -------
    bool
        True if kinds, attributes, values and children are equal

    """
    if left != right:
        return False
    if ignore_position:
        return True
    return all(a.position == b.position for a, b in zip(iter_nodes(left), iter_nodes(right)))


def to_text(node_or_nodes: Union[Node, Iterable[Node]], joiner: str = "") -> str:
    """Extract the plain text content of a node or list of nodes.

    Literal values are concatenated in document order. Images contribute
    their alt text.

    Parameters
    ----------
    node_or_nodes : Node or iterable of Node
        What to extract text from
    joiner : str, default ""
        Separator placed between sibling parts

    Returns
    -------
    str
        The concatenated text

    """
    if isinstance(node_or_nodes, Node):
        node = node_or_nodes
        if node.is_literal:
            return node.value  # type: ignore[attr-defined,no-any-return]
        if isinstance(node, Image):
            return node.alt
        return joiner.join(to_text(child, joiner) for child in get_children(node))
    return joiner.join(to_text(node, joiner) for node in node_or_nodes)


def count_nodes(node: Node) -> int:
    """Return the number of nodes in the subtree rooted at ``node``."""
    return sum(1 for _ in iter_nodes(node))
