#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/ast/__init__.py
"""Tree model for markpipe.

This package provides the node classes the scanner produces, plugins rewrite
and the printer consumes, together with traversal, cloning, validation and
serialization helpers.

Examples
--------
Build a tree by hand:

    >>> from markpipe.ast import Root, Heading, Paragraph, Text, Emphasis
    >>> tree = Root(children=[
    ...     Heading(depth=1, children=[Text("Title")]),
    ...     Paragraph(children=[Text("Body "), Emphasis(children=[Text("text")]), Text(".")]),
    ... ])

Walk it:

    >>> from markpipe.ast import visit, SKIP
    >>> visit(tree, "heading", lambda node, index, parent: SKIP)

"""

from __future__ import annotations

from markpipe.ast.data import DataMap, ScopedData, make_key, split_key
from markpipe.ast.nodes import (
    BLOCK_KINDS,
    LITERAL_KINDS,
    NODE_TYPES,
    PARENT_KINDS,
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
    Point,
    Position,
    Root,
    Strong,
    Text,
    ThematicBreak,
    build,
    get_children,
    node_class,
)
from markpipe.ast.serialization import ast_to_dict, ast_to_json, dict_to_ast, json_to_ast
from markpipe.ast.utils import clone_node, count_nodes, nodes_equal, strip_positions, to_text
from markpipe.ast.validation import TreeValidator, ValidationIssue, find_shared_nodes, validate_tree
from markpipe.ast.visit import CONTINUE, SKIP, STOP, Action, convert_test, find, iter_nodes, visit

__all__ = [
    # Nodes
    "Node",
    "Root",
    "FrontMatter",
    "Heading",
    "Paragraph",
    "CodeBlock",
    "BlockQuote",
    "List",
    "ListItem",
    "ThematicBreak",
    "Text",
    "Emphasis",
    "Strong",
    "InlineCode",
    "Link",
    "Image",
    "Break",
    "Point",
    "Position",
    "NODE_TYPES",
    "LITERAL_KINDS",
    "PARENT_KINDS",
    "BLOCK_KINDS",
    "build",
    "node_class",
    "get_children",
    # Data
    "DataMap",
    "ScopedData",
    "make_key",
    "split_key",
    # Traversal
    "visit",
    "iter_nodes",
    "find",
    "convert_test",
    "Action",
    "CONTINUE",
    "SKIP",
    "STOP",
    # Utilities
    "clone_node",
    "strip_positions",
    "nodes_equal",
    "to_text",
    "count_nodes",
    # Validation
    "validate_tree",
    "TreeValidator",
    "ValidationIssue",
    "find_shared_nodes",
    # Serialization
    "ast_to_dict",
    "dict_to_ast",
    "ast_to_json",
    "json_to_ast",
]
