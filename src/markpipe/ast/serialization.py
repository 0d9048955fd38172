#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/ast/serialization.py
"""JSON serialization and deserialization for trees.

Serialized trees keep kinds, attributes, values, children and positions.
``data`` sidecars are never serialized, matching the printer's contract.

Examples
--------
    >>> from markpipe.ast import Root, Heading, Text
    >>> tree = Root(children=[Heading(depth=1, children=[Text("Title")])])
    >>> json_str = ast_to_json(tree, indent=2)
    >>> json_to_ast(json_str) == tree
    True

"""

from __future__ import annotations

import json
from typing import Any

from markpipe.ast.nodes import Node, Point, Position, get_children, node_class, node_fields
from markpipe.constants import AST_SCHEMA_VERSION
from markpipe.exceptions import SerializationError


def _serialize_position(position: Position | None) -> dict[str, Any] | None:
    if position is None:
        return None
    return {
        "start": {"line": position.start.line, "column": position.start.column, "offset": position.start.offset},
        "end": {"line": position.end.line, "column": position.end.column, "offset": position.end.offset},
    }


def _deserialize_position(data: dict[str, Any] | None) -> Position | None:
    if data is None:
        return None
    try:
        return Position(start=Point(**data["start"]), end=Point(**data["end"]))
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"Invalid position: {data!r}", original_error=e) from e


def ast_to_dict(node: Node, include_positions: bool = True) -> dict[str, Any]:
    """Convert a node and its subtree into plain dictionaries.

    Parameters
    ----------
    node : Node
        Node to serialize
    include_positions : bool, default True
        Whether to emit ``position`` entries

    Returns
    -------
    dict
        ``{"kind": ..., <attributes>, "children": [...]}``

    """
    result: dict[str, Any] = {"kind": node.kind}
    for name in node_fields(node):
        if name == "children":
            result["children"] = [ast_to_dict(child, include_positions) for child in get_children(node)]
        else:
            result[name] = getattr(node, name)
    if include_positions and node.position is not None:
        result["position"] = _serialize_position(node.position)
    return result


def dict_to_ast(data: dict[str, Any]) -> Node:
    """Rebuild a node from the output of ``ast_to_dict``.

    Raises
    ------
    SerializationError
        If the kind is unknown or the fields do not fit the node class

    """
    if not isinstance(data, dict) or "kind" not in data:
        raise SerializationError(f"Serialized node must be a dict with a 'kind' key, got {type(data).__name__}")

    try:
        cls = node_class(data["kind"])
    except KeyError as e:
        raise SerializationError(str(e.args[0]), original_error=e) from e

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key in ("kind", "schema_version"):
            continue
        if key == "children":
            if not isinstance(value, list):
                raise SerializationError(f"'children' of {data['kind']} must be a list")
            kwargs["children"] = [dict_to_ast(child) for child in value]
        elif key == "position":
            kwargs["position"] = _deserialize_position(value)
        else:
            kwargs[key] = value

    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot build {cls.__name__}: {e}", original_error=e) from e


def ast_to_json(node: Node, indent: int | None = None, include_positions: bool = True) -> str:
    """Serialize a node to a JSON string with a schema version envelope.

    Parameters
    ----------
    node : Node
        The node to serialize
    indent : int or None, default None
        Indentation for pretty printing
    include_positions : bool, default True
        Whether to emit positions

    Returns
    -------
    str
        JSON text of the form ``{"schema_version": 1, "kind": ..., ...}``

    """
    versioned = {"schema_version": AST_SCHEMA_VERSION, **ast_to_dict(node, include_positions)}
    return json.dumps(versioned, indent=indent, ensure_ascii=False)


def json_to_ast(json_str: str) -> Node:
    """Deserialize a JSON string produced by ``ast_to_json``.

    Raises
    ------
    SerializationError
        If the JSON is malformed, the schema version is unsupported or the
        tree cannot be rebuilt

    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON: {e}", original_error=e) from e

    if not isinstance(data, dict):
        raise SerializationError("Serialized tree must be a JSON object")

    version = data.get("schema_version")
    if version is not None and version != AST_SCHEMA_VERSION:
        raise SerializationError(f"Unsupported schema version {version}; expected {AST_SCHEMA_VERSION}")

    return dict_to_ast(data)
