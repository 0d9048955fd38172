#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/plugins/builtin.py
"""Built-in plugins for common tree processing tasks.

Each function here is a plugin: it is called once when a processor is
frozen and returns the transformer that runs on every document. None of
them keeps state between documents.

Available Plugins
-----------------
- front_matter: Parse YAML front matter into ``vfile.data``
- heading_offset: Shift heading depths
- remove_kinds: Remove nodes of the given kinds
- validate_structure: Report tree invariant violations as diagnostics

Examples
--------
Shift headings down two levels:

    >>> processor = Processor().use(heading_offset, {"offset": 2}).freeze()

Drop images and inline code:

    >>> processor = Processor().use(remove_kinds, {"kinds": ["image", "inline_code"]})

"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Optional

import yaml

from markpipe.ast.nodes import NODE_TYPES, FrontMatter, Heading, Node, Root
from markpipe.ast.validation import validate_tree
from markpipe.ast.visit import CONTINUE, iter_nodes, visit
from markpipe.constants import MAX_HEADING_DEPTH, MIN_HEADING_DEPTH, RULE_INVALID_STRUCTURE
from markpipe.pipeline.plugin import Transformer
from markpipe.vfile import VFile

logger = logging.getLogger(__name__)

FRONT_MATTER_NAMESPACE = "front_matter"
FRONT_MATTER_KEY = f"{FRONT_MATTER_NAMESPACE}:data"
RULE_INVALID_FRONT_MATTER = "invalid-front-matter"


def front_matter(strict: bool = False) -> Transformer:
    """Parse the document's YAML front matter into ``vfile.data``.

    The parsed mapping is stored under ``"front_matter:data"``; documents
    without front matter get no key. The front matter node itself stays in
    the tree so it is printed back unchanged.

    Parameters
    ----------
    strict : bool, default False
        Fail the file on invalid YAML instead of recording a warning

    """

    def transform(tree: Root, vfile: VFile) -> None:
        node = tree.children[0] if tree.children else None
        if not isinstance(node, FrontMatter):
            return

        try:
            parsed = yaml.safe_load(node.value) if node.value.strip() else {}
        except yaml.YAMLError as e:
            _report(vfile, f"Invalid YAML front matter: {e}", node, strict)
            return

        if not isinstance(parsed, dict):
            _report(vfile, f"Front matter must be a mapping, got {type(parsed).__name__}", node, strict)
            return

        vfile.data[FRONT_MATTER_KEY] = parsed
        logger.debug("Parsed %d front matter field(s)", len(parsed))

    return transform


def _report(vfile: VFile, text: str, node: Node, strict: bool) -> None:
    if strict:
        vfile.fail(text, position=node, rule_id=RULE_INVALID_FRONT_MATTER, source=FRONT_MATTER_NAMESPACE)
    vfile.message(text, position=node, rule_id=RULE_INVALID_FRONT_MATTER, source=FRONT_MATTER_NAMESPACE)


def heading_offset(offset: int = 1) -> Optional[Transformer]:
    """Shift heading depths by ``offset``, clamping to 1-6.

    Parameters
    ----------
    offset : int, default 1
        Levels to shift; negative values promote headings

    """
    if offset == 0:
        return None

    def transform(tree: Root, vfile: VFile) -> None:
        for heading in iter_nodes(tree, Heading):
            assert isinstance(heading, Heading)
            heading.depth = max(MIN_HEADING_DEPTH, min(MAX_HEADING_DEPTH, heading.depth + offset))

    return transform


def remove_kinds(kinds: Iterable[str] = ("image",)) -> Transformer:
    """Remove every node whose kind is in ``kinds``, with its subtree.

    Parameters
    ----------
    kinds : iterable of str, default ("image",)
        Node kinds to remove; ``root`` cannot be removed

    Raises
    ------
    ValueError
        If a kind is unknown or is ``root``

    """
    selected = frozenset(kinds)
    unknown = sorted(kind for kind in selected if kind not in NODE_TYPES)
    if unknown:
        raise ValueError(f"Unknown node kinds: {', '.join(unknown)}")
    if "root" in selected:
        raise ValueError("The root node cannot be removed")

    def remove(node: Node, index: Optional[int], parent: Optional[Node]) -> Any:
        if parent is None or index is None:
            return CONTINUE
        del parent.children[index]  # type: ignore[attr-defined]
        return index

    def transform(tree: Root, vfile: VFile) -> None:
        visit(tree, lambda node: node.kind in selected, remove)

    return transform


def validate_structure(fail_on_error: bool = False) -> Transformer:
    """Report tree invariant violations as diagnostics.

    Useful after plugins that rebuild parts of the tree. Each violation
    becomes a WARNING with rule id ``invalid-structure``.

    Parameters
    ----------
    fail_on_error : bool, default False
        Fail the file on the first violation

    """

    def transform(tree: Root, vfile: VFile) -> None:
        for issue in validate_tree(tree):
            text = f"Invalid tree structure: {issue}"
            if fail_on_error:
                vfile.fail(text, position=issue.position, rule_id=RULE_INVALID_STRUCTURE, source="validate_structure")
            vfile.message(text, position=issue.position, rule_id=RULE_INVALID_STRUCTURE, source="validate_structure")

    return transform
