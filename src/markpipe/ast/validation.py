#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/ast/validation.py
"""Structural validation of trees.

``TreeValidator`` checks the invariants every tree must satisfy between
pipeline stages:

- the top node is a Root, and no Root appears below it
- only literal kinds carry a string ``value``
- parent kinds have a list of ``children`` and leaves have none
- containment rules: block content inside Root, BlockQuote and ListItem;
  inline content inside Heading, Paragraph, Emphasis, Strong and Link;
  only ListItem inside List; FrontMatter only as the first child of Root
- no node instance appears twice in the tree
- source positions of children lie inside their parent's position and
  siblings do not overlap (synthetic nodes are skipped)

Examples
--------
    >>> problems = validate_tree(tree)
    >>> if problems:
    ...     print("\\n".join(str(problem) for problem in problems))

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from markpipe.ast.nodes import (
    BlockQuote,
    Emphasis,
    FrontMatter,
    Heading,
    Link,
    List,
    ListItem,
    Node,
    Paragraph,
    Position,
    Root,
    Strong,
)
from markpipe.ast.visit import iter_nodes

_BLOCK_CONTAINERS = (Root, BlockQuote, ListItem)
_INLINE_CONTAINERS = (Heading, Paragraph, Emphasis, Strong, Link)


@dataclass(frozen=True)
class ValidationIssue:
    """A single invariant violation.

    Parameters
    ----------
    message : str
        Description of the problem
    node : Node
        The offending node
    path : tuple of int
        Child indices leading from the root to the node

    """

    message: str
    node: Node
    path: tuple[int, ...]

    @property
    def position(self) -> Optional[Position]:
        """Source position of the offending node, if any."""
        return self.node.position

    def __str__(self) -> str:
        location = "/".join(str(i) for i in self.path) or "<root>"
        return f"{location}: {self.message}"


class TreeValidator:
    """Collect invariant violations from a tree.

    Parameters
    ----------
    strict : bool, default False
        Raise ``ValueError`` on the first violation instead of collecting
    check_positions : bool, default True
        Whether to check position containment and sibling overlap

    """

    def __init__(self, strict: bool = False, check_positions: bool = True):
        """Initialize the validator."""
        self.strict = strict
        self.check_positions = check_positions
        self.issues: list[ValidationIssue] = []
        self._seen: set[int] = set()

    def _add_issue(self, message: str, node: Node, path: tuple[int, ...]) -> None:
        issue = ValidationIssue(message=message, node=node, path=path)
        self.issues.append(issue)
        if self.strict:
            raise ValueError(str(issue))

    def validate(self, tree: Node) -> list[ValidationIssue]:
        """Validate ``tree`` and return the issues found."""
        self.issues = []
        self._seen = set()
        if not isinstance(tree, Root):
            self._add_issue(f"Tree must start with a root node, got {tree.kind or type(tree).__name__}", tree, ())
        self._check(tree, (), is_top=True)
        return self.issues

    def _check(self, node: Node, path: tuple[int, ...], is_top: bool = False) -> None:
        if id(node) in self._seen:
            self._add_issue(f"Node instance {node.kind} appears more than once in the tree", node, path)
            return
        self._seen.add(id(node))

        if isinstance(node, Root) and not is_top:
            self._add_issue("Root node found below the top of the tree", node, path)

        if node.is_literal:
            if not isinstance(getattr(node, "value", None), str):
                self._add_issue(f"{node.kind} must carry a string value", node, path)
        elif "value" in vars(node):
            self._add_issue(f"{node.kind} must not carry a value", node, path)

        if not node.is_parent:
            if "children" in vars(node):
                self._add_issue(f"{node.kind} must not have children", node, path)
            return

        children = getattr(node, "children", None)
        if not isinstance(children, list):
            self._add_issue(f"{node.kind} children must be a list", node, path)
            return

        self._check_containment(node, children, path)
        if self.check_positions:
            self._check_positions(node, children, path)

        for index, child in enumerate(children):
            if not isinstance(child, Node):
                self._add_issue(f"Child {index} of {node.kind} is not a node: {child!r}", node, path)
                continue
            self._check(child, path + (index,))

    def _check_containment(self, node: Node, children: list[Node], path: tuple[int, ...]) -> None:
        for index, child in enumerate(children):
            if not isinstance(child, Node):
                continue
            child_path = path + (index,)
            if isinstance(child, FrontMatter) and not (isinstance(node, Root) and index == 0):
                self._add_issue("front_matter may only be the first child of the root", child, child_path)
            elif isinstance(node, List):
                if not isinstance(child, ListItem):
                    self._add_issue(f"list can only contain list_item nodes, got {child.kind}", child, child_path)
            elif isinstance(node, _BLOCK_CONTAINERS):
                if not child.is_block or isinstance(child, ListItem):
                    self._add_issue(f"{node.kind} can only contain block nodes, got {child.kind}", child, child_path)
            elif isinstance(node, _INLINE_CONTAINERS):
                if child.is_block:
                    self._add_issue(f"{node.kind} can only contain inline nodes, got {child.kind}", child, child_path)
                elif isinstance(node, Link) and isinstance(child, Link):
                    self._add_issue("link cannot contain another link", child, child_path)

    def _check_positions(self, node: Node, children: list[Node], path: tuple[int, ...]) -> None:
        previous: Optional[Position] = None
        for index, child in enumerate(children):
            if not isinstance(child, Node) or child.position is None:
                continue
            child_path = path + (index,)
            if node.position is not None and not node.position.contains(child.position):
                self._add_issue(f"{child.kind} position lies outside its parent {node.kind}", child, child_path)
            if previous is not None and (
                previous.overlaps(child.position) or child.position.start.offset < previous.end.offset
            ):
                self._add_issue(f"{child.kind} position overlaps or precedes its previous sibling", child, child_path)
            previous = child.position


def validate_tree(tree: Node, strict: bool = False, check_positions: bool = True) -> list[ValidationIssue]:
    """Validate ``tree`` and return every invariant violation found.

    Parameters
    ----------
    tree : Node
        Tree to validate; should be a Root
    strict : bool, default False
        Raise ``ValueError`` on the first violation
    check_positions : bool, default True
        Check position containment and sibling ordering

    Returns
    -------
    list of ValidationIssue
        Empty when the tree is valid

    """
    return TreeValidator(strict=strict, check_positions=check_positions).validate(tree)


def find_shared_nodes(first: Node, second: Node) -> list[Node]:
    """Return node instances that occur in both trees.

    Two trees attached to different containers must share nothing; a
    non-empty result means a plugin copied nodes without cloning them.

    """
    ids = {id(node) for node in iter_nodes(first)}
    return [node for node in iter_nodes(second) if id(node) in ids]
