#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/pipeline/purity.py
"""Opt-in check that a plugin behaves as a pure function of its input.

The check attaches the plugin once, runs its transformer on two
independently parsed copies of the same text and compares the results.
A pure plugin produces identical serialized trees and diagnostics both
times and never hands the same node instance to two documents. State
carried over from the first run (a counter, a cache, a module-level list)
shows up as a difference.

Examples
--------
    >>> report = check_plugin_purity(my_plugin, "# Title\\n\\nBody")
    >>> if not report.pure:
    ...     print(report.summary())

"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from markpipe.ast.serialization import ast_to_json
from markpipe.ast.validation import find_shared_nodes
from markpipe.options import ScannerOptions
from markpipe.parser.scanner import MarkdownScanner
from markpipe.pipeline.plugin import plugin_name
from markpipe.pipeline.processor import PluginLike, Processor
from markpipe.vfile import Diagnostic, VFile

logger = logging.getLogger(__name__)


@dataclass
class PurityReport:
    """Result of ``check_plugin_purity``.

    Parameters
    ----------
    plugin_name : str
        Name of the checked plugin
    differences : list of str
        Unified diff lines between the two serialized output trees
    shared_nodes : list of str
        Kinds of node instances present in both output trees
    messages_match : bool
        Whether both runs recorded the same diagnostics

    """

    plugin_name: str
    differences: list[str] = field(default_factory=list)
    shared_nodes: list[str] = field(default_factory=list)
    messages_match: bool = True

    @property
    def pure(self) -> bool:
        """True when both runs were indistinguishable."""
        return not self.differences and not self.shared_nodes and self.messages_match

    def summary(self) -> str:
        """Human-readable description of what differed."""
        if self.pure:
            return f"Plugin '{self.plugin_name}' produced identical results on repeated runs"
        lines = [f"Plugin '{self.plugin_name}' is not pure:"]
        if self.differences:
            lines.append("  output trees differ:")
            lines.extend(f"    {line}" for line in self.differences)
        if self.shared_nodes:
            lines.append(f"  node instances shared between documents: {', '.join(self.shared_nodes)}")
        if not self.messages_match:
            lines.append("  diagnostics differ between runs")
        return "\n".join(lines)


def _message_key(message: Diagnostic) -> tuple[Any, ...]:
    return (message.text, message.severity, message.rule_id, message.source, message.position)


def check_plugin_purity(
    plugin: PluginLike,
    text: str,
    options: Optional[Mapping[str, Any]] = None,
    scanner_options: Optional[ScannerOptions] = None,
) -> PurityReport:
    """Run ``plugin`` twice over ``text`` and report any difference.

    Parameters
    ----------
    plugin : callable, PluginSpec or str
        Plugin to check
    text : str
        Document used for both runs
    options : Mapping, optional
        Options the plugin is registered with
    scanner_options : ScannerOptions, optional
        Scanner settings for parsing ``text``

    Returns
    -------
    PurityReport
        What differed between the runs, if anything

    Raises
    ------
    SynchronyError
        If the plugin's transformer is asynchronous
    PluginError
        If the transformer fails

    """
    processor = Processor(scanner=MarkdownScanner(scanner_options)).use(plugin, options).freeze()
    name = processor.registrations[0].name if processor.registrations else plugin_name(plugin)

    outputs = []
    files = []
    for _ in range(2):
        vfile = VFile(text)
        tree = processor.parse(vfile)
        outputs.append(processor.run_sync(tree, vfile))
        files.append(vfile)

    first_json = ast_to_json(outputs[0], indent=2).splitlines()
    second_json = ast_to_json(outputs[1], indent=2).splitlines()
    differences = list(
        difflib.unified_diff(first_json, second_json, fromfile="first run", tofile="second run", lineterm="")
    )
    shared = [node.kind for node in find_shared_nodes(outputs[0], outputs[1])]
    messages_match = [_message_key(m) for m in files[0].messages] == [_message_key(m) for m in files[1].messages]

    report = PurityReport(
        plugin_name=name, differences=differences, shared_nodes=shared, messages_match=messages_match
    )
    if not report.pure:
        logger.warning("%s", report.summary())
    return report
