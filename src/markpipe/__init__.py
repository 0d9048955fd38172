"""markpipe - a document transformation pipeline for lightweight markup.

markpipe scans Markdown-style text into a positioned tree, runs an ordered
chain of independent plugins over that tree, and prints the result back to
text. The three stages are composed by an immutable ``Processor``; each run
threads one ``VFile`` carrying the text, the tree, diagnostics and a
namespaced data sidecar.

Key Features
------------
- Two-phase scanner (event stream, then reduction) with source positions
  on every node
- Recoverable anomalies reported as diagnostics instead of exceptions
- Plugins as plain functions, attached once per frozen processor
- Synchronous and asynchronous processing with cooperative cancellation
- Round-trip printer whose output re-parses to an equal tree
- Entry point discovery for third-party plugins

Requirements
------------
- Python 3.10+
- PyYAML (front matter plugin)

Examples
--------
Process a document:

    >>> from markpipe import create_processor
    >>> processor = create_processor(plugins=[("heading-offset", {"offset": 1})]).freeze()
    >>> vfile = processor.process_sync("# Title\\n\\nBody *text*.")
    >>> str(vfile)
    '## Title\\n\\nBody *text*.\\n'

Write a plugin:

    >>> from markpipe import Processor, visit
    >>> def shout():
    ...     def transform(tree, vfile):
    ...         def upper(node, index, parent):
    ...             node.value = node.value.upper()
    ...         visit(tree, "text", upper)
    ...     return transform
    >>> Processor().use(shout).process_sync("hello").text
    'HELLO\\n'

See Also
--------
markpipe.ast : Tree model and utilities
markpipe.pipeline : Plugin contract, registry and processor

"""

#  Copyright (c) 2025 Tom Villani, Ph.D.

# Check Python version before any imports
import sys

if sys.version_info < (3, 10):
    raise ImportError(
        "markpipe requires Python 3.10 or later. "
        f"You are using Python {sys.version_info.major}.{sys.version_info.minor}."
    )

__version__ = "1.0.0"

from markpipe.ast import (
    CONTINUE,
    SKIP,
    STOP,
    Node,
    Point,
    Position,
    Root,
    build,
    clone_node,
    iter_nodes,
    nodes_equal,
    strip_positions,
    to_text,
    validate_tree,
    visit,
)
from markpipe.exceptions import (
    ConfigurationError,
    MarkpipeError,
    ParsingError,
    PluginError,
    PrintingError,
    SerializationError,
    SynchronyError,
    VFileFailure,
)
from markpipe.options import PrinterOptions, ScannerOptions
from markpipe.parser import MarkdownScanner, parse
from markpipe.pipeline import (
    Keep,
    PluginSpec,
    Processor,
    PurityReport,
    Registration,
    Replace,
    TransformResult,
    check_plugin_purity,
    create_processor,
    plugin_registry,
)
from markpipe.printer import MarkdownPrinter, print_markdown
from markpipe.vfile import Diagnostic, Severity, VFile

__all__ = [
    "__version__",
    # Processor
    "Processor",
    "create_processor",
    "Registration",
    "PluginSpec",
    "TransformResult",
    "Keep",
    "Replace",
    "plugin_registry",
    "check_plugin_purity",
    "PurityReport",
    # Stages
    "MarkdownScanner",
    "MarkdownPrinter",
    "parse",
    "print_markdown",
    "ScannerOptions",
    "PrinterOptions",
    # Files and diagnostics
    "VFile",
    "Diagnostic",
    "Severity",
    # Tree
    "Node",
    "Root",
    "Point",
    "Position",
    "build",
    "visit",
    "iter_nodes",
    "clone_node",
    "nodes_equal",
    "strip_positions",
    "to_text",
    "validate_tree",
    "CONTINUE",
    "SKIP",
    "STOP",
    # Exceptions
    "MarkpipeError",
    "ConfigurationError",
    "SynchronyError",
    "ParsingError",
    "PrintingError",
    "PluginError",
    "VFileFailure",
    "SerializationError",
]
