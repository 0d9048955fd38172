#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/pipeline/__init__.py
"""Plugin pipeline: plugin contract, registry, processor and purity check.

Examples
--------
    >>> from markpipe.pipeline import create_processor
    >>> processor = create_processor(plugins=["front-matter"]).freeze()
    >>> vfile = processor.process_sync("---\\ntitle: Hi\\n---\\n# Hi")
    >>> vfile.data["front_matter:data"]
    {'title': 'Hi'}

"""

from markpipe.pipeline.plugin import (
    Keep,
    ParameterSpec,
    Plugin,
    PluginSpec,
    Registration,
    Replace,
    Transformer,
    TransformResult,
    plugin_name,
)
from markpipe.pipeline.processor import CancelToken, Processor, create_processor
from markpipe.pipeline.purity import PurityReport, check_plugin_purity
from markpipe.pipeline.registry import PluginRegistry, plugin_registry

__all__ = [
    "CancelToken",
    "Keep",
    "ParameterSpec",
    "Plugin",
    "PluginRegistry",
    "PluginSpec",
    "Processor",
    "PurityReport",
    "Registration",
    "Replace",
    "Transformer",
    "TransformResult",
    "check_plugin_purity",
    "create_processor",
    "plugin_name",
    "plugin_registry",
]
