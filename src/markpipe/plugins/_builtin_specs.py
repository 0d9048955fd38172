#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/plugins/_builtin_specs.py
"""Published specs for the built-in plugins.

These objects are registered on first registry access and also exported
through the ``markpipe.plugins`` entry point group in pyproject.toml.

"""

from __future__ import annotations

from markpipe.pipeline.plugin import ParameterSpec, PluginSpec
from markpipe.plugins.builtin import front_matter, heading_offset, remove_kinds, validate_structure

FRONT_MATTER_SPEC = PluginSpec(
    name="front-matter",
    factory=front_matter,
    description="Parse YAML front matter into vfile.data['front_matter:data']",
    parameters={
        "strict": ParameterSpec(type=bool, default=False, help="Fail the file on invalid front matter"),
    },
    version="1.0.0",
)

HEADING_OFFSET_SPEC = PluginSpec(
    name="heading-offset",
    factory=heading_offset,
    description="Shift heading levels by a specified offset",
    parameters={
        "offset": ParameterSpec(type=int, default=1, help="Number of levels to shift (positive or negative)"),
    },
    version="1.0.0",
)

REMOVE_KINDS_SPEC = PluginSpec(
    name="remove-kinds",
    factory=remove_kinds,
    description="Remove nodes of specified kinds from the tree",
    parameters={
        "kinds": ParameterSpec(
            type=(list, tuple, frozenset, set),
            default=("image",),
            help="Node kinds to remove (e.g. 'image', 'code_block')",
        ),
    },
    version="1.0.0",
)

VALIDATE_STRUCTURE_SPEC = PluginSpec(
    name="validate-structure",
    factory=validate_structure,
    description="Report tree invariant violations as diagnostics",
    parameters={
        "fail_on_error": ParameterSpec(type=bool, default=False, help="Fail the file on the first violation"),
    },
    version="1.0.0",
)
