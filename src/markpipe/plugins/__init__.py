#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/plugins/__init__.py
"""Built-in plugins shipped with markpipe."""

from markpipe.plugins._builtin_specs import (
    FRONT_MATTER_SPEC,
    HEADING_OFFSET_SPEC,
    REMOVE_KINDS_SPEC,
    VALIDATE_STRUCTURE_SPEC,
)
from markpipe.plugins.builtin import (
    FRONT_MATTER_KEY,
    front_matter,
    heading_offset,
    remove_kinds,
    validate_structure,
)

BUILTIN_PLUGINS = (FRONT_MATTER_SPEC, HEADING_OFFSET_SPEC, REMOVE_KINDS_SPEC, VALIDATE_STRUCTURE_SPEC)

__all__ = [
    "BUILTIN_PLUGINS",
    "FRONT_MATTER_KEY",
    "FRONT_MATTER_SPEC",
    "HEADING_OFFSET_SPEC",
    "REMOVE_KINDS_SPEC",
    "VALIDATE_STRUCTURE_SPEC",
    "front_matter",
    "heading_offset",
    "remove_kinds",
    "validate_structure",
]
