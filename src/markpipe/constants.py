#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Constants and default values for the markpipe library.

This module centralizes the literal types, default option values and
diagnostic rule identifiers used across the scanner, printer and processor.

Constants are organized by category:
1. Type Definitions - Literal types shared by options and nodes
2. Tree Model - Node kind names and structural limits
3. Scanner Defaults - Tokenizer settings
4. Printer Defaults - Formatting rule defaults
5. Diagnostics - Rule identifiers and namespaces
"""

from __future__ import annotations

from typing import Literal

# =============================================================================
# Type Definitions
# =============================================================================

BulletChar = Literal["*", "-", "+"]
EmphasisSymbol = Literal["*", "_"]
CodeFenceChar = Literal["`", "~"]
RuleChar = Literal["*", "-", "_"]
OrderedDelimiter = Literal[".", ")"]

# =============================================================================
# Tree Model
# =============================================================================

MIN_HEADING_DEPTH = 1
MAX_HEADING_DEPTH = 6

# Separator between a plugin namespace and a field in data / sidecar keys
DATA_KEY_SEPARATOR = ":"

# Version of the dictionary layout produced by markpipe.ast.serialization
AST_SCHEMA_VERSION = 1

# =============================================================================
# Scanner Defaults
# =============================================================================

DEFAULT_TAB_SIZE = 4
DEFAULT_MAX_NESTING = 64
DEFAULT_PARSE_FRONT_MATTER = True

# Characters that may be backslash-escaped (CommonMark ASCII punctuation)
ESCAPABLE_CHARS = "!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"

# =============================================================================
# Printer Defaults
# =============================================================================

DEFAULT_BULLET: BulletChar = "*"
DEFAULT_EMPHASIS: EmphasisSymbol = "*"
DEFAULT_STRONG: EmphasisSymbol = "*"
DEFAULT_FENCE: CodeFenceChar = "`"
DEFAULT_RULE: RuleChar = "*"
DEFAULT_ORDERED_DELIMITER: OrderedDelimiter = "."
DEFAULT_SETEXT = False
DEFAULT_CLOSE_ATX = False

# =============================================================================
# Diagnostics
# =============================================================================

# Source label attached to diagnostics emitted by the scanner
SCANNER_SOURCE = "markpipe-scanner"
PROCESSOR_SOURCE = "markpipe"

RULE_UNCLOSED_FENCE = "unclosed-fence"
RULE_UNMATCHED_DELIMITER = "unmatched-delimiter"
RULE_UNCLOSED_LINK = "unclosed-link"
RULE_UNCLOSED_INLINE_CODE = "unclosed-inline-code"
RULE_HEADING_NO_SPACE = "heading-no-space"
RULE_NESTING_LIMIT = "nesting-limit"
RULE_ENCODING = "encoding"
RULE_CANCELLED = "cancelled"
RULE_INVALID_STRUCTURE = "invalid-structure"

# Entry point group scanned for third-party plugins
PLUGIN_ENTRY_POINT_GROUP = "markpipe.plugins"
