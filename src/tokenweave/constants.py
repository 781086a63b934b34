"""
Shared constants for tokenweave.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Resolver document format
SUPPORTED_RESOLVER_VERSION = "2025.10"
"""Resolver document version understood by the parser."""

# Alias resolution
DEFAULT_MAX_ALIAS_DEPTH = 50
"""Maximum number of alias hops followed from a single token.

A chain of exactly this many links resolves; one more link fails. Cycles
are detected independently of this bound.
"""

# Reference resolution
DEFAULT_FILE_CACHE_SIZE = 256
"""Default number of parsed token files kept by a FileCache."""

TOKEN_FILE_SUFFIXES = (".json", ".yaml", ".yml")
"""File suffixes recognised when a bare string is used as a token source."""

# Suggestions ("did you mean?")
DEFAULT_MAX_SUGGESTIONS = 3
"""Maximum number of near-miss names offered in error messages."""

SUGGESTION_CUTOFF = 0.6
"""Similarity ratio (0..1) a candidate must reach to be suggested."""

# Structural keys
ROOT_TOKEN_KEY = "$root"
"""Group child holding the group's own value."""

SETS_POINTER_PREFIX = "#/sets/"
MODIFIERS_POINTER_PREFIX = "#/modifiers/"
RESOLUTION_ORDER_POINTER_PREFIX = "#/resolutionOrder"

TOKEN_METADATA_KEYS = ("$type", "$description", "$deprecated")
"""Group-level properties inherited by descendant tokens."""
