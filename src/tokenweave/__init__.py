"""
Tokenweave - design token resolution

Resolves layered design-token documents (sets, modifiers and a
resolutionOrder) into flat, alias-resolved token tables, one per
combination of modifier contexts.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("tokenweave")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)

import typing as _typing  # noqa: E402

import tokenweave.config as _config  # noqa: E402
import tokenweave.tokens.flattener as _flattener  # noqa: E402
from tokenweave.config import Settings  # noqa: E402
from tokenweave.errors import (  # noqa: E402
    CircularReferenceError,
    ConfigurationError,
    FileOperationError,
    ForbiddenReferenceError,
    ModifierError,
    ReferenceResolutionError,
    TokenReferenceError,
    TokenweaveError,
    ValidationError,
)
from tokenweave.pipeline import (  # noqa: E402
    PermutationOutcome,
    PipelineResult,
    TokenPipeline,
    modifier_info,
)
from tokenweave.resolution.aliases import AliasResolver  # noqa: E402
from tokenweave.resolution.engine import (  # noqa: E402
    ResolutionEngine,
    generate_permutations,
    resolve,
)
from tokenweave.resolution.file_cache import FileCache  # noqa: E402
from tokenweave.resolution.parser import ResolverParser  # noqa: E402
from tokenweave.resolution.references import ReferenceResolver  # noqa: E402
from tokenweave.resolution.types import (  # noqa: E402
    ParsedResolver,
    Permutation,
    ResolutionResult,
    ResolverDocument,
)
from tokenweave.tokens.extensions import GroupExtensionResolver  # noqa: E402
from tokenweave.tokens.flattener import TokenFlattener  # noqa: E402
from tokenweave.tokens.types import FlatToken, ResolvedTokens  # noqa: E402
from tokenweave.validation import ValidationHandler  # noqa: E402


def parse(
    path_or_object: _typing.Any,
    settings: _config.Settings | None = None,
) -> ParsedResolver:
    """
    Parse a resolver document from a JSON/YAML file or an in-memory mapping.

    Args:
        path_or_object: File path or resolver mapping.
        settings: Validation mode, base_dir and version policy. Loaded from
            files and environment when omitted.
    """
    settings = settings if settings is not None else _config.Settings()
    parser = ResolverParser(
        allow_unknown_version=settings.resolution.allow_unknown_version,
        base_dir=settings.base_dir,
        validation_handler=settings.validation_handler(),
    )
    return parser.parse(path_or_object)


def flatten(
    merged_document: _typing.Mapping[str, _typing.Any],
    validation_handler: ValidationHandler | None = None,
) -> ResolvedTokens:
    """Flatten a merged token document (aliases left unresolved)."""
    return _flattener.flatten(merged_document, validation_handler)


__all__ = [
    "AliasResolver",
    "CircularReferenceError",
    "ConfigurationError",
    "FileCache",
    "FileOperationError",
    "ForbiddenReferenceError",
    "FlatToken",
    "GroupExtensionResolver",
    "ModifierError",
    "ParsedResolver",
    "Permutation",
    "PermutationOutcome",
    "PipelineResult",
    "ReferenceResolutionError",
    "ReferenceResolver",
    "ResolutionEngine",
    "ResolutionResult",
    "ResolvedTokens",
    "ResolverDocument",
    "ResolverParser",
    "Settings",
    "TokenFlattener",
    "TokenPipeline",
    "TokenReferenceError",
    "TokenweaveError",
    "ValidationError",
    "ValidationHandler",
    "__version__",
    "__version_info__",
    "flatten",
    "generate_permutations",
    "modifier_info",
    "parse",
    "resolve",
]
