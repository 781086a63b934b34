"""Configuration section types for tokenweave settings.

Each section is a pydantic model nested inside Settings:

- ValidationConfig: how validation issues are reported
- ResolutionConfig: resolver document and alias resolution limits
- ReferencesConfig: file reference loading
- BatchConfig: resolving many permutations at once

All types use `extra="allow"` so unknown keys survive validation and can
be audited with collect_all_extra_fields() (typos in config files).
"""

import typing as _typing

import pydantic as _pydantic

import tokenweave.constants as constants

# =============================================================================
# Base class with introspection
# =============================================================================


class ConfigBase(_pydantic.BaseModel):
    """
    Base class for all config types.

    Unknown fields are preserved rather than silently dropped.
    """

    model_config = _pydantic.ConfigDict(extra="allow")

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Return fields that were provided but are not in the schema."""
        return dict(self.model_extra) if self.model_extra else {}

    def collect_all_extra_fields(
        self,
        prefix: str = "",
    ) -> dict[str, _typing.Any]:
        """
        Recursively collect extra fields from this config and nested configs.

        Returns a flat dict with dotted paths as keys, e.g.:
            {"validation.mdoe": "warn"}

        Args:
            prefix: Dotted path prefix (used in recursion).

        Returns:
            Flat dict of path -> value for all unrecognized fields.
        """
        result: dict[str, _typing.Any] = {}

        for key, value in self.get_extra_fields().items():
            result[f"{prefix}.{key}" if prefix else key] = value

        for field_name in self.__class__.model_fields:
            value = getattr(self, field_name, None)
            if isinstance(value, ConfigBase):
                child_prefix = f"{prefix}.{field_name}" if prefix else field_name
                result.update(value.collect_all_extra_fields(child_prefix))

        return result


# =============================================================================
# Validation
# =============================================================================


class ValidationConfig(ConfigBase):
    """
    Validation behaviour.

    YAML section: validation.*
    """

    mode: _typing.Literal["error", "warn", "off"] = "error"
    """error raises, warn reports through the warning callback, off skips."""


# =============================================================================
# Resolution
# =============================================================================


class ResolutionConfig(ConfigBase):
    """
    Resolver document and alias resolution settings.

    YAML section: resolution.*
    """

    max_alias_depth: int = _pydantic.Field(
        default=constants.DEFAULT_MAX_ALIAS_DEPTH, ge=1, le=10_000
    )
    """Maximum alias hops followed from one token."""

    allow_unknown_version: bool = False
    """Accept resolver documents whose version is not 2025.10."""

    error_on_missing_default: bool | None = None
    """Raise when an unsupplied modifier has no default. None follows validation.mode."""


# =============================================================================
# References
# =============================================================================


class ReferencesConfig(ConfigBase):
    """
    File reference loading.

    YAML section: references.*
    """

    base_dir: str | None = None
    """Directory for relative file references of in-memory documents. None = cwd."""

    file_cache_size: int = _pydantic.Field(
        default=constants.DEFAULT_FILE_CACHE_SIZE, ge=1
    )
    """Number of parsed files kept per FileCache."""


# =============================================================================
# Batch
# =============================================================================


class BatchConfig(ConfigBase):
    """
    Settings for resolving every permutation of a document.

    YAML section: batch.*
    """

    max_workers: int = _pydantic.Field(default=1, ge=1, le=64)
    """Threads used by TokenPipeline.resolve_all(). 1 = sequential."""
