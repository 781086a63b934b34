"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with TOKENWEAVE_ prefix
3. Layered YAML config files via DeepChainMap:
   - Project config: .tokenweave/config.yaml (highest)
   - User config: ~/.config/tokenweave/config.yaml
4. Field defaults (lowest)

Nested config uses double underscore delimiter:
  TOKENWEAVE_VALIDATION__MODE=warn
  TOKENWEAVE_RESOLUTION__MAX_ALIAS_DEPTH=20
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import tokenweave.config.sources as sources
import tokenweave.config.types as types
import tokenweave.validation as _validation

ENV_PROJECT_ROOT = "TOKENWEAVE_PROJECT_ROOT"

_PROJECT_MARKERS = (".tokenweave", "pyproject.toml", "package.json", ".git")


def find_project_root(start_path: _pathlib.Path | None = None) -> _pathlib.Path | None:
    """
    Find the project root directory.

    Uses TOKENWEAVE_PROJECT_ROOT when set, otherwise walks up from
    start_path (default cwd) looking for a project marker.

    Returns:
        The project root, or None when no marker is found.
    """
    if project_root := _os.environ.get(ENV_PROJECT_ROOT):
        return _pathlib.Path(project_root)

    current = (start_path or _pathlib.Path.cwd()).resolve()
    while current != current.parent:
        if any((current / marker).exists() for marker in _PROJECT_MARKERS):
            return current
        current = current.parent
    return None


class Settings(_pydantic_settings.BaseSettings):
    """
    Tokenweave configuration settings.

    All settings can be overridden via environment variables with TOKENWEAVE_ prefix.
    For nested config, use double underscore: TOKENWEAVE_VALIDATION__MODE=warn

    Config precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (TOKENWEAVE_*)
    3. Project config (.tokenweave/config.yaml)
    4. User config (~/.config/tokenweave/config.yaml)
    5. Field defaults
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="TOKENWEAVE_",
        env_nested_delimiter="__",
        extra="allow",
    )

    validation: types.ValidationConfig = _pydantic.Field(
        default_factory=types.ValidationConfig
    )
    resolution: types.ResolutionConfig = _pydantic.Field(
        default_factory=types.ResolutionConfig
    )
    references: types.ReferencesConfig = _pydantic.Field(
        default_factory=types.ReferencesConfig
    )
    batch: types.BatchConfig = _pydantic.Field(default_factory=types.BatchConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args), highest
        2. env_settings (TOKENWEAVE_* env vars)
        3. yaml_settings (config.yaml files via DCM)
        4. (defaults via Field definitions), lowest
        """
        return (
            init_settings,
            env_settings,
            sources.DeepChainMapSettingsSource(settings_cls, find_project_root()),
        )

    @property
    def validation_mode(self) -> _validation.ValidationMode:
        return self.validation.mode

    @property
    def max_alias_depth(self) -> int:
        return self.resolution.max_alias_depth

    @property
    def base_dir(self) -> _pathlib.Path | None:
        if self.references.base_dir is None:
            return None
        return _pathlib.Path(self.references.base_dir).expanduser()

    def validation_handler(
        self,
        on_warning: _typing.Callable[[str], None] | None = None,
    ) -> _validation.ValidationHandler:
        """Build a ValidationHandler for the configured mode."""
        return _validation.ValidationHandler(self.validation.mode, on_warning)

    def get_unknown_fields(self) -> dict[str, _typing.Any]:
        """
        Dotted paths of every config key not in the schema.

        Useful for catching typos in config files, e.g. `validation.mdoe`.
        """
        result: dict[str, _typing.Any] = {}
        if self.model_extra:
            result.update(self.model_extra)
        for field_name in type(self).model_fields:
            value = getattr(self, field_name, None)
            if isinstance(value, types.ConfigBase):
                result.update(value.collect_all_extra_fields(field_name))
        return result
