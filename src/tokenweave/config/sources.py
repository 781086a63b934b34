"""Custom pydantic-settings source for tokenweave configuration.

DeepChainMapSettingsSource loads configuration from layered YAML files
and merges them with DeepChainMap, so nested sections merge naturally
while scalar values override.

Configuration layers (in precedence order, highest first):
1. Environment variables (handled by pydantic-settings)
2. Project config: .tokenweave/config.yaml in the project root
3. User config: ~/.config/tokenweave/config.yaml (or TOKENWEAVE_CONFIG_DIR)
4. Field defaults on the Settings models

Environment variables:
- TOKENWEAVE_CONFIG_DIR: Override user config directory
"""

import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings
import yaml as _yaml

import tokenweave.utils as utils

_logger = _logging.getLogger(__name__)

ENV_CONFIG_DIR = "TOKENWEAVE_CONFIG_DIR"


class ConfigFileError(Exception):
    """Error loading or parsing a configuration file."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Error in config file {path}: {message}")


class DeepChainMapSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that loads layered YAML config files via DeepChainMap.

    DCM is used only for merging the YAML layers. The merged plain dict is
    handed to pydantic, which validates and converts it to typed sections.
    Missing config files are normal and skipped.
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        project_root: _pathlib.Path | None = None,
        *,
        user_config_path: _pathlib.Path | None = None,
    ) -> None:
        """
        Initialize the settings source.

        Args:
            settings_cls: The Settings class being populated.
            project_root: Optional project root for project-level config.
            user_config_path: Override path for the user config file (for testing).
        """
        super().__init__(settings_cls)
        self._project_root = project_root
        self._user_config_path = user_config_path
        self._loaded_layers: list[tuple[str, _pathlib.Path]] = []
        self._dcm = self._load_config_layers()

    def _load_config_layers(self) -> utils.DeepChainMap:
        """Load config files into a DeepChainMap, highest precedence first."""
        layers: list[dict[str, _typing.Any]] = []
        layer_info: list[tuple[str, _pathlib.Path]] = []

        candidates: list[tuple[str, _pathlib.Path]] = []
        if self._project_root is not None:
            candidates.append(("project", get_project_config_path(self._project_root)))
        candidates.append(("user", self._user_config_path or get_user_config_path()))

        for name, path in candidates:
            if not path.exists():
                continue
            content = _load_yaml_file(path)
            if content:
                _logger.debug("Loaded %s config from %s", name, path)
                layers.append(content)
                layer_info.append((name, path))

        self._loaded_layers = layer_info
        return utils.DeepChainMap(
            *layers,
            names=[name for name, _ in layer_info],
            track_provenance=True,
        )

    @property
    def dcm(self) -> utils.DeepChainMap:
        """Access the underlying DeepChainMap for provenance queries."""
        return self._dcm

    def get_loaded_layers(self) -> list[tuple[str, _pathlib.Path]]:
        """(layer_name, path) for every loaded file, highest precedence first."""
        return list(self._loaded_layers)

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,  # noqa: ARG002 - required by pydantic-settings interface
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        """Get the merged value for one top-level field."""
        if field_name not in self._dcm:
            return None, field_name, False
        value = self._dcm.to_dict()[field_name]
        return value, field_name, isinstance(value, (dict, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """Return the merged config as a plain dict, unknown keys included."""
        return self._dcm.to_dict()


def _load_yaml_file(path: _pathlib.Path) -> dict[str, _typing.Any] | None:
    """
    Load a YAML config file.

    Returns:
        Parsed contents, or None if the file is empty.

    Raises:
        ConfigFileError: If the file cannot be read, is malformed YAML,
            or its top level is not a mapping.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(path, f"cannot read file: {e}") from e

    try:
        parsed = _yaml.safe_load(content)
    except _yaml.YAMLError as e:
        raise ConfigFileError(path, f"invalid YAML: {e}") from e

    if parsed is None:
        return None
    if not isinstance(parsed, dict):
        raise ConfigFileError(
            path,
            f"config must be a YAML mapping (dict), got {type(parsed).__name__}",
        )
    return parsed


def get_user_config_dir() -> _pathlib.Path:
    """
    Get the user config directory.

    Respects TOKENWEAVE_CONFIG_DIR, otherwise uses the XDG standard path.
    """
    config_dir_env = _os.environ.get(ENV_CONFIG_DIR)
    if config_dir_env:
        return _pathlib.Path(config_dir_env)
    return _pathlib.Path.home() / ".config" / "tokenweave"


def get_user_config_path() -> _pathlib.Path:
    """Path to config.yaml in the user config directory."""
    return get_user_config_dir() / "config.yaml"


def get_project_config_path(project_root: _pathlib.Path) -> _pathlib.Path:
    """Path to .tokenweave/config.yaml within a project."""
    return project_root / ".tokenweave" / "config.yaml"
