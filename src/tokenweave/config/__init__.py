"""Configuration management for tokenweave."""

from tokenweave.config.settings import Settings, find_project_root
from tokenweave.config.sources import (
    ConfigFileError,
    DeepChainMapSettingsSource,
    get_project_config_path,
    get_user_config_dir,
    get_user_config_path,
)
from tokenweave.config.types import (
    BatchConfig,
    ConfigBase,
    ReferencesConfig,
    ResolutionConfig,
    ValidationConfig,
)

__all__ = [
    "BatchConfig",
    "ConfigBase",
    "ConfigFileError",
    "DeepChainMapSettingsSource",
    "ReferencesConfig",
    "ResolutionConfig",
    "Settings",
    "ValidationConfig",
    "find_project_root",
    "get_project_config_path",
    "get_user_config_dir",
    "get_user_config_path",
]
