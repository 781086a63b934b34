"""
Shared pytest fixtures for tokenweave tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import json as _json
import os as _os
import pathlib as _pathlib
import typing as _typing

import pytest as _pytest

import tokenweave.config as config
import tokenweave.validation as validation

EXAMPLES_DIR = _pathlib.Path(__file__).parent.parent / "examples"


# =============================================================================
# Environment isolation
# =============================================================================


@_pytest.fixture(autouse=True)
def isolated_config(
    tmp_path_factory: _pytest.TempPathFactory,
    monkeypatch: _pytest.MonkeyPatch,
) -> _pathlib.Path:
    """
    Keep the developer's config files and TOKENWEAVE_* variables out of tests.

    Points the user config dir and the project root at empty temporary
    directories. Returns the project root.
    """
    for key in list(_os.environ):
        if key.startswith("TOKENWEAVE_"):
            monkeypatch.delenv(key)
    user_dir = tmp_path_factory.mktemp("user-config")
    project_root = tmp_path_factory.mktemp("project")
    monkeypatch.setenv("TOKENWEAVE_CONFIG_DIR", str(user_dir))
    monkeypatch.setenv("TOKENWEAVE_PROJECT_ROOT", str(project_root))
    return project_root


@_pytest.fixture
def clean_settings() -> config.Settings:
    """Settings with nothing but field defaults."""
    return config.Settings()


# =============================================================================
# Validation
# =============================================================================


class WarningCollector:
    """Collects messages passed to a ValidationHandler's warning callback."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)

    def handler(self, mode: validation.ValidationMode) -> validation.ValidationHandler:
        return validation.ValidationHandler(mode, on_warning=self)

    def joined(self) -> str:
        return "\n".join(self.messages)


@_pytest.fixture
def warnings() -> WarningCollector:
    return WarningCollector()


# =============================================================================
# Documents
# =============================================================================


@_pytest.fixture
def theme_document() -> dict[str, _typing.Any]:
    """
    One base set and a theme modifier overriding color.primary in dark.
    """
    return {
        "version": "2025.10",
        "sets": {
            "base": {"sources": [{"color": {"primary": {"$type": "color", "$value": "#ff0000"}}}]},
        },
        "modifiers": {
            "theme": {
                "contexts": {
                    "light": [],
                    "dark": [{"color": {"primary": {"$value": "#000000"}}}],
                },
                "default": "light",
            },
        },
        "resolutionOrder": [{"$ref": "#/sets/base"}, {"$ref": "#/modifiers/theme"}],
    }


@_pytest.fixture
def write_json(tmp_path: _pathlib.Path) -> _typing.Callable[[str, _typing.Any], _pathlib.Path]:
    """Write a JSON file below tmp_path and return its path."""

    def _write(relative: str, data: _typing.Any) -> _pathlib.Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_json.dumps(data), encoding="utf-8")
        return path

    return _write


@_pytest.fixture
def basic_example() -> _pathlib.Path:
    """Resolver file of the bundled basic example."""
    return EXAMPLES_DIR / "basic" / "tokens.resolver.json"
