"""Tests for DeepChainMapSettingsSource and the config path helpers."""

import pathlib as _pathlib

import pydantic_settings as _pydantic_settings
import pytest as _pytest
import yaml as _yaml

import tokenweave.config as config
import tokenweave.config.sources as sources


def _write_yaml(path: _pathlib.Path, data: object) -> _pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_yaml.safe_dump(data), encoding="utf-8")
    return path


class TestDeepChainMapSettingsSourceClass:
    """Verify the DeepChainMapSettingsSource class API."""

    def test_is_pydantic_settings_source(self) -> None:
        """DeepChainMapSettingsSource should be a pydantic-settings source."""
        assert issubclass(
            sources.DeepChainMapSettingsSource,
            _pydantic_settings.PydanticBaseSettingsSource,
        )


class TestHelperFunctions:
    """Tests for path helper functions."""

    def test_get_user_config_dir_default(self, monkeypatch: _pytest.MonkeyPatch) -> None:
        """Without env var, should return XDG-compliant directory."""
        monkeypatch.delenv("TOKENWEAVE_CONFIG_DIR", raising=False)
        assert sources.get_user_config_dir() == _pathlib.Path.home() / ".config" / "tokenweave"

    def test_get_user_config_path_with_env_var(self, monkeypatch: _pytest.MonkeyPatch) -> None:
        """With env var set, should use that directory."""
        monkeypatch.setenv("TOKENWEAVE_CONFIG_DIR", "/custom/config/dir")
        assert sources.get_user_config_path() == _pathlib.Path("/custom/config/dir/config.yaml")

    def test_get_project_config_path(self) -> None:
        """Should return project-relative config path."""
        path = sources.get_project_config_path(_pathlib.Path("/some/project"))
        assert path == _pathlib.Path("/some/project/.tokenweave/config.yaml")


class TestLoading:
    """Loading and merging config layers."""

    def test_no_files(self, tmp_path: _pathlib.Path) -> None:
        """Missing files are skipped."""
        source = sources.DeepChainMapSettingsSource(
            config.Settings,
            tmp_path,
            user_config_path=tmp_path / "missing.yaml",
        )

        assert source() == {}
        assert source.get_loaded_layers() == []

    def test_project_overrides_user(self, tmp_path: _pathlib.Path) -> None:
        """Project config wins, nested sections merge."""
        user = _write_yaml(
            tmp_path / "user" / "config.yaml",
            {"validation": {"mode": "warn"}, "resolution": {"max_alias_depth": 10}},
        )
        project_root = tmp_path / "project"
        _write_yaml(
            sources.get_project_config_path(project_root),
            {"validation": {"mode": "off"}},
        )

        source = sources.DeepChainMapSettingsSource(
            config.Settings, project_root, user_config_path=user
        )

        assert source() == {
            "validation": {"mode": "off"},
            "resolution": {"max_alias_depth": 10},
        }
        assert [name for name, _ in source.get_loaded_layers()] == ["project", "user"]

    def test_provenance(self, tmp_path: _pathlib.Path) -> None:
        """The DCM reports which file supplied a value."""
        user = _write_yaml(tmp_path / "user.yaml", {"batch": {"max_workers": 4}})
        source = sources.DeepChainMapSettingsSource(
            config.Settings, None, user_config_path=user
        )

        index = source.dcm.source_of(("batch", "max_workers"))
        assert source.dcm.layer_name(index) == "user"

    def test_empty_file_skipped(self, tmp_path: _pathlib.Path) -> None:
        """An empty YAML file contributes nothing."""
        user = tmp_path / "config.yaml"
        user.write_text("", encoding="utf-8")
        source = sources.DeepChainMapSettingsSource(
            config.Settings, None, user_config_path=user
        )

        assert source.get_loaded_layers() == []

    def test_get_field_value(self, tmp_path: _pathlib.Path) -> None:
        """get_field_value() returns merged sections and flags complex values."""
        user = _write_yaml(tmp_path / "config.yaml", {"validation": {"mode": "warn"}})
        source = sources.DeepChainMapSettingsSource(
            config.Settings, None, user_config_path=user
        )

        assert source.get_field_value(None, "validation") == (  # type: ignore[arg-type]
            {"mode": "warn"},
            "validation",
            True,
        )
        assert source.get_field_value(None, "batch") == (None, "batch", False)  # type: ignore[arg-type]


class TestMalformedFiles:
    """Broken config files raise ConfigFileError."""

    def test_invalid_yaml(self, tmp_path: _pathlib.Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("validation: [unclosed", encoding="utf-8")

        with _pytest.raises(config.ConfigFileError, match="invalid YAML"):
            sources.DeepChainMapSettingsSource(config.Settings, None, user_config_path=path)

    def test_non_mapping_top_level(self, tmp_path: _pathlib.Path) -> None:
        path = _write_yaml(tmp_path / "config.yaml", ["not", "a", "mapping"])

        with _pytest.raises(config.ConfigFileError, match="must be a YAML mapping"):
            sources.DeepChainMapSettingsSource(config.Settings, None, user_config_path=path)

    def test_error_carries_path(self, tmp_path: _pathlib.Path) -> None:
        path = _write_yaml(tmp_path / "config.yaml", "scalar")

        with _pytest.raises(config.ConfigFileError) as exc_info:
            sources.DeepChainMapSettingsSource(config.Settings, None, user_config_path=path)
        assert exc_info.value.path == path
