"""Tests for TokenPipeline and the package-level helpers."""

import pathlib as _pathlib

import pytest as _pytest

import tokenweave
import tokenweave.config as config
import tokenweave.errors as errors
import tokenweave.pipeline as pipeline
import tokenweave.resolution.file_cache as file_cache


@_pytest.fixture
def layered_document() -> dict:
    """Aliases, $extends and token-level $ref across a set and a modifier."""
    return {
        "version": "2025.10",
        "sets": {
            "base": {
                "sources": [
                    {
                        "color": {
                            "$type": "color",
                            "red": {"$value": "#f00"},
                            "black": {"$value": "#000"},
                            "primary": {"$value": "{color.red}"},
                        },
                        "control": {"$type": "dimension", "padding": {"$value": "4px"}, "radius": {"$value": "2px"}},
                        "button": {"$extends": "{control}", "padding": {"$value": "8px"}},
                        "link": {"$ref": "#/color/primary"},
                    }
                ]
            }
        },
        "modifiers": {
            "theme": {
                "contexts": {
                    "light": [],
                    "dark": [{"color": {"primary": {"$value": "{color.black}"}}}],
                },
                "default": "light",
            }
        },
        "resolutionOrder": [{"$ref": "#/sets/base"}, {"$ref": "#/modifiers/theme"}],
    }


class TestResolve:
    """Single-permutation resolution."""

    def test_all_stages(self, layered_document: dict) -> None:
        result = pipeline.TokenPipeline().resolve(layered_document, {"theme": "dark"})
        tokens = result.tokens

        assert result.permutation == {"theme": "dark"}
        assert tokens["color.primary"].value == "#000"
        assert tokens["color.primary"].original_value == "{color.black}"
        assert tokens["color.primary"].source == "modifier:theme/dark"
        assert tokens["color.red"].source == "set:base"
        assert tokens["button.padding"].value == "8px"
        assert tokens["button.radius"].value == "2px"
        assert tokens["button.radius"].type == "dimension"
        assert tokens["link"].value == "#000"
        assert tokens["link"].type == "color"

    def test_defaults_apply(self, layered_document: dict) -> None:
        result = pipeline.TokenPipeline().resolve(layered_document)

        assert result.tokens["color.primary"].value == "#f00"

    def test_accepts_parsed_and_model(self, layered_document: dict) -> None:
        tokenweave_pipeline = pipeline.TokenPipeline()
        parsed = tokenweave_pipeline.load(layered_document)

        assert tokenweave_pipeline.load(parsed) is parsed
        from_model = tokenweave_pipeline.resolve(parsed.document, {"theme": "dark"})
        assert from_model.tokens["color.primary"].value == "#000"

    def test_settings_depth_limit(self) -> None:
        document = {
            "version": "2025.10",
            "sets": {
                "base": {
                    "sources": [
                        {"a": {"$value": "{b}"}, "b": {"$value": "{c}"}, "c": {"$value": 1}}
                    ]
                }
            },
            "resolutionOrder": [{"$ref": "#/sets/base"}],
        }
        settings = config.Settings(resolution={"max_alias_depth": 1})

        with _pytest.raises(errors.ValidationError, match="Maximum alias resolution depth"):
            pipeline.TokenPipeline(settings).resolve(document)

    def test_warn_mode_uses_callback(self, layered_document: dict) -> None:
        layered_document["sets"]["base"]["sources"].append({"broken": {"$value": "{nope}"}})
        messages: list[str] = []
        settings = config.Settings(validation={"mode": "warn"})

        result = pipeline.TokenPipeline(settings, on_warning=messages.append).resolve(layered_document)

        assert result.tokens["broken"].value == "{nope}"
        assert any("'nope'" in message for message in messages)

    def test_validation_mode_from_environment(
        self, layered_document: dict, monkeypatch: _pytest.MonkeyPatch
    ) -> None:
        layered_document["sets"]["base"]["sources"].append({"broken": {"$value": "{nope}"}})
        monkeypatch.setenv("TOKENWEAVE_VALIDATION__MODE", "off")

        result = pipeline.TokenPipeline().resolve(layered_document)

        assert result.tokens["broken"].value == "{nope}"

    def test_forbidden_pointer_in_token_file_warn_mode(self, write_json) -> None:
        write_json("tokens.json", {"a": {"$value": {"$ref": "#/resolutionOrder/0"}}})
        path = write_json(
            "r.json",
            {
                "version": "2025.10",
                "sets": {"base": {"sources": ["tokens.json"]}},
                "resolutionOrder": [{"$ref": "#/sets/base"}],
            },
        )
        messages: list[str] = []
        settings = config.Settings(validation={"mode": "warn"})

        with _pytest.raises(errors.ForbiddenReferenceError, match="resolutionOrder"):
            pipeline.TokenPipeline(settings, on_warning=messages.append).resolve(path)
        assert messages == []

    def test_shared_cache(self, write_json, tmp_path: _pathlib.Path) -> None:
        write_json("base.json", {"a": {"$value": 1}})
        path = write_json(
            "r.json",
            {
                "version": "2025.10",
                "sets": {"base": {"sources": ["base.json"]}},
                "resolutionOrder": [{"$ref": "#/sets/base"}],
            },
        )
        cache = file_cache.FileCache()
        tokenweave_pipeline = pipeline.TokenPipeline(cache=cache)

        tokenweave_pipeline.resolve(path)
        tokenweave_pipeline.resolve(path)

        assert tokenweave_pipeline.cache is cache
        assert cache.hits == 1


class TestResolveAll:
    """Batch resolution of every permutation."""

    @_pytest.mark.parametrize("workers", [1, 3])
    def test_every_permutation(self, layered_document: dict, workers: int) -> None:
        outcomes = pipeline.TokenPipeline().resolve_all(layered_document, max_workers=workers)

        assert [o.permutation for o in outcomes] == [{"theme": "light"}, {"theme": "dark"}]
        assert all(o.ok for o in outcomes)
        assert [o.result.tokens["color.primary"].value for o in outcomes] == ["#f00", "#000"]

    @_pytest.mark.parametrize("workers", [1, 2])
    def test_failure_isolated(self, layered_document: dict, workers: int) -> None:
        dark = layered_document["modifiers"]["theme"]["contexts"]["dark"]
        dark.append({"loop": {"a": {"$value": "{loop.b}"}, "b": {"$value": "{loop.a}"}}})

        outcomes = pipeline.TokenPipeline().resolve_all(layered_document, max_workers=workers)

        light, failed = outcomes
        assert light.ok
        assert light.result.tokens["color.primary"].value == "#f00"
        assert not failed.ok
        assert failed.result is None
        assert isinstance(failed.error, errors.CircularReferenceError)

    def test_workers_from_settings(self, layered_document: dict) -> None:
        settings = config.Settings(batch={"max_workers": 2})

        outcomes = pipeline.TokenPipeline(settings).resolve_all(layered_document)

        assert len(outcomes) == 2

    def test_permutations(self, layered_document: dict) -> None:
        assert pipeline.TokenPipeline().permutations(layered_document) == [
            {"theme": "light"},
            {"theme": "dark"},
        ]


class TestModifierInfo:
    """Tests for modifier_info()."""

    @_pytest.fixture
    def document(self) -> object:
        return tokenweave.parse(
            {
                "version": "2025.10",
                "sets": {"base": {"sources": []}},
                "modifiers": {
                    "brand": {"contexts": {"acme": [], "globex": []}},
                    "theme": {"contexts": {"light": [], "dark": []}, "default": "light"},
                },
                "resolutionOrder": [{"$ref": "#/sets/base"}],
            }
        ).document

    def test_non_default_modifier(self, document) -> None:
        info = pipeline.modifier_info({"brand": "acme", "theme": "dark"}, document)

        assert info == ("theme", "dark", "light")

    def test_all_defaults_reports_first(self, document) -> None:
        info = pipeline.modifier_info({"brand": "acme", "theme": "light"}, document)

        assert info == pipeline.ModifierInfo("brand", "acme", "acme")

    def test_empty_permutation(self, document) -> None:
        assert pipeline.modifier_info({}, document) == ("", "", "")


class TestPackageHelpers:
    """tokenweave.parse() and tokenweave.flatten()."""

    def test_parse_uses_settings(self, layered_document: dict) -> None:
        layered_document["version"] = "1999.01"
        settings = config.Settings(resolution={"allow_unknown_version": True})

        assert tokenweave.parse(layered_document, settings).document.version == "1999.01"

    def test_parse_base_dir(self, layered_document: dict, tmp_path: _pathlib.Path) -> None:
        settings = config.Settings(references={"base_dir": str(tmp_path)})

        assert tokenweave.parse(layered_document, settings).base_dir == tmp_path

    def test_flatten(self) -> None:
        tokens = tokenweave.flatten({"a": {"$type": "color", "b": {"$value": "{c}"}}})

        assert tokens["a.b"].type == "color"
        assert tokens["a.b"].value == "{c}"

    def test_version(self) -> None:
        assert tokenweave.__version__ == "0.1.0"
        assert tokenweave.__version_info__ == (0, 1, 0)
