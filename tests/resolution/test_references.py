"""Tests for $ref resolution."""

import pathlib as _pathlib

import pytest as _pytest

import tokenweave.errors as errors
import tokenweave.resolution.file_cache as file_cache
import tokenweave.resolution.references as references


@_pytest.fixture
def resolver(tmp_path: _pathlib.Path) -> references.ReferenceResolver:
    return references.ReferenceResolver(tmp_path)


class TestCheckPointer:
    """Forbidden pointer regions."""

    @_pytest.mark.parametrize("ref", ["#/resolutionOrder", "#/resolutionOrder/0"])
    def test_resolution_order_forbidden(self, ref: str) -> None:
        with _pytest.raises(errors.ForbiddenReferenceError, match="resolutionOrder"):
            references.check_pointer(ref)

    def test_resolution_order_prefix_only(self) -> None:
        """A key that merely starts with the same letters is fine."""
        references.check_pointer("#/resolutionOrderNotes")

    @_pytest.mark.parametrize("origin", ["set", "modifier"])
    def test_modifiers_forbidden_from_sources(self, origin: str) -> None:
        with _pytest.raises(errors.ReferenceResolutionError, match="must not reference modifiers"):
            references.check_pointer("#/modifiers/theme", origin)

    def test_modifiers_allowed_elsewhere(self) -> None:
        references.check_pointer("#/modifiers/theme")


class TestResolve:
    """Single references."""

    def test_pointer(self, resolver: references.ReferenceResolver) -> None:
        document = {"sets": {"base": {"sources": []}}}

        assert resolver.resolve("#/sets/base", document) == {"sources": []}

    def test_overrides_are_shallow(self, resolver: references.ReferenceResolver) -> None:
        document = {"sets": {"base": {"sources": [1], "description": "old"}}}

        resolved = resolver.resolve({"$ref": "#/sets/base", "description": "new"}, document)

        assert resolved == {"sources": [1], "description": "new"}
        assert document["sets"]["base"]["description"] == "old"

    def test_file_reference(self, resolver: references.ReferenceResolver, write_json) -> None:
        write_json("tokens/base.json", {"color": {"red": {"$value": "#f00"}}})

        assert resolver.resolve("tokens/base.json") == {"color": {"red": {"$value": "#f00"}}}

    def test_file_with_fragment(self, resolver: references.ReferenceResolver, write_json) -> None:
        write_json("tokens/base.json", {"color": {"red": {"$value": "#f00"}}})

        assert resolver.resolve("tokens/base.json#/color/red") == {"$value": "#f00"}

    def test_shared_cache(self, tmp_path: _pathlib.Path, write_json) -> None:
        write_json("a.json", {"a": 1})
        cache = file_cache.FileCache()

        references.ReferenceResolver(tmp_path, cache=cache).resolve("a.json")
        references.ReferenceResolver(tmp_path, cache=cache).resolve("a.json")

        assert cache.hits == 1

    def test_missing_file(self, resolver: references.ReferenceResolver) -> None:
        with _pytest.raises(errors.FileOperationError):
            resolver.resolve("missing.json")

    def test_fragment_needs_document(self, resolver: references.ReferenceResolver) -> None:
        with _pytest.raises(errors.ReferenceResolutionError, match="without a document"):
            resolver.resolve("#/a")

    def test_empty_reference(self, resolver: references.ReferenceResolver) -> None:
        with _pytest.raises(errors.ReferenceResolutionError, match="missing \\$ref"):
            resolver.resolve({"description": "no ref"})

    def test_forbidden_pointer(self, resolver: references.ReferenceResolver) -> None:
        with _pytest.raises(errors.ReferenceResolutionError):
            resolver.resolve("#/resolutionOrder/0", {"resolutionOrder": [{}]})


class TestResolveDeep:
    """Whole-tree reference replacement."""

    def test_nested(self, resolver: references.ReferenceResolver) -> None:
        document = {"a": {"b": 1}, "c": [{"$ref": "#/a"}]}

        assert resolver.resolve_deep(document, document) == {"a": {"b": 1}, "c": [{"b": 1}]}

    def test_chained(self, resolver: references.ReferenceResolver) -> None:
        document = {"a": {"$ref": "#/b"}, "b": {"$ref": "#/c"}, "c": 3}

        assert resolver.resolve_deep(document, document)["a"] == 3

    def test_cycle(self, resolver: references.ReferenceResolver) -> None:
        document = {"a": {"$ref": "#/b"}, "b": {"$ref": "#/a"}}

        with _pytest.raises(errors.CircularReferenceError):
            resolver.resolve_deep(document, document)

    def test_chain_resets_after_success(self, resolver: references.ReferenceResolver) -> None:
        """The same reference may appear twice without being a cycle."""
        document = {"a": 1, "x": {"$ref": "#/a"}, "y": {"$ref": "#/a"}}

        assert resolver.resolve_deep(document, document) == {"a": 1, "x": 1, "y": 1}


class TestResolveTokenDocument:
    """Reference handling that preserves token shape."""

    def test_value_reference(self, resolver: references.ReferenceResolver) -> None:
        document = {
            "palette": {"red": {"$type": "color", "$value": "#f00"}},
            "primary": {"$value": {"$ref": "#/palette/red/$value"}},
        }

        result = resolver.resolve_token_document(document, document)

        assert result["primary"] == {"$value": "#f00"}

    def test_reference_inside_composite(self, resolver: references.ReferenceResolver) -> None:
        document = {
            "width": {"$value": "1px"},
            "border": {"$value": {"width": {"$ref": "#/width/$value"}, "style": "solid"}},
        }

        result = resolver.resolve_token_document(document, document)

        assert result["border"]["$value"] == {"width": "1px", "style": "solid"}

    def test_token_level_reference_inherits_metadata(
        self, resolver: references.ReferenceResolver
    ) -> None:
        document = {
            "base": {"$type": "color", "$value": "#f00", "$description": "red"},
            "alias": {"$ref": "#/base", "$description": "local"},
        }

        result = resolver.resolve_token_document(document, document)

        assert result["alias"] == {"$type": "color", "$value": "#f00", "$description": "local"}

    def test_token_level_reference_to_value_infers_type(
        self, resolver: references.ReferenceResolver
    ) -> None:
        document = {
            "base": {"$type": "dimension", "$value": "4px"},
            "alias": {"$ref": "#/base/$value"},
        }

        result = resolver.resolve_token_document(document, document)

        assert result["alias"] == {"$value": "4px", "$type": "dimension"}

    def test_token_level_type_mismatch(self, resolver: references.ReferenceResolver) -> None:
        document = {
            "base": {"$type": "color", "$value": "#f00"},
            "alias": {"$ref": "#/base", "$type": "dimension"},
        }

        with _pytest.raises(errors.TokenReferenceError, match="type mismatch"):
            resolver.resolve_token_document(document, document)

    def test_token_level_type_mismatch_warn(self, tmp_path: _pathlib.Path, warnings) -> None:
        resolver = references.ReferenceResolver(
            tmp_path, validation_handler=warnings.handler("warn")
        )
        document = {
            "base": {"$type": "color", "$value": "#f00"},
            "alias": {"$ref": "#/base", "$type": "dimension"},
        }

        result = resolver.resolve_token_document(document, document)

        assert result["alias"]["$type"] == "dimension"
        assert "type mismatch" in warnings.joined()

    def test_missing_value_reference_strict(self, resolver: references.ReferenceResolver) -> None:
        document = {"a": {"$value": {"$ref": "#/missing"}}}

        with _pytest.raises(errors.ReferenceResolutionError):
            resolver.resolve_token_document(document, document)

    def test_missing_value_reference_kept_in_warn_mode(
        self, tmp_path: _pathlib.Path, warnings
    ) -> None:
        resolver = references.ReferenceResolver(
            tmp_path, validation_handler=warnings.handler("warn")
        )
        document = {"a": {"$value": {"$ref": "#/missing"}}}

        result = resolver.resolve_token_document(document, document)

        assert result["a"] == {"$value": {"$ref": "#/missing"}}
        assert "Unresolved reference #/missing" in warnings.joined()

    def test_token_level_cycle(self, resolver: references.ReferenceResolver) -> None:
        document = {"a": {"$ref": "#/b"}, "b": {"$ref": "#/a"}}

        with _pytest.raises(errors.CircularReferenceError):
            resolver.resolve_token_document(document, document)

    def test_curly_aliases_untouched(self, resolver: references.ReferenceResolver) -> None:
        document = {"a": {"$value": "{b}"}, "b": {"$value": 1}}

        assert resolver.resolve_token_document(document, document) == document

    @_pytest.mark.parametrize("mode", ["warn", "off"])
    def test_forbidden_value_reference_raises_in_every_mode(
        self, tmp_path: _pathlib.Path, warnings, mode: str
    ) -> None:
        resolver = references.ReferenceResolver(
            tmp_path, validation_handler=warnings.handler(mode)
        )
        document = {"a": {"$value": {"$ref": "#/resolutionOrder/0"}}}

        with _pytest.raises(errors.ForbiddenReferenceError, match="resolutionOrder"):
            resolver.resolve_token_document(document, document)
        assert warnings.messages == []

    def test_forbidden_pointer_behind_another_reference(
        self, tmp_path: _pathlib.Path, warnings, write_json
    ) -> None:
        """A forbidden pointer reached through a file is not downgraded either."""
        write_json("shared.json", {"accent": {"$ref": "#/resolutionOrder/1"}})
        resolver = references.ReferenceResolver(
            tmp_path, validation_handler=warnings.handler("warn")
        )
        document = {"a": {"$value": {"$ref": "shared.json#/accent"}}}

        with _pytest.raises(errors.ForbiddenReferenceError):
            resolver.resolve_token_document(document, document)
