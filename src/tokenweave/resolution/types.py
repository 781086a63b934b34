"""
Resolver document model and resolution results.

ResolverDocument mirrors the 2025.10 resolver format:

    {
      "version": "2025.10",
      "sets": {"base": {"sources": [{"$ref": "base.json"}]}},
      "modifiers": {
        "theme": {"contexts": {"light": [], "dark": [...]}, "default": "light"}
      },
      "resolutionOrder": [{"$ref": "#/sets/base"}, {"$ref": "#/modifiers/theme"}]
    }

A resolutionOrder entry may also be an inline set ({"type": "set", "name":
"extra", "sources": [...]}) or an inline modifier with a name and contexts.

Models are frozen; a parsed document is never mutated.
"""

import dataclasses as _dataclasses
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic

import tokenweave.constants as constants
import tokenweave.resolution.pointer as pointer
import tokenweave.utils as utils

Permutation = dict[str, str]
"""modifierName -> contextName, in the document's declared casing."""


class _DocumentModel(_pydantic.BaseModel):
    model_config = _pydantic.ConfigDict(
        extra="allow",
        frozen=True,
        populate_by_name=True,
    )


class TokenSet(_DocumentModel):
    """A named, ordered list of token sources always included."""

    sources: list[_typing.Any]
    description: str | None = None


class Modifier(_DocumentModel):
    """A named axis of mutually exclusive contexts."""

    contexts: dict[str, list[_typing.Any]]
    default: str | None = None
    description: str | None = None

    @property
    def context_names(self) -> list[str]:
        return list(self.contexts)

    @property
    def effective_default(self) -> str | None:
        """The declared default, else the first context."""
        if self.default is not None:
            return self.default
        return next(iter(self.contexts), None)


EntryKind = _typing.Literal["set", "modifier"]


class ReferenceEntry(_DocumentModel):
    """One resolutionOrder entry: a `$ref` plus optional overrides."""

    ref: str = _pydantic.Field(alias="$ref")

    @property
    def overrides(self) -> dict[str, _typing.Any]:
        return dict(self.model_extra) if self.model_extra else {}

    @property
    def target_kind(self) -> EntryKind | None:
        """None unless the pointer names exactly one set or modifier."""
        target = self._target()
        return target[0] if target is not None else None

    @property
    def target_name(self) -> str:
        """The decoded set or modifier name, e.g. "a/b" for "#/sets/a~1b"."""
        target = self._target()
        return target[1] if target is not None else self.ref

    @property
    def label(self) -> str:
        return self.ref

    def _target(self) -> tuple[EntryKind, str] | None:
        prefixes: tuple[tuple[EntryKind, str], ...] = (
            ("set", constants.SETS_POINTER_PREFIX),
            ("modifier", constants.MODIFIERS_POINTER_PREFIX),
        )
        for kind, prefix in prefixes:
            if self.ref.startswith(prefix):
                segments = pointer.split(self.ref)
                if len(segments) == 2 and segments[1]:
                    return kind, segments[1]
        return None


class InlineSet(TokenSet):
    """A set written directly into resolutionOrder."""

    type: _typing.Literal["set"] | None = None
    name: str | None = None

    @property
    def target_kind(self) -> EntryKind:
        return "set"

    @property
    def target_name(self) -> str:
        return self.name or "set"

    @property
    def label(self) -> str:
        return f"inline set \"{self.target_name}\""


class InlineModifier(Modifier):
    """
    A modifier written directly into resolutionOrder.

    Its name is required: inputs and permutations address it like a
    modifier declared under `modifiers`.
    """

    type: _typing.Literal["modifier"] | None = None
    name: str

    @property
    def target_kind(self) -> EntryKind:
        return "modifier"

    @property
    def target_name(self) -> str:
        return self.name

    @property
    def label(self) -> str:
        return f"inline modifier \"{self.name}\""


def entry_tag(value: _typing.Any) -> str | None:
    """The resolutionOrder entry form of `value`: "reference", "set", "modifier" or None."""
    if isinstance(value, ReferenceEntry):
        return "reference"
    if isinstance(value, InlineSet):
        return "set"
    if isinstance(value, InlineModifier):
        return "modifier"
    if not isinstance(value, _typing.Mapping):
        return None
    if "$ref" in value:
        return "reference"
    if value.get("type") in ("set", "modifier"):
        return value["type"]
    if "sources" in value:
        return "set"
    if "contexts" in value:
        return "modifier"
    return None


ResolutionOrderEntry = _typing.Annotated[
    _typing.Union[
        _typing.Annotated[ReferenceEntry, _pydantic.Tag("reference")],
        _typing.Annotated[InlineSet, _pydantic.Tag("set")],
        _typing.Annotated[InlineModifier, _pydantic.Tag("modifier")],
    ],
    _pydantic.Discriminator(
        entry_tag,
        custom_error_type="invalid_resolution_order_entry",
        custom_error_message=(
            "resolutionOrder entries must be a reference object, "
            "an inline set with sources or an inline modifier with contexts"
        ),
    ),
]
"""A resolutionOrder entry: a reference, an inline set or an inline modifier."""


class ResolverDocument(_DocumentModel):
    """A parsed resolver document."""

    version: str
    name: str | None = None
    description: str | None = None
    sets: dict[str, TokenSet] = _pydantic.Field(default_factory=dict)
    modifiers: dict[str, Modifier] = _pydantic.Field(default_factory=dict)
    resolution_order: list[ResolutionOrderEntry] = _pydantic.Field(alias="resolutionOrder")
    defs: dict[str, _typing.Any] | None = _pydantic.Field(default=None, alias="$defs")

    @property
    def all_modifiers(self) -> dict[str, Modifier]:
        """Declared modifiers, then inline ones in resolutionOrder order."""
        combined: dict[str, Modifier] = dict(self.modifiers)
        for entry in self.resolution_order:
            if isinstance(entry, InlineModifier):
                combined.setdefault(entry.name, entry)
        return combined

    def to_raw(self) -> dict[str, _typing.Any]:
        """Plain-dict form, used as the root for "#/..." pointers."""
        return self.model_dump(by_alias=True, exclude_none=True)


@_dataclasses.dataclass(frozen=True)
class ParsedResolver:
    """A validated document plus the directory its file references resolve from."""

    document: ResolverDocument
    base_dir: _pathlib.Path
    source_path: _pathlib.Path | None = None


@_dataclasses.dataclass
class ResolutionResult:
    """Merged raw tokens for one permutation, before flattening."""

    tokens: dict[str, _typing.Any]
    permutation: Permutation
    provenance: utils.DeepChainMap
    """The layered merge; layer names are "set:<name>" or "modifier:<name>/<context>"."""

    def source_of(self, path: _typing.Sequence[str]) -> str | None:
        """Name of the resolutionOrder layer that supplied the value at `path`."""
        return self.provenance.layer_name(self.provenance.source_of(tuple(path)))
