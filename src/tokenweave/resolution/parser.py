"""
Resolver document parsing and semantic checks.

The parser accepts a JSON/YAML file path or an in-memory mapping and
returns a ParsedResolver. Checks, in order:

1. No `$ref` anywhere points into `#/resolutionOrder`, and no set or
   modifier-context source points into `#/modifiers` (always fatal).
2. The document has the resolver shape (always fatal).
3. The version is 2025.10, unless `allow_unknown_version` is set.
4. resolutionOrder is non-empty, every reference entry targets an
   existing set or modifier, and inline modifier names are unique.
5. Every modifier has at least two contexts and a valid default.

Checks 3 and 5, and an empty resolutionOrder, follow the validation mode.
"""

import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic

import tokenweave.constants as constants
import tokenweave.errors as errors
import tokenweave.resolution.file_cache as file_cache
import tokenweave.resolution.references as references
import tokenweave.resolution.types as types
import tokenweave.utils.similarity as similarity
import tokenweave.validation as validation

_logger = _logging.getLogger(__name__)

PathOrDocument = str | _os.PathLike[str] | _typing.Mapping[str, _typing.Any]


class ResolverParser:
    """Parses and validates resolver documents."""

    def __init__(
        self,
        *,
        allow_unknown_version: bool = False,
        base_dir: _pathlib.Path | None = None,
        validation_handler: validation.ValidationHandler | None = None,
    ) -> None:
        self._allow_unknown_version = allow_unknown_version
        self._base_dir = base_dir
        self._validation = validation_handler or validation.ValidationHandler()

    def parse(self, source: PathOrDocument) -> types.ParsedResolver:
        """
        Parse a resolver file or an in-memory document.

        File references in a document loaded from a file resolve relative to
        the file's directory; for in-memory documents they resolve from the
        configured base_dir, else the current directory.
        """
        if isinstance(source, _typing.Mapping):
            base_dir = self._base_dir or _pathlib.Path.cwd()
            return types.ParsedResolver(self.parse_object(source), base_dir)
        return self.parse_file(_pathlib.Path(source))

    def parse_file(self, path: _pathlib.Path) -> types.ParsedResolver:
        """
        Parse a resolver document from a JSON or YAML file.

        Raises:
            FileOperationError: If the file cannot be read or parsed.
        """
        absolute = path.expanduser().resolve()
        _logger.debug("Parsing resolver document %s", absolute)
        data = file_cache.load_document(absolute)
        document = self.parse_object(data, source_name=str(absolute))
        return types.ParsedResolver(document, absolute.parent, absolute)

    def parse_object(
        self,
        data: _typing.Any,
        source_name: str | None = None,
    ) -> types.ResolverDocument:
        """
        Validate an in-memory resolver document.

        Raises:
            ConfigurationError: Malformed document (per validation mode for
                the softer checks).
            ReferenceResolutionError: A pointer into a forbidden region.
        """
        where = f" in {source_name}" if source_name else ""

        if not isinstance(data, _typing.Mapping):
            raise errors.ConfigurationError(f"Resolver document must be an object{where}")

        _check_forbidden_pointers(data)

        try:
            document = types.ResolverDocument.model_validate(data)
        except _pydantic.ValidationError as e:
            raise errors.ConfigurationError(f"Invalid resolver document{where}: {e}") from e

        if document.version != constants.SUPPORTED_RESOLVER_VERSION and not self._allow_unknown_version:
            self._issue(
                f"Unsupported resolver version: {document.version}. "
                f"Expected {constants.SUPPORTED_RESOLVER_VERSION}{where}"
            )

        if not document.resolution_order:
            self._issue(f"Resolver document must have a non-empty resolutionOrder{where}")
        self._check_resolution_order(document, where)
        self._check_modifiers(document, where)

        _logger.debug(
            "Parsed resolver%s: %d sets, %d modifiers",
            where,
            len(document.sets),
            len(document.all_modifiers),
        )
        return document

    def _check_resolution_order(self, document: types.ResolverDocument, where: str) -> None:
        inline_modifiers: set[str] = set()
        for index, entry in enumerate(document.resolution_order):
            if isinstance(entry, types.InlineModifier):
                if entry.name in document.modifiers or entry.name in inline_modifiers:
                    raise errors.ConfigurationError(
                        f"resolutionOrder[{index}] declares modifier \"{entry.name}\" "
                        f"more than once{where}"
                    )
                inline_modifiers.add(entry.name)
                continue
            if isinstance(entry, types.InlineSet):
                continue

            kind = entry.target_kind
            if kind is None:
                raise errors.ConfigurationError(
                    f"resolutionOrder[{index}] must reference #/sets/<name> or "
                    f"#/modifiers/<name>, got \"{entry.ref}\"{where}"
                )
            available = list(document.sets if kind == "set" else document.modifiers)
            name = entry.target_name
            if name not in available:
                hint = errors.format_suggestions(similarity.find_similar(name, available))
                raise errors.ConfigurationError(
                    f"resolutionOrder[{index}] references undefined {kind} "
                    f"\"{name}\"{where}.{hint}"
                )

    def _check_modifiers(self, document: types.ResolverDocument, where: str) -> None:
        for name, modifier in document.all_modifiers.items():
            count = len(modifier.contexts)
            if count == 0:
                self._issue(
                    f"Modifier \"{name}\" has 0 contexts. "
                    f"Modifiers must have at least 2 contexts{where}"
                )
            elif count == 1:
                self._issue(
                    f"Modifier \"{name}\" has only 1 context. "
                    f"A modifier with 1 context should be a set instead{where}"
                )
            if modifier.default is not None and modifier.default not in modifier.contexts:
                self._issue(
                    f"Modifier \"{name}\" has invalid default value \"{modifier.default}\". "
                    f"Must be one of: {', '.join(modifier.contexts)}{where}"
                )

    def _issue(self, message: str) -> None:
        self._validation.handle_issue(errors.ConfigurationError(message))


def _check_forbidden_pointers(data: _typing.Mapping[str, _typing.Any]) -> None:
    for ref in _iter_refs(data):
        references.check_pointer(ref)

    token_sets: list[_typing.Any] = []
    modifiers: list[_typing.Any] = []
    if isinstance(data.get("sets"), _typing.Mapping):
        token_sets.extend(data["sets"].values())
    if isinstance(data.get("modifiers"), _typing.Mapping):
        modifiers.extend(data["modifiers"].values())
    if isinstance(data.get("resolutionOrder"), list):
        for entry in data["resolutionOrder"]:
            tag = types.entry_tag(entry)
            if tag == "set":
                token_sets.append(entry)
            elif tag == "modifier":
                modifiers.append(entry)

    for token_set in token_sets:
        if isinstance(token_set, _typing.Mapping):
            for ref in _iter_refs(token_set.get("sources")):
                references.check_pointer(ref, origin="set")

    for modifier in modifiers:
        contexts = modifier.get("contexts") if isinstance(modifier, _typing.Mapping) else None
        if isinstance(contexts, _typing.Mapping):
            for sources in contexts.values():
                for ref in _iter_refs(sources):
                    references.check_pointer(ref, origin="modifier")


def _iter_refs(value: _typing.Any) -> _typing.Iterator[str]:
    """Every `$ref` string in a raw tree."""
    if isinstance(value, _typing.Mapping):
        ref = value.get("$ref")
        if isinstance(ref, str):
            yield ref
        for child in value.values():
            yield from _iter_refs(child)
    elif isinstance(value, list):
        for item in value:
            yield from _iter_refs(item)


def parse(
    source: PathOrDocument,
    *,
    allow_unknown_version: bool = False,
    base_dir: _pathlib.Path | None = None,
    validation_handler: validation.ValidationHandler | None = None,
) -> types.ParsedResolver:
    """Parse a resolver file or in-memory document with a one-off parser."""
    parser = ResolverParser(
        allow_unknown_version=allow_unknown_version,
        base_dir=base_dir,
        validation_handler=validation_handler,
    )
    return parser.parse(source)
