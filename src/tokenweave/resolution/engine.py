"""
Resolution engine: permutations and ordered merging.

For one set of modifier inputs the engine walks resolutionOrder top to
bottom. Each set contributes its sources; each modifier contributes the
sources of its selected context. Entries are references into `sets` and
`modifiers` or inline sets and modifiers. Every source becomes one layer of a
DeepChainMap, so later entries override earlier ones: mappings merge key
by key, lists and scalars are replaced.

The merged document still contains `$ref`s inside token values,
`$extends` and aliases; later pipeline stages handle those.
"""

import itertools as _itertools
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import tokenweave.constants as constants
import tokenweave.errors as errors
import tokenweave.resolution.inputs as inputs_module
import tokenweave.resolution.references as references
import tokenweave.resolution.types as types
import tokenweave.utils as utils
import tokenweave.validation as validation

_logger = _logging.getLogger(__name__)


class ResolutionEngine:
    """
    Merges sets and modifier contexts in resolutionOrder.

    Args:
        document: A ResolverDocument, or a ParsedResolver whose base_dir
            is used for file references.
        reference_resolver: Resolver for source `$ref`s. Built from the
            document's base_dir when omitted.
        validation_handler: Governs input validation.
        error_on_missing_default: See ModifierInputProcessor.
    """

    def __init__(
        self,
        document: types.ResolverDocument | types.ParsedResolver,
        reference_resolver: references.ReferenceResolver | None = None,
        *,
        validation_handler: validation.ValidationHandler | None = None,
        error_on_missing_default: bool | None = None,
    ) -> None:
        base_dir: _pathlib.Path | None = None
        if isinstance(document, types.ParsedResolver):
            base_dir = document.base_dir
            document = document.document

        self._document = document
        self._raw = document.to_raw()
        self._validation = validation_handler or validation.ValidationHandler()
        self._references = reference_resolver or references.ReferenceResolver(
            base_dir, validation_handler=self._validation
        )
        self._inputs = inputs_module.ModifierInputProcessor(
            document,
            self._validation,
            error_on_missing_default=error_on_missing_default,
        )

    @property
    def document(self) -> types.ResolverDocument:
        return self._document

    @property
    def reference_resolver(self) -> references.ReferenceResolver:
        return self._references

    def generate_permutations(self) -> list[types.Permutation]:
        """
        Every combination of modifier contexts.

        Modifiers vary in declaration order, the last one fastest; contexts
        in declaration order. Inline modifiers follow the declared ones.
        Returns [{}] when there are no modifiers.
        """
        modifiers = self._document.all_modifiers
        names = list(modifiers)
        axes = [modifiers[name].context_names for name in names]
        return [dict(zip(names, combination)) for combination in _itertools.product(*axes)]

    def prepare_inputs(
        self, inputs: _typing.Mapping[str, _typing.Any] | None = None
    ) -> inputs_module.PreparedInputs:
        return self._inputs.prepare(inputs or {})

    def resolve(
        self, inputs: _typing.Mapping[str, _typing.Any] | None = None
    ) -> types.ResolutionResult:
        """
        Merge the document for one set of modifier inputs.

        Raises:
            ConfigurationError: Bad inputs or a malformed source.
            ReferenceResolutionError: A source pointer cannot be followed.
            FileOperationError: A source file cannot be read.
        """
        permutation = self.prepare_inputs(inputs).permutation
        accumulator = utils.DeepChainMap(track_provenance=True)

        for entry in self._document.resolution_order:
            name = entry.target_name
            if isinstance(entry, types.ReferenceEntry):
                resolved = self._references.resolve(entry.model_dump(by_alias=True), self._raw)
            else:
                resolved = entry.model_dump(by_alias=True, exclude_none=True)

            if entry.target_kind == "set":
                sources = _sources_of(resolved, entry.label)
                layer = f"set:{name}"
                origin = "set"
            elif entry.target_kind == "modifier":
                context = self._select_context(name, resolved, permutation)
                sources = _context_sources(resolved, context, entry.label)
                layer = f"modifier:{name}/{context}"
                origin = "modifier"
            else:
                raise errors.ConfigurationError(
                    f"resolutionOrder entry \"{entry.label}\" must reference a set or modifier"
                )

            _logger.debug("Merging %s (%d sources)", layer, len(sources))
            for source in sources:
                accumulator.add_layer(self._load_source(source, origin), name=layer)

        return types.ResolutionResult(
            tokens=accumulator.to_dict(),
            permutation=permutation,
            provenance=accumulator,
        )

    def _select_context(
        self,
        name: str,
        modifier: _typing.Any,
        permutation: types.Permutation,
    ) -> str:
        contexts = modifier.get("contexts") if isinstance(modifier, _typing.Mapping) else None
        if not isinstance(contexts, _typing.Mapping):
            raise errors.ConfigurationError(f"Modifier \"{name}\" has no contexts")
        wanted = permutation.get(name)
        if wanted is None:
            raise errors.ConfigurationError(f"Cannot determine context for modifier \"{name}\"")
        context = utils.CaseInsensitiveDict(contexts).original_key(wanted)
        if context is None:
            raise errors.ModifierError(name, wanted, available=list(contexts))
        return context

    def _load_source(self, source: _typing.Any, origin: str) -> dict[str, _typing.Any]:
        if references.is_reference(source):
            references.check_pointer(source["$ref"], origin)
            loaded = self._references.resolve(source, self._raw)
        elif isinstance(source, str):
            if not source.lower().endswith(constants.TOKEN_FILE_SUFFIXES):
                raise errors.ConfigurationError(
                    f"Source \"{source}\" is not a token file "
                    f"({', '.join(constants.TOKEN_FILE_SUFFIXES)})"
                )
            loaded = self._references.resolve(source)
        else:
            loaded = source

        if loaded is None:
            return {}
        if not isinstance(loaded, _typing.Mapping):
            raise errors.ConfigurationError(
                f"Token source must be an object, got {type(loaded).__name__}"
            )
        return dict(loaded)


def _sources_of(token_set: _typing.Any, ref: str) -> list[_typing.Any]:
    sources = token_set.get("sources") if isinstance(token_set, _typing.Mapping) else None
    if not isinstance(sources, list):
        raise errors.ConfigurationError(f"Set \"{ref}\" must have a sources list")
    return sources


def _context_sources(modifier: _typing.Mapping[str, _typing.Any], context: str, ref: str) -> list[_typing.Any]:
    sources = modifier["contexts"][context]
    if not isinstance(sources, list):
        raise errors.ConfigurationError(f"Context \"{context}\" of \"{ref}\" must be a list")
    return sources


def generate_permutations(
    document: types.ResolverDocument | types.ParsedResolver,
) -> list[types.Permutation]:
    """Every modifier-context combination of `document`."""
    return ResolutionEngine(document).generate_permutations()


def resolve(
    document: types.ResolverDocument | types.ParsedResolver,
    inputs: _typing.Mapping[str, _typing.Any] | None = None,
    *,
    reference_resolver: references.ReferenceResolver | None = None,
    validation_handler: validation.ValidationHandler | None = None,
    error_on_missing_default: bool | None = None,
) -> types.ResolutionResult:
    """Merge `document` for `inputs` with a one-off engine."""
    engine = ResolutionEngine(
        document,
        reference_resolver,
        validation_handler=validation_handler,
        error_on_missing_default=error_on_missing_default,
    )
    return engine.resolve(inputs)
