"""
End-to-end token pipeline.

Stages, per permutation:

1. parse the resolver document (once per build)
2. merge sets and modifier contexts in resolutionOrder (ResolutionEngine)
3. resolve `$ref`s in the merged tokens (ReferenceResolver)
4. apply `$extends` group inheritance (GroupExtensionResolver)
5. flatten to a name -> FlatToken table (TokenFlattener)
6. resolve `{alias}` references (AliasResolver)

Every stage returns new data; the parsed document is shared read-only by
all permutations, which is what lets resolve_all() use worker threads.
"""

import concurrent.futures as _futures
import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import tokenweave.config as config
import tokenweave.errors as errors
import tokenweave.resolution.aliases as aliases
import tokenweave.resolution.engine as engine
import tokenweave.resolution.file_cache as file_cache
import tokenweave.resolution.parser as parser
import tokenweave.resolution.references as references
import tokenweave.resolution.types as resolution_types
import tokenweave.tokens.extensions as extensions
import tokenweave.tokens.flattener as flattener
import tokenweave.tokens.types as token_types
import tokenweave.validation as validation

_logger = _logging.getLogger(__name__)

ResolverSource = (
    parser.PathOrDocument | resolution_types.ResolverDocument | resolution_types.ParsedResolver
)


@_dataclasses.dataclass
class PipelineResult:
    """Final tokens for one permutation."""

    tokens: token_types.ResolvedTokens
    permutation: resolution_types.Permutation
    resolution: resolution_types.ResolutionResult
    """The engine's merged output, with provenance."""


@_dataclasses.dataclass
class PermutationOutcome:
    """Result of one permutation in a batch: tokens or the error that stopped it."""

    permutation: resolution_types.Permutation
    result: PipelineResult | None = None
    error: errors.TokenweaveError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ModifierInfo(_typing.NamedTuple):
    """Which modifier a permutation varies, for naming outputs."""

    modifier: str
    context: str
    default_context: str


class TokenPipeline:
    """
    Resolves resolver documents into final token tables.

    Args:
        settings: Configuration. Loaded from files and environment when omitted.
        cache: FileCache shared by every resolution of this pipeline.
        on_warning: Callback for "warn"-mode messages. Defaults to logging.

    Example:
        >>> pipeline = TokenPipeline()
        >>> result = pipeline.resolve("tokens.resolver.json", {"theme": "dark"})
        >>> result.tokens["color.primary"].value
        '#000000'
    """

    def __init__(
        self,
        settings: config.Settings | None = None,
        *,
        cache: file_cache.FileCache | None = None,
        on_warning: validation.WarningCallback | None = None,
    ) -> None:
        self._settings = settings if settings is not None else config.Settings()
        self._validation = self._settings.validation_handler(on_warning)
        self._cache = (
            cache
            if cache is not None
            else file_cache.FileCache(self._settings.references.file_cache_size)
        )
        self._parser = parser.ResolverParser(
            allow_unknown_version=self._settings.resolution.allow_unknown_version,
            base_dir=self._settings.base_dir,
            validation_handler=self._validation,
        )
        self._extensions = extensions.GroupExtensionResolver()
        self._aliases = aliases.AliasResolver(
            max_depth=self._settings.max_alias_depth,
            validation_handler=self._validation,
        )

    @property
    def settings(self) -> config.Settings:
        return self._settings

    @property
    def cache(self) -> file_cache.FileCache:
        return self._cache

    def load(self, source: ResolverSource) -> resolution_types.ParsedResolver:
        """Parse `source` unless it is already parsed."""
        if isinstance(source, resolution_types.ParsedResolver):
            return source
        if isinstance(source, resolution_types.ResolverDocument):
            return self._parser.parse(source.to_raw())
        return self._parser.parse(source)

    def permutations(self, source: ResolverSource) -> list[resolution_types.Permutation]:
        return engine.generate_permutations(self.load(source))

    def resolve(
        self,
        source: ResolverSource,
        inputs: _typing.Mapping[str, _typing.Any] | None = None,
    ) -> PipelineResult:
        """
        Run every stage for one set of modifier inputs.

        Raises:
            TokenweaveError: Any failure aborts this resolution.
        """
        return self._run(self.load(source), inputs or {})

    def resolve_all(
        self,
        source: ResolverSource,
        *,
        max_workers: int | None = None,
    ) -> list[PermutationOutcome]:
        """
        Resolve every permutation of `source`.

        A failing permutation is recorded in its outcome and does not stop
        the others. Outcomes are in generate_permutations() order.

        Args:
            source: Resolver file, document, or ParsedResolver.
            max_workers: Worker threads. Defaults to settings.batch.max_workers;
                1 resolves sequentially.
        """
        parsed = self.load(source)
        permutations = engine.generate_permutations(parsed)
        workers = max_workers if max_workers is not None else self._settings.batch.max_workers
        _logger.debug("Resolving %d permutations with %d workers", len(permutations), workers)

        if workers <= 1 or len(permutations) <= 1:
            return [self._outcome(parsed, permutation) for permutation in permutations]

        with _futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._outcome, parsed, permutation)
                for permutation in permutations
            ]
            return [future.result() for future in futures]

    def _outcome(
        self,
        parsed: resolution_types.ParsedResolver,
        permutation: resolution_types.Permutation,
    ) -> PermutationOutcome:
        try:
            return PermutationOutcome(permutation, result=self._run(parsed, permutation))
        except errors.TokenweaveError as e:
            _logger.warning("Permutation %s failed: %s", permutation, e)
            return PermutationOutcome(permutation, error=e)

    def _run(
        self,
        parsed: resolution_types.ParsedResolver,
        inputs: _typing.Mapping[str, _typing.Any],
    ) -> PipelineResult:
        # One ReferenceResolver per resolution; only the FileCache is shared.
        reference_resolver = references.ReferenceResolver(
            parsed.base_dir,
            cache=self._cache,
            validation_handler=self._validation,
        )
        resolution = engine.ResolutionEngine(
            parsed,
            reference_resolver,
            validation_handler=self._validation,
            error_on_missing_default=self._settings.resolution.error_on_missing_default,
        ).resolve(inputs)

        merged = reference_resolver.resolve_token_document(resolution.tokens, resolution.tokens)
        extended = self._extensions.resolve_extensions(merged)
        flat = flattener.TokenFlattener(
            self._validation,
            source_lookup=resolution.source_of,
        ).flatten(extended)
        tokens = self._aliases.resolve(flat)

        _logger.debug("Resolved %d tokens for %s", len(tokens), resolution.permutation)
        return PipelineResult(tokens, resolution.permutation, resolution)


def modifier_info(
    permutation: resolution_types.Permutation,
    document: resolution_types.ResolverDocument,
) -> ModifierInfo:
    """
    Find the modifier whose context differs from its default.

    For {"brand": "acme", "theme": "dark"} with defaults
    {"brand": "acme", "theme": "light"} this is ("theme", "dark", "light").
    When nothing differs, the first modifier is reported.
    """
    defaults = {
        name: modifier.effective_default or ""
        for name, modifier in document.all_modifiers.items()
    }

    for name, context in permutation.items():
        if context != defaults.get(name):
            return ModifierInfo(name, context, defaults.get(name, ""))

    first = next(iter(permutation), "")
    return ModifierInfo(first, permutation.get(first, ""), defaults.get(first, ""))
