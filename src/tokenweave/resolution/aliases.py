"""
Alias resolution over a flattened token table.

An alias is a `{dot.separated.name}` reference inside a token's `$value`:

- "{color.primary}" as the whole value takes the target token's whole
  resolved value (any type), following chains;
- "1px solid {color.primary}" interpolates each target's value as text
  (JSON for lists and mappings);
- aliases nested in lists and mappings resolve in place. An aliased list
  becomes a single element; it is never spread into the enclosing list.

Cycles are always fatal. Chains longer than `max_depth` links fail with
ValidationError. Missing targets and `$type` mismatches follow the
validation mode.
"""

import copy as _copy
import json as _json
import logging as _logging
import re as _re
import typing as _typing

import tokenweave.constants as constants
import tokenweave.errors as errors
import tokenweave.tokens.types as token_types
import tokenweave.utils.similarity as similarity
import tokenweave.validation as validation

_logger = _logging.getLogger(__name__)

_ALIAS_RE = _re.compile(r"\{([^{}]+)\}")
_PURE_ALIAS_RE = _re.compile(r"^\{([^{}]+)\}$")
_ROOT_SUFFIX = "." + constants.ROOT_TOKEN_KEY


def normalize_reference(name: str) -> str:
    """Strip whitespace and a trailing `.$root`: `{x.$root}` names token `x`."""
    name = name.strip()
    if name.endswith(_ROOT_SUFFIX):
        return name[: -len(_ROOT_SUFFIX)]
    return name


def pure_alias_name(value: _typing.Any) -> str | None:
    """The referenced name if `value` is exactly one alias, else None."""
    if not isinstance(value, str):
        return None
    match = _PURE_ALIAS_RE.match(value)
    return normalize_reference(match.group(1)) if match else None


def has_aliases(value: _typing.Any) -> bool:
    """Whether `value` contains an alias anywhere."""
    if isinstance(value, str):
        return _ALIAS_RE.search(value) is not None
    if isinstance(value, list):
        return any(has_aliases(item) for item in value)
    if isinstance(value, _typing.Mapping):
        return any(has_aliases(item) for item in value.values())
    return False


def extract_references(value: _typing.Any) -> list[str]:
    """All referenced token names in `value`, in order, duplicates kept."""
    if isinstance(value, str):
        return [normalize_reference(m.group(1)) for m in _ALIAS_RE.finditer(value)]
    if isinstance(value, list):
        return [ref for item in value for ref in extract_references(item)]
    if isinstance(value, _typing.Mapping):
        return [ref for item in value.values() for ref in extract_references(item)]
    return []


def _stringify(value: _typing.Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return _json.dumps(value)


class AliasResolver:
    """
    Resolves aliases in a flattened token table.

    Args:
        max_depth: Longest alias chain followed from one token.
        validation_handler: Governs missing targets and type mismatches.

    Example:
        >>> import tokenweave.tokens.flattener as flattener
        >>> tokens = flattener.flatten({"a": {"$value": 1}, "b": {"$value": "{a}"}})
        >>> AliasResolver().resolve(tokens)["b"].value
        1
    """

    def __init__(
        self,
        *,
        max_depth: int = constants.DEFAULT_MAX_ALIAS_DEPTH,
        validation_handler: validation.ValidationHandler | None = None,
    ) -> None:
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        self._max_depth = max_depth
        self._validation = validation_handler or validation.ValidationHandler()

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def resolve(self, tokens: token_types.ResolvedTokens) -> token_types.ResolvedTokens:
        """
        Return a new table with every alias replaced by its target's value.

        `original_value` is carried over unchanged; `is_alias` marks tokens
        whose value contained aliases.

        Raises:
            CircularReferenceError: An alias chain loops.
            ValidationError: A chain exceeds max_depth.
            TokenReferenceError: Missing target or `$type` mismatch ("error" mode).
        """
        resolved = {name: self._resolve_token(name, token, tokens, 0, []) for name, token in tokens.items()}
        _logger.debug("Resolved aliases in %d tokens", len(resolved))
        return resolved

    def _resolve_token(
        self,
        name: str,
        token: token_types.FlatToken,
        tokens: token_types.ResolvedTokens,
        depth: int,
        chain: list[str],
    ) -> token_types.FlatToken:
        if name in chain:
            raise errors.CircularReferenceError(name, chain)
        if depth > self._max_depth:
            message = f"Maximum alias resolution depth ({self._max_depth}) exceeded for token: {name}"
            raise errors.ValidationError(message, [{"message": message, "path": name}])
        chain = [*chain, name]

        had_alias = has_aliases(token.value)
        target_name = pure_alias_name(token.value)
        if target_name is not None:
            return self._resolve_pure_alias(name, token, target_name, tokens, depth, chain)

        value = self._resolve_value(token.value, tokens, depth, chain)
        return token.replace(value=value, is_alias=had_alias)

    def _resolve_pure_alias(
        self,
        name: str,
        token: token_types.FlatToken,
        target_name: str,
        tokens: token_types.ResolvedTokens,
        depth: int,
        chain: list[str],
    ) -> token_types.FlatToken:
        target = self._follow(target_name, tokens, depth, chain)
        if target is None:
            return token.replace(is_alias=True)

        token_type = token.type
        if token_type is None:
            token_type = target.type
        elif target.type is not None and target.type != token_type:
            self._validation.handle_issue(
                errors.TokenReferenceError(
                    target_name,
                    message=(
                        f"Alias type mismatch for \"{name}\": declared \"$type\" is "
                        f"\"{token_type}\" but referenced token \"{target_name}\" has "
                        f"\"$type\" \"{target.type}\"."
                    ),
                )
            )

        return token.replace(value=_copy.deepcopy(target.value), type=token_type, is_alias=True)

    def _resolve_value(
        self,
        value: _typing.Any,
        tokens: token_types.ResolvedTokens,
        depth: int,
        chain: list[str],
    ) -> _typing.Any:
        if isinstance(value, str):
            return self._resolve_string(value, tokens, depth, chain)
        if isinstance(value, list):
            return [self._resolve_value(item, tokens, depth, chain) for item in value]
        if isinstance(value, _typing.Mapping):
            return {key: self._resolve_value(item, tokens, depth, chain) for key, item in value.items()}
        return value

    def _resolve_string(
        self,
        value: str,
        tokens: token_types.ResolvedTokens,
        depth: int,
        chain: list[str],
    ) -> _typing.Any:
        target_name = pure_alias_name(value)
        if target_name is not None:
            target = self._follow(target_name, tokens, depth, chain)
            return value if target is None else _copy.deepcopy(target.value)

        def substitute(match: _re.Match[str]) -> str:
            target = self._follow(normalize_reference(match.group(1)), tokens, depth, chain)
            return match.group(0) if target is None else _stringify(target.value)

        return _ALIAS_RE.sub(substitute, value)

    def _follow(
        self,
        target_name: str,
        tokens: token_types.ResolvedTokens,
        depth: int,
        chain: list[str],
    ) -> token_types.FlatToken | None:
        """Resolve the target token one link further, or None if it is missing."""
        target = tokens.get(target_name)
        if target is None:
            suggestions = similarity.find_similar(target_name, tokens)
            self._validation.handle_issue(errors.TokenReferenceError(target_name, suggestions))
            return None
        return self._resolve_token(target_name, target, tokens, depth + 1, chain)
