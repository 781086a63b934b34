"""
Token flattening: nested token document -> name-keyed FlatToken table.

- Each leaf token is keyed by its dot-joined path.
- A group's `$type`, `$description` and `$deprecated` are inherited by
  descendants that do not declare their own.
- A `$root` child is the group's own value and is emitted at the group's
  path, without a literal `$root` segment.
- Names must not start with `$` (other than `$root`) or contain `{`, `}`
  or `.`. Checked per validation mode.
"""

import logging as _logging
import re as _re
import typing as _typing

import tokenweave.constants as constants
import tokenweave.errors as errors
import tokenweave.tokens.nodes as nodes
import tokenweave.tokens.types as types
import tokenweave.validation as validation

_logger = _logging.getLogger(__name__)

_INVALID_NAME_CHARS = _re.compile(r"[{}.]")

SourceLookup = _typing.Callable[[list[str]], str | None]
"""Maps a raw path (with any `$root` segment) to the layer that supplied it."""


class TokenFlattener:
    """
    Flattens a merged token document.

    Args:
        validation_handler: Governs name and structure checks.
        source_lookup: Optional provenance lookup, see ResolutionResult.source_of.
        warn_on_case_collisions: Warn when two names differ only by case.
    """

    def __init__(
        self,
        validation_handler: validation.ValidationHandler | None = None,
        *,
        source_lookup: SourceLookup | None = None,
        warn_on_case_collisions: bool = True,
    ) -> None:
        self._validation = validation_handler or validation.ValidationHandler()
        self._source_lookup = source_lookup
        self._warn_on_case_collisions = warn_on_case_collisions

    def flatten(self, document: _typing.Mapping[str, _typing.Any]) -> types.ResolvedTokens:
        """
        Flatten `document` into a table of FlatTokens.

        Raises:
            ValidationError: Invalid names or ambiguous structure ("error" mode).
        """
        result: types.ResolvedTokens = {}
        self._flatten_group(nodes.GroupNode(document), [], {}, result, top_level=True)
        if self._warn_on_case_collisions:
            self._check_case_collisions(result)
        _logger.debug("Flattened %d tokens", len(result))
        return result

    def _flatten_group(
        self,
        group: nodes.GroupNode,
        path: list[str],
        inherited: dict[str, _typing.Any],
        result: types.ResolvedTokens,
        *,
        top_level: bool = False,
    ) -> None:
        if not top_level:
            inherited = {
                **inherited,
                **{k: group.data[k] for k in constants.TOKEN_METADATA_KEYS if k in group.data},
            }

        for key, value in group.data.items():
            if key.startswith("$") and key != constants.ROOT_TOKEN_KEY:
                if nodes.is_token_like(value):
                    self._check_name(key, path)
                continue
            self._check_name(key, path)

            node = nodes.classify(value)
            if isinstance(node, (nodes.TokenNode, nodes.ReferenceNode)):
                raw_path = [*path, key]
                token_path = path if key == constants.ROOT_TOKEN_KEY else raw_path
                if not token_path:
                    self._issue(f"Invalid token at \"{key}\": $root is only allowed inside a group")
                    continue
                if isinstance(node, nodes.TokenNode):
                    self._check_structure(node, raw_path)
                token = self._build_token(node, token_path, raw_path, inherited)
                result[token.name] = token
            elif isinstance(node, nodes.GroupNode):
                if key == constants.ROOT_TOKEN_KEY:
                    self._issue(f"Invalid $root at \"{'.'.join(path)}\": $root must be a token")
                    continue
                self._flatten_group(node, [*path, key], inherited, result)
            # LiteralNode values outside a token are not tokens.

    def _build_token(
        self,
        node: nodes.TokenNode | nodes.ReferenceNode,
        path: list[str],
        raw_path: list[str],
        inherited: dict[str, _typing.Any],
    ) -> types.FlatToken:
        data = node.data
        if isinstance(node, nodes.TokenNode):
            value = node.value
            original = node.original_value
        else:
            value = None
            original = node.ref

        def field(key: str) -> _typing.Any:
            return data[key] if key in data else inherited.get(key)

        extensions = data.get("$extensions")
        return types.FlatToken(
            name=".".join(path),
            path=list(path),
            value=value,
            type=field("$type"),
            original_value=original,
            description=field("$description"),
            deprecated=field("$deprecated"),
            extensions=dict(extensions) if isinstance(extensions, _typing.Mapping) else None,
            source=self._source_lookup(raw_path) if self._source_lookup else None,
        )

    def _check_name(self, name: str, parent: list[str]) -> None:
        if not self._validation.should_validate():
            return
        location = ".".join([*parent, name])
        if name.startswith("$") and name != constants.ROOT_TOKEN_KEY:
            self._issue(
                f"Invalid token/group name at \"{location}\": names cannot start with '$', "
                f"which is reserved for token properties. Only '$root' is allowed."
            )
        found = _INVALID_NAME_CHARS.findall(name)
        if found:
            self._issue(
                f"Invalid token/group name at \"{location}\": names cannot contain "
                f"'{{', '}}' or '.'. Found: {', '.join(found)}"
            )

    def _check_structure(self, node: nodes.TokenNode, path: list[str]) -> None:
        if not self._validation.should_validate():
            return
        has_children = any(
            not key.startswith("$") and isinstance(value, _typing.Mapping)
            for key, value in node.data.items()
        )
        if has_children:
            self._issue(
                f"Invalid structure at \"{'.'.join(path)}\": "
                f"a token cannot have both a value and child tokens or groups"
            )

    def _check_case_collisions(self, tokens: types.ResolvedTokens) -> None:
        seen: dict[str, str] = {}
        for name in tokens:
            folded = name.casefold()
            existing = seen.get(folded)
            if existing is not None and existing != name:
                self._validation.warn(
                    f"Token names differ only by case: \"{existing}\" and \"{name}\". "
                    f"This may break in case-insensitive environments."
                )
            else:
                seen[folded] = name

    def _issue(self, message: str) -> None:
        self._validation.handle_issue(errors.ValidationError(message))


def flatten(
    document: _typing.Mapping[str, _typing.Any],
    validation_handler: validation.ValidationHandler | None = None,
) -> types.ResolvedTokens:
    """Flatten `document` with a one-off TokenFlattener."""
    return TokenFlattener(validation_handler).flatten(document)
