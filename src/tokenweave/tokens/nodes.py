"""
Classification of raw token-document nodes.

A raw document is plain JSON-like data (dicts, lists, scalars). Every
consumer asks the same question of each node: is it a token, a group, an
embedded reference, or just a value? classify() answers it once, and the
resolvers dispatch over the four variants instead of probing keys.

    TokenNode      {"$value": ...} (optionally with $ref, $type, ...)
    ReferenceNode  {"$ref": "<pointer or file>", ...overrides}
    GroupNode      any other mapping outside a token value
    LiteralNode    scalars, lists, and plain mappings inside a value
"""

import dataclasses as _dataclasses
import typing as _typing

import tokenweave.constants as constants

_RESERVED_CHILD_KEYS = (constants.ROOT_TOKEN_KEY,)


def _is_child_key(key: str) -> bool:
    return not key.startswith("$") or key in _RESERVED_CHILD_KEYS


@_dataclasses.dataclass(frozen=True)
class TokenNode:
    """A leaf token. `data` is the raw mapping, never mutated."""

    data: _typing.Mapping[str, _typing.Any]

    @property
    def value(self) -> _typing.Any:
        return self.data.get("$value")

    @property
    def ref(self) -> str | None:
        ref = self.data.get("$ref")
        return ref if isinstance(ref, str) else None

    @property
    def type(self) -> str | None:
        token_type = self.data.get("$type")
        return token_type if isinstance(token_type, str) else None

    @property
    def original_value(self) -> _typing.Any:
        """`$value`, falling back to the `$ref` string."""
        if "$value" in self.data:
            return self.data["$value"]
        return self.data.get("$ref")


@_dataclasses.dataclass(frozen=True)
class GroupNode:
    """A container of named children plus `$`-prefixed group properties."""

    data: _typing.Mapping[str, _typing.Any]

    @property
    def extends(self) -> _typing.Any:
        return self.data.get("$extends")

    @property
    def type(self) -> str | None:
        group_type = self.data.get("$type")
        return group_type if isinstance(group_type, str) else None

    def children(self) -> _typing.Iterator[tuple[str, _typing.Any]]:
        """Child entries in declaration order, `$root` included."""
        for key, value in self.data.items():
            if _is_child_key(key):
                yield key, value

    def properties(self) -> dict[str, _typing.Any]:
        """`$`-prefixed group properties (`$root` excluded)."""
        return {k: v for k, v in self.data.items() if not _is_child_key(k)}


@_dataclasses.dataclass(frozen=True)
class ReferenceNode:
    """An embedded `$ref` object. Sibling keys are shallow overrides."""

    ref: str
    overrides: _typing.Mapping[str, _typing.Any]

    @property
    def data(self) -> dict[str, _typing.Any]:
        return {"$ref": self.ref, **self.overrides}

    @property
    def type(self) -> str | None:
        token_type = self.overrides.get("$type")
        return token_type if isinstance(token_type, str) else None


@_dataclasses.dataclass(frozen=True)
class LiteralNode:
    """Anything that is none of the above."""

    value: _typing.Any


RawNode = TokenNode | GroupNode | ReferenceNode | LiteralNode


def classify(value: _typing.Any, *, in_value: bool = False) -> RawNode:
    """
    Map a raw value to exactly one node variant.

    Args:
        value: Raw JSON-like value.
        in_value: True when the value sits inside a token's `$value`.
            Mappings there are composite values, not groups or tokens.

    Returns:
        The matching variant.
    """
    if not isinstance(value, _typing.Mapping):
        return LiteralNode(value)

    ref = value.get("$ref")
    if isinstance(ref, str) and (in_value or "$value" not in value):
        overrides = {k: v for k, v in value.items() if k != "$ref"}
        return ReferenceNode(ref, overrides)

    if in_value:
        return LiteralNode(value)
    if "$value" in value:
        return TokenNode(value)
    return GroupNode(value)


def is_token_like(value: _typing.Any) -> bool:
    """Whether a raw value is a token (has `$value` or `$ref`)."""
    return isinstance(value, _typing.Mapping) and ("$value" in value or "$ref" in value)
