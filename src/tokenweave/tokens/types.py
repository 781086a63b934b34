"""Flattened token types."""

import dataclasses as _dataclasses
import typing as _typing


@_dataclasses.dataclass
class FlatToken:
    """One leaf token in a flattened table."""

    name: str
    """Dot-joined path, e.g. "color.primary"."""

    path: list[str]
    value: _typing.Any = None
    type: str | None = None
    original_value: _typing.Any = None
    """Value before alias resolution."""

    description: str | None = None
    deprecated: bool | str | None = None
    extensions: dict[str, _typing.Any] | None = None
    is_alias: bool = False
    """Whether the value contained `{...}` references before resolution."""

    source: str | None = None
    """resolutionOrder layer that supplied the token, e.g. "set:base"."""

    def replace(self, **changes: _typing.Any) -> "FlatToken":
        """Return a copy with the given fields changed."""
        return _dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, _typing.Any]:
        """Render in DTCG shape, omitting unset metadata."""
        result: dict[str, _typing.Any] = {"$value": self.value}
        if self.type is not None:
            result["$type"] = self.type
        if self.description is not None:
            result["$description"] = self.description
        if self.deprecated is not None:
            result["$deprecated"] = self.deprecated
        if self.extensions:
            result["$extensions"] = self.extensions
        return result


ResolvedTokens = dict[str, FlatToken]
