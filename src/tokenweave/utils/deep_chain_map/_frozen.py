"""
Read-only views over merged token trees.

DeepChainMap hands out merged values through these wrappers so a caller
holding a value cannot write back into the cache shared by later reads.
thaw() turns a frozen view back into plain, independent containers.
"""

from __future__ import annotations

import collections.abc as _abc
import typing as _typing


class FrozenMapping(_abc.Mapping[str, _typing.Any]):
    """Read-only view of a dict; nested containers are frozen on access."""

    __slots__ = ("_data",)

    def __init__(self, data: _abc.Mapping[str, _typing.Any]) -> None:
        self._data = data if isinstance(data, dict) else dict(data)

    def __getitem__(self, key: str) -> _typing.Any:
        return freeze(self._data[key])

    def __iter__(self) -> _typing.Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"FrozenMapping({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, _abc.Mapping):
            return thaw(self) == thaw(other)
        return NotImplemented

    def __hash__(self) -> int:
        raise TypeError(f"unhashable type: '{type(self).__name__}'")


class FrozenSequence(_abc.Sequence[_typing.Any]):
    """Read-only view of a list; nested containers are frozen on access."""

    __slots__ = ("_data",)

    def __init__(self, data: _abc.Sequence[_typing.Any]) -> None:
        self._data = data if isinstance(data, list) else list(data)

    @_typing.overload
    def __getitem__(self, index: int) -> _typing.Any: ...

    @_typing.overload
    def __getitem__(self, index: slice) -> FrozenSequence: ...

    def __getitem__(self, index: int | slice) -> _typing.Any:
        if isinstance(index, slice):
            return FrozenSequence(self._data[index])
        return freeze(self._data[index])

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"FrozenSequence({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (str, bytes)):
            return NotImplemented
        if isinstance(other, _abc.Sequence):
            return thaw(self) == thaw(other)
        return NotImplemented

    def __hash__(self) -> int:
        raise TypeError(f"unhashable type: '{type(self).__name__}'")


def freeze(value: _typing.Any) -> _typing.Any:
    """
    Wrap mutable containers in read-only views.

    Strings, bytes and tuples are returned unchanged, as are values that
    are already frozen.
    """
    if isinstance(value, (FrozenMapping, FrozenSequence)):
        return value
    if isinstance(value, _abc.Mapping):
        return FrozenMapping(value)
    if isinstance(value, _abc.Sequence) and not isinstance(value, (str, bytes, tuple)):
        return FrozenSequence(value)
    return value


def thaw(value: _typing.Any) -> _typing.Any:
    """Return plain dict/list copies of a (possibly frozen) value."""
    if isinstance(value, _abc.Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, _abc.Sequence) and not isinstance(value, (str, bytes, tuple)):
        return [thaw(item) for item in value]
    return value
