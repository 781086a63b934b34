"""Case-insensitive lookup that remembers the declared spelling of each key."""

from __future__ import annotations

import typing as _typing

_V = _typing.TypeVar("_V")


class CaseInsensitiveDict(_typing.Generic[_V]):
    """
    Mapping keyed case-insensitively.

    Keys are matched with str.casefold(), but the spelling used when the
    key was stored is kept and returned by original_key() and keys().

    Example:
        >>> contexts = CaseInsensitiveDict({"Light": 1, "Dark": 2})
        >>> contexts.original_key("DARK")
        'Dark'
    """

    def __init__(self, items: _typing.Mapping[str, _V] | None = None) -> None:
        self._entries: dict[str, tuple[str, _V]] = {}
        if items:
            for key, value in items.items():
                self[key] = value

    def __setitem__(self, key: str, value: _V) -> None:
        self._entries[key.casefold()] = (key, value)

    def __getitem__(self, key: str) -> _V:
        return self._entries[key.casefold()][1]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default: _V | None = None) -> _V | None:
        entry = self._entries.get(key.casefold())
        return entry[1] if entry is not None else default

    def original_key(self, key: str) -> str | None:
        """Return the declared spelling for key, or None if absent."""
        entry = self._entries.get(key.casefold())
        return entry[0] if entry is not None else None

    def keys(self) -> list[str]:
        """Keys in declared spelling and insertion order."""
        return [original for original, _ in self._entries.values()]

    def items(self) -> list[tuple[str, _V]]:
        return list(self._entries.values())
