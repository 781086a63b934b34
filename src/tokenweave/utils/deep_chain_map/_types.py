"""
Type aliases for DeepChainMap.

- Path: tuple of strings naming a nested key path
- Provenance: recursive dict recording which layer each key came from
"""

from __future__ import annotations

import typing as _typing

# Example: ("color", "primary", "$value") names color.primary.$value
Path: _typing.TypeAlias = tuple[str, ...]

# Structure: {"key": layer_index, "nested": {"subkey": layer_index, ...}}
# A non-mapping value is recorded as the bare layer index.
if _typing.TYPE_CHECKING:
    Provenance: _typing.TypeAlias = dict[str, "int | Provenance"]
else:
    Provenance: _typing.TypeAlias = dict[str, object]
