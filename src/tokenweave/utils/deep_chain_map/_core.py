"""
DeepChainMap: a ChainMap-like class with deep merging and read-only reads.

Unlike collections.ChainMap which returns the first dict containing a key,
DeepChainMap recursively merges values from all layers that contain a key.

Merge rules:
- Dict over dict: merged key by key, recursively
- Anything else (list, scalar, type mismatch): higher priority replaces

Source layers are stored by reference and never modified. Merged values
are cached per top-level key and returned as frozen views; to_dict()
returns an independent plain copy.

Thread safety: instances are meant to be built and read by one
resolution. Concurrent reads of a fully built instance are safe.
"""

from __future__ import annotations

import copy as _copy
import typing as _typing

import tokenweave.utils.deep_chain_map._frozen as _frozen
import tokenweave.utils.deep_chain_map._types as _types


class DeepChainMap(_typing.Mapping[str, _typing.Any]):
    """
    A read-only mapping that deep-merges layers at lookup time.

    Example:
        >>> base = {"size": {"sm": {"$value": "4px"}, "md": {"$value": "8px"}}}
        >>> dense = {"size": {"md": {"$value": "6px"}}}
        >>> dcm = DeepChainMap(dense, base, names=["dense", "base"])
        >>> dcm.to_dict()
        {'size': {'sm': {'$value': '4px'}, 'md': {'$value': '6px'}}}

    Provenance tracking:
        >>> dcm = DeepChainMap(dense, base, names=["dense", "base"], track_provenance=True)
        >>> dcm.layer_name(dcm.source_of(("size", "md", "$value")))
        'dense'

    Args:
        *maps: Dicts in priority order (first = highest priority).
        names: Optional label per layer, same order as maps.
        track_provenance: Whether to record which layer each value came from.
    """

    def __init__(
        self,
        *maps: dict[str, _typing.Any],
        names: _typing.Sequence[str] | None = None,
        track_provenance: bool = False,
    ) -> None:
        if names is not None and len(names) != len(maps):
            raise ValueError(
                f"Got {len(names)} layer names for {len(maps)} layers"
            )
        self._layers: list[dict[str, _typing.Any]] = list(maps)
        self._names: list[str] = (
            list(names) if names is not None else [f"layer-{i}" for i in range(len(maps))]
        )
        self._track_provenance = track_provenance
        self._cache: dict[str, _typing.Any] = {}
        self._provenance_cache: dict[str, _typing.Any] = {}

    def layer_name(self, index: int | None) -> str | None:
        """Return the label of a layer index, or None for None."""
        if index is None:
            return None
        return self._names[index]

    def add_layer(
        self,
        data: dict[str, _typing.Any],
        name: str | None = None,
        priority: int | None = None,
    ) -> None:
        """
        Add a new layer.

        Args:
            data: The dict to add as a layer.
            name: Label used in provenance queries.
            priority: Index to insert at. None = highest priority (index 0).
        """
        self._clear_cache()
        index = 0 if priority is None else priority
        self._layers.insert(index, data)
        self._names.insert(index, name if name is not None else f"layer-{len(self._layers) - 1}")

    def _clear_cache(self) -> None:
        self._cache.clear()
        self._provenance_cache.clear()

    # =========================================================================
    # Mapping interface
    # =========================================================================

    def __getitem__(self, key: str) -> _typing.Any:
        """
        Get the merged value for key as a frozen view.

        Raises:
            KeyError: If no layer contains the key.
        """
        return _frozen.freeze(self._merged(key))

    def _merged(self, key: str) -> _typing.Any:
        if key in self._cache:
            return self._cache[key]

        # Collect (layer_index, value) from lowest to highest priority
        values: list[tuple[int, _typing.Any]] = []
        for index in range(len(self._layers) - 1, -1, -1):
            layer = self._layers[index]
            if key in layer:
                values.append((index, layer[key]))

        if not values:
            raise KeyError(key)

        result, provenance = self._deep_merge_with_provenance(values)
        self._cache[key] = result
        if self._track_provenance:
            self._provenance_cache[key] = provenance
        return result

    def __iter__(self) -> _typing.Iterator[str]:
        """Iterate over unique keys, lowest-priority layer first.

        Keys keep the position at which they were first declared, so a
        merged document lists tokens in source order.
        """
        seen: set[str] = set()
        for layer in reversed(self._layers):
            for key in layer:
                if key not in seen:
                    seen.add(key)
                    yield key

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return any(key in layer for layer in self._layers)

    def __repr__(self) -> str:
        parts = [f"{name}={layer!r}" for name, layer in zip(self._names, self._layers)]
        return f"DeepChainMap({', '.join(parts)})"

    # =========================================================================
    # Provenance
    # =========================================================================

    def get_with_provenance(
        self,
        key: str,
    ) -> tuple[_typing.Any, _types.Provenance]:
        """
        Get a merged value along with provenance information.

        Returns:
            Tuple of (merged_value, provenance_dict). The provenance dict
            maps keys to layer indices (0 = highest priority), nesting for
            merged dicts.

        Raises:
            KeyError: If no layer contains the key.
            RuntimeError: If track_provenance was not enabled.
        """
        if not self._track_provenance:
            raise RuntimeError(
                "Provenance tracking not enabled. "
                "Create DeepChainMap with track_provenance=True."
            )
        value = self[key]
        return value, self._provenance_cache.get(key, {})

    def source_of(self, path: _types.Path) -> int | None:
        """
        Find the layer that supplied the value at a nested path.

        Walks the provenance tree as far as it is recorded. A path below a
        wholesale-replaced value reports the layer that replaced it.

        Args:
            path: Key path, e.g. ("color", "primary").

        Returns:
            The layer index, or None if the path is not present.
        """
        if not path or path[0] not in self:
            return None
        _, provenance = self.get_with_provenance(path[0])
        node: _typing.Any = provenance
        for segment in path[1:]:
            if isinstance(node, int):
                return node
            if segment not in node:
                return None
            node = node[segment]
        if isinstance(node, int):
            return node
        # A merged dict: report the highest-priority layer that touched it
        indices = list(_iter_indices(node))
        return min(indices) if indices else None

    # =========================================================================
    # Snapshots
    # =========================================================================

    def to_dict(self) -> dict[str, _typing.Any]:
        """
        Return a fully merged dict of all keys as a plain dict.

        This eagerly merges everything and returns a mutable deep copy.
        """
        return {key: _copy.deepcopy(self._merged(key)) for key in self}

    # =========================================================================
    # Merge internals
    # =========================================================================

    def _deep_merge_with_provenance(
        self,
        values: list[tuple[int, _typing.Any]],
    ) -> tuple[_typing.Any, _types.Provenance]:
        """
        Deep merge values from multiple layers.

        Args:
            values: (layer_index, value) tuples, lowest priority first.

        Returns:
            Tuple of (merged_value, provenance_dict).
        """
        result = _copy.deepcopy(values[0][1])
        provenance = self._build_provenance(result, values[0][0])

        for layer_index, value in values[1:]:
            result, provenance = self._merge_value(result, value, provenance, layer_index)

        return result, provenance

    def _merge_value(
        self,
        base: _typing.Any,
        override: _typing.Any,
        provenance: _types.Provenance,
        layer_index: int,
    ) -> tuple[_typing.Any, _types.Provenance]:
        """Merge override into base; override wins for non-dicts."""
        if not (isinstance(base, dict) and isinstance(override, dict)):
            return _copy.deepcopy(override), self._build_provenance(override, layer_index)

        result = dict(base)
        new_provenance = dict(provenance)
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                sub_provenance = provenance.get(key)
                result[key], new_provenance[key] = self._merge_value(
                    result[key],
                    value,
                    sub_provenance if isinstance(sub_provenance, dict) else {},
                    layer_index,
                )
            else:
                result[key] = _copy.deepcopy(value)
                new_provenance[key] = self._build_provenance(value, layer_index)
        return result, new_provenance

    def _build_provenance(self, value: _typing.Any, layer_index: int) -> _typing.Any:
        """Build the provenance tree for a value taken from one layer."""
        if isinstance(value, dict):
            return {key: self._build_provenance(item, layer_index) for key, item in value.items()}
        return layer_index


def _iter_indices(node: _typing.Any) -> _typing.Iterator[int]:
    if isinstance(node, int):
        yield node
        return
    for child in node.values():
        yield from _iter_indices(child)
