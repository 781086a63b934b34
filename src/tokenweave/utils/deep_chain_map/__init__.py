"""
DeepChainMap: a read-only ChainMap that deep-merges nested mappings.

Layers are checked in priority order (first layer = highest priority).
Nested dicts merge key by key; lists and scalars from a higher-priority
layer replace lower-priority values wholesale.

Example:
    >>> from tokenweave.utils.deep_chain_map import DeepChainMap
    >>> base = {"color": {"primary": {"$value": "#ff0000"}, "accent": {"$value": "#00f"}}}
    >>> dark = {"color": {"primary": {"$value": "#000000"}}}
    >>> dcm = DeepChainMap(dark, base)
    >>> dcm.to_dict()["color"]["primary"]["$value"]
    '#000000'
"""

from tokenweave.utils.deep_chain_map._core import DeepChainMap
from tokenweave.utils.deep_chain_map._frozen import FrozenMapping, FrozenSequence, freeze

__all__ = ["DeepChainMap", "FrozenMapping", "FrozenSequence", "freeze"]
