"""
Utility classes and functions for tokenweave.

General-purpose helpers that don't belong to a specific resolver stage.
"""

import tokenweave.utils.case_insensitive as case_insensitive
import tokenweave.utils.deep_chain_map as deep_chain_map
import tokenweave.utils.similarity as similarity
from tokenweave.utils.case_insensitive import CaseInsensitiveDict
from tokenweave.utils.deep_chain_map import DeepChainMap

__all__ = [
    "CaseInsensitiveDict",
    "DeepChainMap",
    "case_insensitive",
    "deep_chain_map",
    "similarity",
]
