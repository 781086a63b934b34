"""
"Did you mean?" suggestions for names that failed to resolve.

Suggestions are computed on demand from the candidate list the caller
passes in; nothing is cached at module level.
"""

import difflib as _difflib
import typing as _typing

import tokenweave.constants as constants


def find_similar(
    target: str,
    candidates: _typing.Iterable[str],
    *,
    limit: int = constants.DEFAULT_MAX_SUGGESTIONS,
    cutoff: float = constants.SUGGESTION_CUTOFF,
) -> list[str]:
    """
    Find candidates that look like a misspelling of target.

    Matching ignores case. Exact (case-insensitive) matches are not
    suggested, since they are not misspellings.

    Args:
        target: The name that was not found.
        candidates: Names that do exist.
        limit: Maximum number of suggestions.
        cutoff: Minimum similarity ratio in [0, 1].

    Returns:
        Matching candidates in their original spelling, closest first.
    """
    by_folded: dict[str, str] = {}
    for candidate in candidates:
        by_folded.setdefault(candidate.casefold(), candidate)

    folded_target = target.casefold()
    matches = _difflib.get_close_matches(
        folded_target,
        [name for name in by_folded if name != folded_target],
        n=limit,
        cutoff=cutoff,
    )
    return [by_folded[name] for name in matches]
