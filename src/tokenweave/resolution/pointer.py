"""
JSON Pointer (RFC 6901) helpers for `#/a/b` style fragments.

Segments are decoded `~1` -> `/` then `~0` -> `~`, so `~01` becomes `~1`.
"""

import typing as _typing

import tokenweave.errors as errors


def split(pointer: str) -> list[str]:
    """
    Split a fragment pointer into decoded segments.

    Accepts "#/a/b", "/a/b", "#" and "". The empty pointer addresses the
    whole document and yields no segments.

    Raises:
        ReferenceResolutionError: If the pointer does not start with "/".
    """
    body = pointer[1:] if pointer.startswith("#") else pointer
    if body == "":
        return []
    if not body.startswith("/"):
        raise errors.ReferenceResolutionError(
            pointer, f"Invalid JSON pointer: {pointer!r} must start with '#/'"
        )
    return [_decode(segment) for segment in body[1:].split("/")]


def join(segments: _typing.Iterable[str]) -> str:
    """Build a "#/..." pointer from raw segments."""
    encoded = [s.replace("~", "~0").replace("/", "~1") for s in segments]
    return "#/" + "/".join(encoded)


def _decode(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def resolve(document: _typing.Any, pointer: str) -> _typing.Any:
    """
    Walk `document` along `pointer`.

    Mappings are indexed by key, lists by decimal index. Descending into a
    scalar, a missing key, or an out-of-range index is an error.

    Raises:
        ReferenceResolutionError: If any segment cannot be followed.
    """
    current = document
    walked: list[str] = []
    for segment in split(pointer):
        walked.append(segment)
        if isinstance(current, _typing.Mapping):
            if segment not in current:
                raise _missing(pointer, walked)
            current = current[segment]
        elif isinstance(current, list):
            if not segment.isdigit() or (len(segment) > 1 and segment[0] == "0"):
                raise _missing(pointer, walked)
            index = int(segment)
            if index >= len(current):
                raise _missing(pointer, walked)
            current = current[index]
        else:
            raise _missing(pointer, walked)
    return current


def contains(document: _typing.Any, pointer: str) -> bool:
    """Whether `pointer` can be followed in `document`."""
    try:
        resolve(document, pointer)
    except errors.ReferenceResolutionError:
        return False
    return True


def _missing(pointer: str, walked: list[str]) -> errors.ReferenceResolutionError:
    return errors.ReferenceResolutionError(
        pointer,
        f"Invalid reference: {pointer} (no value at {join(walked)})",
    )
