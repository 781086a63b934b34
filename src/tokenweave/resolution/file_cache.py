"""
Caller-owned cache of parsed token and resolver files.

One FileCache may be shared by every ReferenceResolver of a build, including
resolvers running on worker threads. Entries are keyed by absolute path;
the least recently used entry is evicted once `max_entries` is reached.
"""

import collections as _collections
import logging as _logging
import pathlib as _pathlib
import threading as _threading
import typing as _typing

import yaml as _yaml

import tokenweave.constants as constants
import tokenweave.errors as errors

_logger = _logging.getLogger(__name__)


def load_document(path: _pathlib.Path) -> _typing.Any:
    """
    Read and parse a JSON or YAML file.

    JSON is parsed with the YAML loader (JSON is a YAML subset).

    Raises:
        FileOperationError: If the file cannot be read or parsed.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise errors.FileOperationError(path, f"cannot read file: {e.strerror or e}") from e

    try:
        return _yaml.safe_load(content)
    except _yaml.YAMLError as e:
        raise errors.FileOperationError(path, f"invalid JSON/YAML: {e}") from e


class FileCache:
    """Thread-safe, bounded LRU cache of parsed documents."""

    def __init__(self, max_entries: int = constants.DEFAULT_FILE_CACHE_SIZE) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._max_entries = max_entries
        self._entries: _collections.OrderedDict[_pathlib.Path, _typing.Any] = (
            _collections.OrderedDict()
        )
        self._lock = _threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def load(self, path: _pathlib.Path) -> _typing.Any:
        """
        Return the parsed contents of `path`, reading it on first use.

        Callers must not mutate the returned value.
        """
        key = path.resolve()
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self.hits += 1
                return self._entries[key]
            self.misses += 1

        # Parse outside the lock; a concurrent miss on the same file parses twice.
        _logger.debug("Loading token file %s", key)
        parsed = load_document(key)

        with self._lock:
            self._entries[key] = parsed
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                _logger.debug("Evicted %s from file cache", evicted)
        return parsed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, _pathlib.Path):
            return False
        with self._lock:
            return path.resolve() in self._entries
