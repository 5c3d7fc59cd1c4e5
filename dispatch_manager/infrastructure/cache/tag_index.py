"""
Cache Tag Index

Bidirectional mapping between cache keys and tags. The two maps are kept
as exact mirror images under one lock: a (key, tag) pair is present in
``tag -> keys`` if and only if it is present in ``key -> tags``.
"""

import threading
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple


class TagIndex:
    """
    Thread-safe tag index.

    Each registration carries the version of the cache entry it belongs
    to. Cleanup for an evicted entry passes that version, so a late
    callback for a replaced entry leaves the newer registration alone.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tag_to_keys: Dict[str, Set[str]] = {}
        self._key_to_tags: Dict[str, Set[str]] = {}
        self._versions: Dict[str, int] = {}

    def register(self, key: str, version: int, tags: Iterable[str]) -> None:
        """Replace the tag set of ``key`` with ``tags``."""
        new_tags = set(tags)
        with self._lock:
            self._unlink(key)
            self._key_to_tags[key] = new_tags
            self._versions[key] = version
            for tag in new_tags:
                self._tag_to_keys.setdefault(tag, set()).add(key)

    def unregister(self, key: str, version: Optional[int] = None) -> bool:
        """Drop every association of ``key``.

        With ``version`` set, only a registration of that exact version is
        dropped. Returns True when something was removed.
        """
        with self._lock:
            if key not in self._key_to_tags:
                return False
            if version is not None and self._versions.get(key) != version:
                return False
            self._unlink(key)
            return True

    def _unlink(self, key: str) -> None:
        # Caller holds the lock
        for tag in self._key_to_tags.pop(key, ()):
            keys = self._tag_to_keys.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tag_to_keys[tag]
        self._versions.pop(key, None)

    def keys_for_tags(self, tags: Iterable[str]) -> Set[str]:
        """Union of keys registered under any of ``tags``."""
        with self._lock:
            result: Set[str] = set()
            for tag in tags:
                result.update(self._tag_to_keys.get(tag, ()))
            return result

    def tags_for_key(self, key: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._key_to_tags.get(key, ()))

    def version_of(self, key: str) -> Optional[int]:
        with self._lock:
            return self._versions.get(key)

    def tag_counts(self) -> List[Tuple[str, int]]:
        """``(tag, key count)`` pairs sorted by tag."""
        with self._lock:
            return sorted((tag, len(keys)) for tag, keys in self._tag_to_keys.items())

    def snapshot(self) -> Tuple[Dict[str, FrozenSet[str]], Dict[str, FrozenSet[str]]]:
        """Copies of both maps taken atomically."""
        with self._lock:
            return (
                {tag: frozenset(keys) for tag, keys in self._tag_to_keys.items()},
                {key: frozenset(tags) for key, tags in self._key_to_tags.items()},
            )

    def clear(self) -> None:
        with self._lock:
            self._tag_to_keys.clear()
            self._key_to_tags.clear()
            self._versions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._key_to_tags)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._key_to_tags
