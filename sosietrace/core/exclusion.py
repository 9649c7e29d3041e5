"""
Variables known to differ between runs for reasons unrelated to the variant
(timestamps, identity hashes, random seeds...).

The service lives for a whole campaign and is shared between comparisons.
Comparisons read an immutable snapshot taken when they start; newly confirmed
noise is merged back through `merge`, which is append-only and serialized.
"""
from __future__ import annotations
import logging
import threading
from typing import FrozenSet, Iterable, List, Protocol

logger = logging.getLogger(__name__)


class ExclusionSet(Protocol):
    def contains(self, key: str) -> bool: ...


class ExclusionSnapshot:
    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys: FrozenSet[str] = frozenset(keys)

    def contains(self, key: str) -> bool:
        return key in self._keys

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)


class ExclusionService:
    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._keys: set[str] = set(keys)

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def merge(self, new_keys: Iterable[str]) -> List[str]:
        """Add keys; returns the ones that were not known yet, in sorted order."""
        incoming = set(new_keys)
        with self._lock:
            added = sorted(incoming - self._keys)
            self._keys.update(added)
        if added:
            logger.debug("merged %d exclusion key(s): %s", len(added), ", ".join(added))
        return added

    def snapshot(self) -> ExclusionSnapshot:
        with self._lock:
            return ExclusionSnapshot(self._keys)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._keys)
