"""Per-graph cache of the label, property key and relationship type dictionaries.

Compact replies carry integer ids in place of names. The cache maps them
back, fetching the complete list for a dictionary from the server the first
time an id is seen that the local copy does not cover.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

LOG = logging.getLogger(__name__)


class DictionaryKind(Enum):
    """The three dictionaries, keyed by the procedure that lists them."""

    LABEL = "db.labels"
    PROPERTY_KEY = "db.propertyKeys"
    RELATIONSHIP_TYPE = "db.relationshipTypes"

    @property
    def procedure(self) -> str:
        return self.value


DictionaryFetcher = Callable[[DictionaryKind], Sequence[str]]


class _Dictionary:
    __slots__ = ("kind", "_fetch", "_lock", "_names", "fetch_count")

    def __init__(self, kind: DictionaryKind, fetch: DictionaryFetcher):
        self.kind = kind
        self._fetch = fetch
        self._lock = threading.Lock()
        self._names: Optional[List[str]] = None
        self.fetch_count = 0

    @staticmethod
    def _covers(names: Optional[List[str]], index: int) -> bool:
        return names is not None and index < len(names)

    def resolve(self, index: int) -> Optional[str]:
        if index < 0:
            raise IndexError(f"{self.kind.name.lower()} index must be non-negative, got {index}")
        # Every check and lookup works on one local reference; invalidate() may
        # clear self._names at any point outside the lock.
        names = self._names
        if not self._covers(names, index):
            with self._lock:
                names = self._names
                if not self._covers(names, index):
                    names = self._refresh()
        if names is None or index >= len(names):
            LOG.warning(
                "%s index %d is not known to the server after refresh", self.kind.procedure, index
            )
            return None
        return names[index]

    def _refresh(self) -> List[str]:
        LOG.debug("Refreshing schema dictionary via %s", self.kind.procedure)
        # A failed fetch leaves the previous table in place.
        fetched = [str(name) for name in self._fetch(self.kind)]
        self.fetch_count += 1
        self._names = fetched
        return fetched

    def replace(self, names: Sequence[str]) -> List[str]:
        fetched = [str(name) for name in names]
        with self._lock:
            self.fetch_count += 1
            self._names = fetched
        return fetched

    def invalidate(self) -> None:
        with self._lock:
            self._names = None

    def snapshot(self) -> List[str]:
        names = self._names
        return list(names) if names is not None else []


class SchemaCache:
    """Thread-safe, lazily populated id -> name tables for one graph."""

    def __init__(self, fetch: DictionaryFetcher):
        self._dictionaries: Dict[DictionaryKind, _Dictionary] = {
            kind: _Dictionary(kind, fetch) for kind in DictionaryKind
        }

    def resolve(self, kind: DictionaryKind, index: int) -> Optional[str]:
        return self._dictionaries[kind].resolve(int(index))

    def get_label(self, index: int) -> Optional[str]:
        return self.resolve(DictionaryKind.LABEL, index)

    def get_property_name(self, index: int) -> Optional[str]:
        return self.resolve(DictionaryKind.PROPERTY_KEY, index)

    def get_relationship_type(self, index: int) -> Optional[str]:
        return self.resolve(DictionaryKind.RELATIONSHIP_TYPE, index)

    def invalidate(self, kind: Optional[DictionaryKind] = None) -> None:
        """Drop the cached tables so the next lookup refetches them."""
        targets = [kind] if kind is not None else list(DictionaryKind)
        for target in targets:
            self._dictionaries[target].invalidate()
        LOG.debug("Invalidated schema dictionaries: %s", ", ".join(t.procedure for t in targets))

    def replace(self, kind: DictionaryKind, names: Sequence[str]) -> List[str]:
        """Install a complete table for ``kind`` and return it."""
        return self._dictionaries[kind].replace(names)

    def names(self, kind: DictionaryKind) -> List[str]:
        return self._dictionaries[kind].snapshot()

    def fetch_count(self, kind: DictionaryKind) -> int:
        return self._dictionaries[kind].fetch_count
