from __future__ import annotations
import logging
from typing import Callable, Dict, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)


class ReferenceResolver(Protocol):
    def find_by_lookup_key(self, content_type: str, key: str) -> Optional[str]:
        ...


class ReferenceCache:
    """Lookups memoized for one import run. Create a fresh one per run."""

    def __init__(self) -> None:
        self._data: Dict[Tuple[str, str], Optional[str]] = {}
        self.hits = 0
        self.misses = 0

    def __contains__(self, item: Tuple[str, str]) -> bool:
        return item in self._data

    def __len__(self) -> int:
        return len(self._data)

    def get(self, content_type: str, key: str) -> Optional[str]:
        self.hits += 1
        return self._data[(content_type, key)]

    def put(self, content_type: str, key: str, uid: Optional[str]) -> None:
        self.misses += 1
        self._data[(content_type, key)] = uid

    def clear(self) -> None:
        self._data.clear()


class CachedReferenceResolver:
    """Wrap a lookup function ``(content_type, key) -> uid | None`` with a ReferenceCache.

    Empty results are cached; exceptions are not, so a transient failure is
    retried on the next row that needs the same key.
    """

    def __init__(self, lookup: Callable[[str, str], Optional[str]], cache: Optional[ReferenceCache] = None):
        self.lookup = lookup
        self.cache = cache if cache is not None else ReferenceCache()

    def find_by_lookup_key(self, content_type: str, key: str) -> Optional[str]:
        if (content_type, key) in self.cache:
            return self.cache.get(content_type, key)
        uid = self.lookup(content_type, key)
        self.cache.put(content_type, key, uid)
        logger.debug("reference lookup %s/%r -> %s", content_type, key, uid)
        return uid
