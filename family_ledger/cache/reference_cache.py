import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from loguru import logger

from family_ledger.models.schemas import ExpenseSummary

DEFAULT_TTL_SECONDS = 10 * 60


@dataclass(frozen=True)
class CacheEntry:
    records: tuple[ExpenseSummary, ...]
    created_at: float


class ReferenceCache:
    """Remembers the last listing shown to each user so "#N" can be resolved.

    One entry per user; a new listing replaces the old one outright. Entries
    expire lazily: an expired entry stays in memory until the next lookup for
    that user drops it.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def put(self, user_id: str, records: Sequence[ExpenseSummary]) -> None:
        entry = CacheEntry(records=tuple(records), created_at=self._clock())
        with self._lock:
            self._entries[user_id] = entry

    def resolve(self, user_id: str, index: int) -> ExpenseSummary | None:
        """Return the record shown at 1-based ``index``, or None on a miss."""
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self.ttl_seconds:
                del self._entries[user_id]
                logger.debug("Reference listing for {} expired", user_id)
                return None
        if index < 1 or index > len(entry.records):
            return None
        return entry.records[index - 1]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._entries
