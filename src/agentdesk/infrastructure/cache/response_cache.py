"""
Response Cache

Memoizes model responses keyed by the exact request the model service would
receive (model id, full message sequence, tool specs, sampling parameters).
Entries expire after a time-to-live and the cache is bounded by entry count
with least-recently-used eviction.

The cache is the only state shared between turns, so every operation holds a
lock. Lookups are exact-key only.
"""

import copy
import json
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import structlog

from agentdesk.core.domain.models import ModelRequest, ModelResponse

DEFAULT_MAX_ENTRIES = 128
DEFAULT_TTL_SECONDS = 300.0


def _normalize(value):
    """Coerce mapping keys to strings so mixed-key tool outputs still sort."""
    if isinstance(value, Mapping):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


@dataclass
class CacheEntry:
    response: ModelResponse
    expires_at: float


class ResponseCache:
    """Thread-safe TTL + LRU cache of model responses."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.logger = structlog.get_logger().bind(component="response_cache")

    @staticmethod
    def make_key(request: ModelRequest) -> str:
        """Canonical JSON of the request: sorted keys, compact separators."""
        return json.dumps(
            _normalize(request.to_payload()),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=str,
        )

    def get(self, key: str) -> ModelResponse | None:
        """Return a copy of the live entry for ``key``, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                self.logger.debug("cache_entry_expired")
                return None
            self._entries.move_to_end(key)
            return copy.deepcopy(entry.response)

    def put(self, key: str, response: ModelResponse) -> bool:
        """
        Store ``response`` under ``key`` unless a live entry already exists.

        Responses without candidates are not stored.

        Returns:
            True if the response was stored
        """
        if not response.candidates:
            return False

        with self._lock:
            now = self._clock()
            existing = self._entries.get(key)
            if existing is not None and existing.expires_at > now:
                return False

            self._entries[key] = CacheEntry(
                response=copy.deepcopy(response),
                expires_at=now + self.ttl_seconds,
            )
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self.logger.debug("cache_entry_evicted", size=len(self._entries))
            return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
