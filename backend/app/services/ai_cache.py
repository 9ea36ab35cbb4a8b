"""In-process cache for AI-generated responses.

Entries are keyed by ``{category}:{sha256(normalized input)}`` where the
input record is normalised by sorting its keys and trimming/lower-casing
string values, so ``{"mood": "Happy "}`` and ``{"mood": "happy"}`` share
an entry. An entry is visible only while ``now - created_at < ttl``;
expired entries are dropped lazily on read and in bulk by
``clear_expired()``, which the scheduler runs periodically.

One ``AICache`` is constructed per process at startup (see ``app.main``)
and handed to request handlers through ``app.state``. All public methods
take the same lock, so eviction racing with reads is safe.
"""

import hashlib
import json
import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MAX_ENTRIES = 1000

_PRIMITIVES = (str, int, float, bool, type(None))


@dataclass
class CacheEntry:
    """A memoised response."""

    key: str
    payload: Any
    created_at: float
    hit_count: int = 0

    @property
    def category(self) -> str:
        return self.key.split(":", 1)[0]


def normalize_input(input_record: Mapping[str, Any]) -> str:
    """Canonical JSON for a flat record of primitive values."""
    if not isinstance(input_record, Mapping):
        raise ValidationError("Cache input must be a mapping", field="input")

    normalized: dict[str, Any] = {}
    for name in sorted(input_record):
        if not isinstance(name, str):
            raise ValidationError(f"Cache input keys must be strings, got {name!r}", field="input")
        value = input_record[name]
        if not isinstance(value, _PRIMITIVES):
            raise ValidationError(
                f"Cache input value for {name!r} must be a primitive, got {type(value).__name__}",
                field=name,
            )
        normalized[name] = value.strip().lower() if isinstance(value, str) else value

    return json.dumps(normalized, sort_keys=True, separators=(",", ":"))


def _check_category(category: str) -> str:
    if not isinstance(category, str) or not category or ":" in category:
        raise ValidationError(f"Invalid cache category {category!r}", field="category")
    return category


def build_key(category: str, input_record: Mapping[str, Any]) -> str:
    """Deterministic cache key for *category* and *input_record*."""
    _check_category(category)
    digest = hashlib.sha256(normalize_input(input_record).encode("utf-8")).hexdigest()
    return f"{category}:{digest}"


class AICache:
    """Thread-safe TTL cache for AI responses."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        category_ttls: Mapping[str, float] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.category_ttls = dict(category_ttls or {})
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _ttl_for(self, category: str) -> float:
        return self.category_ttls.get(category, self.ttl_seconds)

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at >= self._ttl_for(entry.category)

    def get(self, category: str, input_record: Mapping[str, Any]) -> Any | None:
        """Return the cached payload, or None on miss or expiry."""
        key = build_key(category, input_record)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("AI cache MISS %s", category)
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                logger.debug("AI cache EXPIRED %s", category)
                return None
            entry.hit_count += 1
            logger.info("AI cache HIT %s (hits: %d)", category, entry.hit_count)
            return entry.payload

    def set(self, category: str, input_record: Mapping[str, Any], payload: Any) -> None:
        """Insert or overwrite an entry with a fresh timestamp."""
        key = build_key(category, input_record)
        with self._lock:
            self._entries[key] = CacheEntry(key=key, payload=payload, created_at=self._clock())
            logger.info("AI cache SAVE %s", category)
            if len(self._entries) > self.max_entries:
                self._purge_expired()

    def _purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear_expired(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        with self._lock:
            removed = self._purge_expired()
        logger.info("AI cache CLEANUP removed %d expired entries", removed)
        return removed

    def clear_category(self, category: str) -> int:
        """Remove every entry of one category."""
        prefix = f"{_check_category(category)}:"
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        logger.info("AI cache CLEAR %s - cleared %d entries", category, len(keys))
        return len(keys)

    def clear_all(self) -> int:
        """Drop every entry and return how many there were."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info("AI cache CLEAR ALL - cleared %d entries", removed)
        return removed

    def stats(self) -> dict[str, Any]:
        """Entry and hit counts, overall and per category."""
        total_hits = 0
        by_category: dict[str, dict[str, int]] = {}
        with self._lock:
            total_entries = len(self._entries)
            for entry in self._entries.values():
                bucket = by_category.setdefault(entry.category, {"entries": 0, "hits": 0})
                bucket["entries"] += 1
                bucket["hits"] += entry.hit_count
                total_hits += entry.hit_count

        return {
            "total_entries": total_entries,
            "total_hits": total_hits,
            "by_category": by_category,
        }
