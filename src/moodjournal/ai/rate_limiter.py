"""Daily AI-analysis allowance per user.

A user may run one AI analysis per calendar day. The allowance is tracked
by a marker in a key-value store under
``"{prefix}_{user_id}_{YYYY-MM-DD}"`` whose value is the UTC timestamp of
the first successful use. A new day means a new key; old markers are only
removed by ``prune``.

The limiter is consulted by the caller, not by the AI client:

    >>> limiter = RateLimiter(JsonFileStore(config.paths.quota_file))
    >>> if limiter.can_use(user_id):
    ...     result = client.analyze_diary_entry(text)
    ...     if result.ok:
    ...         limiter.mark_used(user_id)

Failure policy:
- ``can_use`` fails closed: a store error denies usage.
- ``mark_used`` logs a store error and carries on; the cost is at most one
  extra free use.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone

from moodjournal.core.storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "ai_analysis"


class RateLimiter:
    """One AI analysis per user per day, backed by a KeyValueStore.

    Args:
        store: Persistence for quota markers.
        key_prefix: Marker key prefix.
    """

    def __init__(self, store: KeyValueStore, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._store = store
        self._key_prefix = key_prefix
        self._key_pattern = re.compile(
            rf"^{re.escape(key_prefix)}_(?P<user>.+)_(?P<day>\d{{4}}-\d{{2}}-\d{{2}})$"
        )

    def quota_key(self, user_id: str, day: date) -> str:
        return f"{self._key_prefix}_{user_id}_{day.isoformat()}"

    def can_use(self, user_id: str, today: date | None = None) -> bool:
        """True iff the user has no marker for ``today`` (defaults to the local date)."""
        key = self.quota_key(user_id, today or date.today())
        try:
            return self._store.get(key) is None
        except Exception as e:
            logger.warning(f"Quota check failed, denying usage: {e}")
            return False

    def mark_used(self, user_id: str, today: date | None = None) -> None:
        """Record the day's use. Writing twice for the same day is harmless."""
        key = self.quota_key(user_id, today or date.today())
        try:
            self._store.set(key, datetime.now(timezone.utc).isoformat())
        except Exception as e:
            logger.error(f"Failed to record quota use: {e}")

    def used_at(self, user_id: str, today: date | None = None) -> datetime | None:
        """When the user consumed the day's allowance, if they did."""
        key = self.quota_key(user_id, today or date.today())
        value = self._store.get(key)
        if value is None:
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            logger.debug(f"Unparseable quota marker for {key}")
            return None

    def prune(self, before: date) -> int:
        """Delete markers dated strictly before ``before``.

        Returns:
            Number of markers removed.

        Raises:
            StorageError: If the store cannot be read or written.
        """
        removed = 0
        for key in self._store.keys():
            match = self._key_pattern.match(key)
            if match is None:
                continue
            try:
                day = date.fromisoformat(match.group("day"))
            except ValueError:
                continue
            if day < before and self._store.delete(key):
                removed += 1

        if removed:
            logger.info(f"Pruned {removed} quota markers older than {before.isoformat()}")
        return removed
