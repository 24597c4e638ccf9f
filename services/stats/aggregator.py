"""
Live dashboard counts over the whole applications table.

Every change notification triggers a full refetch; there is no delta
bookkeeping, so the numbers are always a fresh fold of the table.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from domain.models import ApplicationStatus, ChangeEvent
from domain.value_objects import LiveStats
from services.observability.metrics import timing_metric
from services.persistence.base import ChangeFeed, RelationalStore, Unsubscribe

logger = logging.getLogger(__name__)

TABLE = "applications"


def local_now() -> datetime:
    return datetime.now().astimezone()


def aggregate(rows: Iterable[tuple[ApplicationStatus, datetime]], now: datetime) -> LiveStats:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = today - timedelta(days=7)

    counts = {s: 0 for s in ApplicationStatus}
    total = today_count = week_count = 0
    for status, created_at in rows:
        total += 1
        counts[ApplicationStatus(status)] += 1
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=now.tzinfo)
        if created_at >= today:
            today_count += 1
        if created_at >= week_ago:
            week_count += 1

    return LiveStats(
        total=total,
        draft=counts[ApplicationStatus.DRAFT],
        submitted=counts[ApplicationStatus.SUBMITTED],
        under_review=counts[ApplicationStatus.UNDER_REVIEW],
        approved=counts[ApplicationStatus.APPROVED],
        rejected=counts[ApplicationStatus.REJECTED],
        today_count=today_count,
        week_count=week_count,
    )


class RealtimeStatsAggregator:
    def __init__(
        self,
        db: RelationalStore,
        feed: ChangeFeed,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.db = db
        self.feed = feed
        self.clock = clock
        self._lock = threading.Lock()
        self._stats = LiveStats()
        self._last_updated: datetime | None = None
        self._unsubscribe: Unsubscribe | None = None

    @property
    def stats(self) -> LiveStats:
        with self._lock:
            return self._stats

    @property
    def last_updated(self) -> datetime | None:
        with self._lock:
            return self._last_updated

    def start(self) -> None:
        self.refetch()
        if self._unsubscribe is None:
            self._unsubscribe = self.feed.subscribe(
                TABLE,
                (ChangeEvent.INSERT, ChangeEvent.UPDATE, ChangeEvent.DELETE),
                self._on_change,
            )

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, table: str, event: ChangeEvent) -> None:
        logger.debug("%s on %s; refetching stats", event.value, table)
        self.refetch()

    def refetch(self) -> LiveStats:
        """Recompute from a full fetch; keeps the previous snapshot on failure."""
        try:
            with timing_metric("stats.refetch"):
                rows = self.db.list_status_rows()
                fresh = aggregate(rows, self.clock())
        except Exception:
            logger.exception("Error fetching stats")
            return self.stats
        with self._lock:
            self._stats = fresh
            self._last_updated = self.clock()
        return fresh
