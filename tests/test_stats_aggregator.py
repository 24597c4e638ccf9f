import uuid
from datetime import datetime, timedelta, timezone

from domain.models import Application, ApplicationStatus
from domain.value_objects import LiveStats
from services.stats.aggregator import RealtimeStatsAggregator, aggregate

NOW = datetime(2025, 6, 15, 14, 0, tzinfo=timezone.utc)


def clock():
    return NOW


def row(status, days_ago=0.0):
    return (ApplicationStatus(status), NOW - timedelta(days=days_ago))


def test_aggregate_counts_by_status():
    rows = [
        row("draft"),
        row("submitted"),
        row("submitted"),
        row("approved"),
        row("rejected"),
        row("rejected"),
    ]
    stats = aggregate(rows, NOW)
    assert stats == LiveStats(
        total=6, draft=1, submitted=2, under_review=0, approved=1, rejected=2, today_count=6, week_count=6
    )


def test_today_and_week_windows_start_at_local_midnight():
    rows = [
        row("submitted", days_ago=0),  # 14:00 today
        row("submitted", days_ago=0.5),  # 02:00 today
        row("submitted", days_ago=1),  # yesterday
        row("submitted", days_ago=7.5),  # still inside "today - 7 days" at 02:00
        row("submitted", days_ago=8),  # outside
    ]
    stats = aggregate(rows, NOW)
    assert stats.total == 5
    assert stats.today_count == 2
    assert stats.week_count == 4


def test_empty_table():
    assert aggregate([], NOW) == LiveStats()


def new_app(status=ApplicationStatus.SUBMITTED):
    return Application(
        id=str(uuid.uuid4()),
        application_number=f"APP{uuid.uuid4().int % 10**13}",
        user_id="u1",
        course_name="BBA",
        status=status,
        created_at=NOW,
    )


def test_refetches_on_every_change_event(platform):
    agg = RealtimeStatsAggregator(platform.db, platform.feed, clock=clock)
    agg.start()
    assert agg.stats.total == 0
    assert agg.last_updated == NOW

    app = platform.db.insert_application(new_app())
    assert agg.stats.total == 1
    assert agg.stats.submitted == 1

    platform.db.update_application(app.id, {"status": ApplicationStatus.APPROVED})
    assert agg.stats.submitted == 0
    assert agg.stats.approved == 1

    platform.db.delete_application(app.id)
    assert agg.stats.total == 0

    agg.stop()
    platform.db.insert_application(new_app())
    assert agg.stats.total == 0
    assert agg.refetch().total == 1


class BrokenStore:
    def list_status_rows(self):
        raise RuntimeError("connection reset")


def test_failed_refetch_keeps_previous_snapshot(platform):
    platform.db.insert_application(new_app())
    agg = RealtimeStatsAggregator(platform.db, platform.feed, clock=clock)
    agg.refetch()
    assert agg.stats.total == 1

    agg.db = BrokenStore()
    assert agg.refetch().total == 1
    assert agg.stats.total == 1
