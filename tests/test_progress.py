from datetime import date, datetime
from types import SimpleNamespace

from carehub.domain.checkins.service import checkin_progress
from carehub.domain.prescriptions.progress import (
    adherence_rate,
    compute_metrics,
    current_day,
    round_half_up,
    streak_days,
)


def record(day: date, status: str = "COMPLETED"):
    return SimpleNamespace(scheduled_date=day, status=status)


class TestAdherence:
    def test_no_tasks_is_zero(self):
        assert adherence_rate(0, 0) == 0

    def test_rounds_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert adherence_rate(1, 8) == 13  # 12.5

    def test_partial(self):
        assert adherence_rate(1, 3) == 33
        assert adherence_rate(2, 3) == 67
        assert adherence_rate(3, 3) == 100


class TestCurrentDay:
    def test_first_day(self):
        assert current_day(date(2026, 3, 1), date(2026, 3, 1), 10) == 1

    def test_counts_elapsed_days(self):
        assert current_day(datetime(2026, 3, 1, 18, 30), date(2026, 3, 4), 10) == 4

    def test_clamped_to_duration(self):
        assert current_day(date(2026, 3, 1), date(2026, 5, 1), 10) == 10

    def test_before_start_is_day_one(self):
        assert current_day(date(2026, 3, 10), date(2026, 3, 1), 10) == 1

    def test_missing_duration_uses_default(self):
        assert current_day(date(2026, 1, 1), date(2026, 6, 1), None) == 30


class TestStreak:
    def test_consecutive_completed_days(self):
        records = [
            record(date(2026, 3, 3)),
            record(date(2026, 3, 2)),
            record(date(2026, 3, 2)),
            record(date(2026, 3, 1)),
        ]
        assert streak_days(records, date(2026, 3, 3), date(2026, 3, 1)) == 3

    def test_partial_day_breaks_streak(self):
        records = [
            record(date(2026, 3, 3)),
            record(date(2026, 3, 2)),
            record(date(2026, 3, 2), "PENDING"),
            record(date(2026, 3, 1)),
        ]
        assert streak_days(records, date(2026, 3, 3), date(2026, 3, 1)) == 1

    def test_nothing_today_is_zero(self):
        records = [record(date(2026, 3, 2))]
        assert streak_days(records, date(2026, 3, 3), date(2026, 3, 1)) == 0

    def test_stops_at_start_date(self):
        records = [record(date(2026, 3, 1)), record(date(2026, 3, 2))]
        assert streak_days(records, date(2026, 3, 2), date(2026, 3, 2)) == 1


def test_compute_metrics():
    prescription = SimpleNamespace(
        actual_start_date=datetime(2026, 3, 1, 9, 0),
        planned_start_date=datetime(2026, 2, 20),
        last_progress_date=None,
        status="ACTIVE",
        protocol=SimpleNamespace(duration=7),
    )
    records = [record(date(2026, 3, 2)), record(date(2026, 3, 2), "MISSED")]

    metrics = compute_metrics(prescription, total_tasks=4, records=records, today=date(2026, 3, 2))

    assert metrics.totalTasks == 4
    assert metrics.completedTasks == 1
    assert metrics.adherenceRate == 25
    assert metrics.currentDay == 2
    assert metrics.streakDays == 0
    assert metrics.startDate == datetime(2026, 3, 1, 9, 0)
    assert metrics.lastActivity == datetime(2026, 3, 1, 9, 0)


class TestCheckinProgress:
    def make(self, start, end=None, duration=None):
        return SimpleNamespace(
            actual_start_date=start,
            planned_start_date=start,
            planned_end_date=end,
            protocol=SimpleNamespace(duration=duration),
        )

    def test_uses_planned_end_date(self):
        progress = checkin_progress(self.make(datetime(2026, 3, 1), end=datetime(2026, 3, 10)), date(2026, 3, 5))
        assert progress == {"currentDay": 5, "totalDays": 10, "percentage": 50}

    def test_falls_back_to_protocol_duration(self):
        progress = checkin_progress(self.make(datetime(2026, 3, 1), duration=4), date(2026, 3, 10))
        assert progress["totalDays"] == 4
        assert progress["percentage"] == 100

    def test_defaults_to_thirty_days(self):
        progress = checkin_progress(self.make(datetime(2026, 3, 1)), date(2026, 3, 3))
        assert progress == {"currentDay": 3, "totalDays": 30, "percentage": 10}
