"""
Progress metrics of a prescription.

All functions are pure: callers pass the already-loaded records and "today"
so the arithmetic can be reasoned about (and tested) without a database.
"""

import math
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from ...models import TASK_COMPLETED
from .schemas import ProgressMetrics

DEFAULT_PROTOCOL_DURATION = 30


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def round_half_up(value: float) -> int:
    """Round .5 upwards (Python's round() rounds half to even)"""
    return int(math.floor(value + 0.5))


def adherence_rate(completed: int, total: int) -> int:
    """Percentage of completed over total, 0 when there is nothing to complete"""
    if total <= 0:
        return 0
    return round_half_up(completed / total * 100)


def current_day(start: Union[date, datetime], today: date, duration: Optional[int]) -> int:
    """1-based day of the protocol, clamped to [1, duration]"""
    elapsed = (today - _as_date(start)).days
    max_day = duration or DEFAULT_PROTOCOL_DURATION
    return max(1, min(elapsed + 1, max_day))


def streak_days(records: Iterable, today: date, start: Union[date, datetime]) -> int:
    """
    Consecutive fully-completed days ending today.

    Records are grouped by scheduled date; a day counts only when it has
    records and every one of them is COMPLETED. The walk stops at the first
    day that does not qualify or when it goes before the start date.
    """
    per_day: dict[date, list[int]] = defaultdict(lambda: [0, 0])
    for record in records:
        bucket = per_day[_as_date(record.scheduled_date)]
        bucket[0] += 1
        if record.status == TASK_COMPLETED:
            bucket[1] += 1

    start_day = _as_date(start)
    streak = 0
    check = today
    while check >= start_day:
        total, completed = per_day.get(check, (0, 0))
        if total == 0 or completed != total:
            break
        streak += 1
        check -= timedelta(days=1)
    return streak


def compute_metrics(prescription, total_tasks: int, records: list, today: Optional[date] = None) -> ProgressMetrics:
    """Derived metrics of a prescription from its progress records"""
    today = today or datetime.utcnow().date()
    start = prescription.actual_start_date or prescription.planned_start_date
    completed = sum(1 for r in records if r.status == TASK_COMPLETED)

    return ProgressMetrics(
        totalTasks=total_tasks,
        completedTasks=completed,
        adherenceRate=adherence_rate(completed, total_tasks),
        currentDay=current_day(start, today, prescription.protocol.duration),
        streakDays=streak_days(records, today, start),
        startDate=start,
        lastActivity=prescription.last_progress_date or start,
        status=prescription.status,
    )
