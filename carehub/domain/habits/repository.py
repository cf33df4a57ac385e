"""Habit repository - Database operations for habits and their daily progress"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Habit, HabitProgress


class HabitRepository:
    """Repository for habit database operations"""

    @staticmethod
    def list_active(db: Session, user_id: int) -> list[Habit]:
        return (
            db.query(Habit)
            .filter(Habit.user_id == user_id, Habit.is_active.is_(True))
            .order_by(Habit.order, Habit.id)
            .all()
        )

    @staticmethod
    def progress_between(db: Session, habit_ids: list[int], start: date, end: date) -> list[HabitProgress]:
        """Progress rows in [start, end)"""
        if not habit_ids:
            return []
        return (
            db.query(HabitProgress)
            .filter(HabitProgress.habit_id.in_(habit_ids), HabitProgress.date >= start, HabitProgress.date < end)
            .order_by(HabitProgress.date)
            .all()
        )

    @staticmethod
    def get_habit(db: Session, habit_id: int, user_id: int) -> Optional[Habit]:
        return (
            db.query(Habit)
            .filter(Habit.id == habit_id, Habit.user_id == user_id, Habit.is_active.is_(True))
            .first()
        )

    @staticmethod
    def next_order(db: Session, user_id: int) -> int:
        last = db.query(Habit).filter(Habit.user_id == user_id).order_by(Habit.order.desc()).first()
        return last.order + 1 if last else 0

    @staticmethod
    def get_progress(db: Session, habit_id: int, day: date) -> Optional[HabitProgress]:
        return db.query(HabitProgress).filter(HabitProgress.habit_id == habit_id, HabitProgress.date == day).first()
