"""Habit service - Business logic for patient habits"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Habit, HabitProgress, User
from ...shared.validators import parse_day, parse_month
from .repository import HabitRepository
from .schemas import HabitCreate, HabitUpdate

logger = logging.getLogger(__name__)


class HabitService:
    """Service layer for habits"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = HabitRepository()

    def _get_habit(self, habit_id: int, user: User) -> Habit:
        habit = self.repo.get_habit(self.db, habit_id, user.id)
        if not habit:
            raise HTTPException(status_code=404, detail="Habit not found")
        return habit

    def list_habits(self, user: User, month: Optional[str] = None) -> list[dict]:
        """Active habits with their progress for the month (current month by default)"""
        try:
            start, end = parse_month(month or datetime.utcnow().strftime("%Y-%m"))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        habits = self.repo.list_active(self.db, user.id)
        progress_by_habit = defaultdict(list)
        for row in self.repo.progress_between(self.db, [h.id for h in habits], start, end):
            progress_by_habit[row.habit_id].append({"date": row.date, "isChecked": row.is_checked})

        return [
            {
                "id": h.id,
                "title": h.title,
                "category": h.category,
                "order": h.order,
                "created_at": h.created_at,
                "progress": progress_by_habit.get(h.id, []),
            }
            for h in habits
        ]

    def create_habit(self, data: HabitCreate, user: User) -> Habit:
        habit = Habit(
            user_id=user.id,
            title=data.title,
            category=data.category or "personal",
            order=self.repo.next_order(self.db, user.id),
        )
        self.db.add(habit)
        self.db.commit()
        self.db.refresh(habit)
        logger.info(f"✅ Habit {habit.id} created for user {user.id}")
        return habit

    def update_habit(self, habit_id: int, data: HabitUpdate, user: User) -> Habit:
        habit = self._get_habit(habit_id, user)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(habit, key, value)
        self.db.commit()
        self.db.refresh(habit)
        return habit

    def delete_habit(self, habit_id: int, user: User) -> None:
        habit = self._get_habit(habit_id, user)
        habit.is_active = False
        self.db.commit()
        logger.info(f"🗑️ Habit {habit.id} deactivated")

    def toggle_progress(self, habit_id: int, day_str: str, user: User) -> dict:
        """First call for a day checks the habit, later calls flip it"""
        habit = self._get_habit(habit_id, user)
        day = parse_day(day_str)

        progress = self.repo.get_progress(self.db, habit.id, day)
        is_update = progress is not None
        if progress:
            progress.is_checked = not progress.is_checked
        else:
            progress = HabitProgress(habit_id=habit.id, date=day, is_checked=True)
            self.db.add(progress)
        self.db.commit()
        self.db.refresh(progress)

        return {"success": True, "isUpdate": is_update, "date": progress.date, "isChecked": progress.is_checked}
