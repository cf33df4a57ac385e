"""Habit router - FastAPI endpoints for patient habits"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_patient
from ...database import get_db
from ...models import User
from .schemas import (
    HabitCreate,
    HabitProgressToggle,
    HabitResponse,
    HabitToggleResponse,
    HabitUpdate,
    HabitWithProgress,
)
from .service import HabitService

router = APIRouter(prefix="/patient/habits", tags=["Habits"])


def get_habit_service(db: Session = Depends(get_db)) -> HabitService:
    """Dependency injection for HabitService"""
    return HabitService(db)


@router.get("", response_model=list[HabitWithProgress])
async def list_habits(
    month: Optional[str] = Query(None, description="YYYY-MM"),
    current_user: User = Depends(require_patient),
    service: HabitService = Depends(get_habit_service),
):
    return service.list_habits(current_user, month)


@router.post("", response_model=HabitResponse, status_code=201)
async def create_habit(
    data: HabitCreate,
    current_user: User = Depends(require_patient),
    service: HabitService = Depends(get_habit_service),
):
    return service.create_habit(data, current_user)


@router.put("/{habit_id}", response_model=HabitResponse)
async def update_habit(
    habit_id: int,
    data: HabitUpdate,
    current_user: User = Depends(require_patient),
    service: HabitService = Depends(get_habit_service),
):
    return service.update_habit(habit_id, data, current_user)


@router.delete("/{habit_id}")
async def delete_habit(
    habit_id: int,
    current_user: User = Depends(require_patient),
    service: HabitService = Depends(get_habit_service),
):
    service.delete_habit(habit_id, current_user)
    return {"success": True, "message": "Habit removed"}


@router.post("/{habit_id}/progress", response_model=HabitToggleResponse)
async def toggle_habit_progress(
    habit_id: int,
    data: HabitProgressToggle,
    current_user: User = Depends(require_patient),
    service: HabitService = Depends(get_habit_service),
):
    return service.toggle_progress(habit_id, data.date, current_user)


__all__ = ["router", "get_habit_service"]
