"""Habit domain schemas"""

from datetime import date as date_type
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import parse_day


class HabitCreate(BaseModel):
    title: str = Field(..., max_length=255)
    category: str = "personal"

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v


class HabitUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = None
    order: Optional[int] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v


class HabitProgressToggle(BaseModel):
    date: str

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        parse_day(v)
        return v


class HabitDay(BaseModel):
    date: date_type
    isChecked: bool


class HabitResponse(BaseModel):
    id: int
    title: str
    category: str
    order: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HabitWithProgress(HabitResponse):
    progress: list[HabitDay] = []


class HabitToggleResponse(BaseModel):
    success: bool = True
    isUpdate: bool
    date: date_type
    isChecked: bool
