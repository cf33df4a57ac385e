"""Check-in domain schemas"""

from datetime import date as date_type
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

QUESTION_TYPES = ("MULTIPLE_CHOICE", "SCALE", "TEXT", "YES_NO")


class QuestionCreate(BaseModel):
    question: str = Field(..., min_length=1)
    type: str
    options: Optional[list[Any]] = None
    is_required: bool = True
    order: int = 0

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        if v not in QUESTION_TYPES:
            raise ValueError(f"Type must be one of {', '.join(QUESTION_TYPES)}")
        return v


class QuestionUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = None
    options: Optional[list[Any]] = None
    is_required: Optional[bool] = None
    is_active: Optional[bool] = None
    order: Optional[int] = None

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        if v is not None and v not in QUESTION_TYPES:
            raise ValueError(f"Type must be one of {', '.join(QUESTION_TYPES)}")
        return v


class QuestionResponse(BaseModel):
    id: int
    protocol_id: int
    question: str
    type: str
    options: Optional[list[Any]] = None
    is_required: bool
    is_active: bool
    order: int

    class Config:
        from_attributes = True


class AnswerIn(BaseModel):
    question_id: int
    answer: str


class CheckinSubmit(BaseModel):
    protocol_id: int
    responses: list[AnswerIn] = Field(..., min_length=1)


class AnswerResponse(BaseModel):
    id: int
    question_id: int
    user_id: int
    protocol_id: int
    answer: str
    date: date_type

    class Config:
        from_attributes = True


class QuestionsForToday(BaseModel):
    questions: list[QuestionResponse]
    hasCheckinToday: bool
    existingResponses: dict[int, str]
    date: date_type


class CheckinSubmitResponse(BaseModel):
    success: bool = True
    isUpdate: bool
    responses: list[AnswerResponse]


class CheckinProgress(BaseModel):
    currentDay: int
    totalDays: int
    percentage: int


class HistoryDay(BaseModel):
    date: date_type
    responses: list[AnswerResponse]


class CheckinStatus(BaseModel):
    hasCheckinToday: bool
    completedQuestions: int
    totalQuestions: int
    isComplete: bool
    progress: CheckinProgress
    todayResponses: list[AnswerResponse]
    recentHistory: list[HistoryDay]
