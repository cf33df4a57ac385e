"""Prescription domain schemas"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import PRESCRIPTION_ABANDONED, PRESCRIPTION_ACTIVE, PRESCRIPTION_COMPLETED, PRESCRIPTION_PAUSED, PRESCRIPTION_PRESCRIBED, TASK_STATUSES
from ...schemas import Pagination, UserSummary
from ..protocols.schemas import DayResponse

PRESCRIPTION_STATUSES = (
    PRESCRIPTION_PRESCRIBED,
    PRESCRIPTION_ACTIVE,
    PRESCRIPTION_PAUSED,
    PRESCRIPTION_ABANDONED,
    PRESCRIPTION_COMPLETED,
)


class PrescriptionCreate(BaseModel):
    protocol_id: Optional[int] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    consultation_date: Optional[datetime] = None
    patient_id: Optional[int] = None
    patient_email: Optional[str] = None


class PrescriptionUpdate(BaseModel):
    status: Optional[str] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    pause_reason: Optional[str] = None
    abandon_reason: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is not None and v not in PRESCRIPTION_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(PRESCRIPTION_STATUSES)}")
        return v


class ActivateRequest(BaseModel):
    actual_start_date: Optional[datetime] = None


class StartDateRequest(BaseModel):
    actual_start_date: datetime


class ProgressCreate(BaseModel):
    task_id: int
    status: str = "COMPLETED"
    day_number: Optional[int] = Field(default=None, ge=1)
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v not in TASK_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(TASK_STATUSES)}")
        return v


# ===== RESPONSES =====


class ProtocolBrief(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    duration: Optional[int] = None
    cover_image: Optional[str] = None

    class Config:
        from_attributes = True


class PrescriptionResponse(BaseModel):
    id: int
    protocol_id: int
    user_id: int
    prescribed_by: int
    prescribed_at: Optional[datetime] = None
    planned_start_date: datetime
    planned_end_date: Optional[datetime] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    consultation_date: Optional[datetime] = None
    status: str
    current_day: int
    adherence_rate: float
    last_progress_date: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    pause_reason: Optional[str] = None
    abandoned_at: Optional[datetime] = None
    abandon_reason: Optional[str] = None
    protocol: ProtocolBrief
    patient: UserSummary
    doctor: UserSummary

    class Config:
        from_attributes = True


class PrescriptionListResponse(BaseModel):
    prescriptions: list[PrescriptionResponse]
    pagination: Pagination


class PrescriptionCreateResponse(BaseModel):
    prescription: PrescriptionResponse
    updated: bool


class ProgressResponse(BaseModel):
    id: int
    prescription_id: int
    task_id: int
    day_number: int
    scheduled_date: date
    status: str
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ProgressMetrics(BaseModel):
    totalTasks: int
    completedTasks: int
    adherenceRate: int
    currentDay: int
    streakDays: int
    startDate: datetime
    lastActivity: datetime
    status: str


class DetailMetrics(BaseModel):
    totalTasks: int
    completedTasks: int
    adherenceRate: int


class PrescriptionDetailResponse(BaseModel):
    prescription: PrescriptionResponse
    days: Optional[list[DayResponse]] = None
    progress: Optional[list[ProgressResponse]] = None
    metrics: Optional[DetailMetrics] = None


class StatusChangeResponse(BaseModel):
    success: bool = True
    message: str
    prescription: PrescriptionResponse


class ProgressRecordResponse(BaseModel):
    progress: ProgressResponse
    adherence_rate: float
    current_day: int
