"""Protocol domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import Pagination
from ...security_utils import sanitize_html


class TaskIn(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    type: str = "task"
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    order_index: Optional[int] = None
    has_more_info: bool = False
    video_url: Optional[str] = None
    full_explanation: Optional[str] = None
    modal_title: Optional[str] = None
    modal_button_text: Optional[str] = None
    modal_button_url: Optional[str] = None

    @field_validator("full_explanation")
    @classmethod
    def clean_explanation(cls, v):
        return sanitize_html(v) if v else v


class SessionIn(BaseModel):
    session_number: Optional[int] = Field(default=None, ge=1)
    title: Optional[str] = None
    description: Optional[str] = None
    tasks: list[TaskIn] = []


class DayIn(BaseModel):
    day_number: int = Field(ge=1)
    title: Optional[str] = None
    description: Optional[str] = None
    sessions: list[SessionIn] = []


def _check_unique_days(days: Optional[list[DayIn]]) -> Optional[list[DayIn]]:
    if days is None:
        return days
    numbers = [d.day_number for d in days]
    if len(numbers) != len(set(numbers)):
        raise ValueError("Day numbers must be unique within a protocol")
    return days


class ProtocolBase(BaseModel):
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1)
    cover_image: Optional[str] = None
    consultation_date: Optional[datetime] = None
    modal_title: Optional[str] = None
    modal_video_url: Optional[str] = None
    modal_description: Optional[str] = None
    modal_button_text: Optional[str] = None
    modal_button_url: Optional[str] = None


class ProtocolCreate(ProtocolBase):
    name: str
    is_active: bool = True
    is_template: bool = False
    show_doctor_info: bool = True
    days: list[DayIn] = []

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        if not v or not v.strip():
            raise ValueError("Protocol name is required")
        return v.strip()

    @field_validator("days")
    @classmethod
    def unique_days(cls, v):
        return _check_unique_days(v)


class ProtocolUpdate(ProtocolBase):
    name: Optional[str] = None
    is_active: Optional[bool] = None
    is_template: Optional[bool] = None
    show_doctor_info: Optional[bool] = None
    days: Optional[list[DayIn]] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Protocol name cannot be empty")
        return v.strip() if v else v

    @field_validator("days")
    @classmethod
    def unique_days(cls, v):
        return _check_unique_days(v)


class FromTemplateRequest(BaseModel):
    template_name: Optional[str] = None
    protocol_id: Optional[int] = None
    name: Optional[str] = None


class LinkCourseRequest(BaseModel):
    course_id: int
    order_index: int = 0


# ===== RESPONSES =====


class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    type: str
    duration_minutes: Optional[int] = None
    order_index: int
    has_more_info: bool
    video_url: Optional[str] = None
    full_explanation: Optional[str] = None
    modal_title: Optional[str] = None
    modal_button_text: Optional[str] = None
    modal_button_url: Optional[str] = None

    class Config:
        from_attributes = True


class SessionResponse(BaseModel):
    id: int
    session_number: int
    title: Optional[str] = None
    description: Optional[str] = None
    tasks: list[TaskResponse] = []

    class Config:
        from_attributes = True


class DayResponse(BaseModel):
    id: int
    day_number: int
    title: Optional[str] = None
    description: Optional[str] = None
    sessions: list[SessionResponse] = []

    class Config:
        from_attributes = True


class ProtocolResponse(ProtocolBase):
    id: int
    name: str
    doctor_id: int
    is_active: bool
    is_template: bool
    show_doctor_info: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    days: list[DayResponse] = []

    class Config:
        from_attributes = True


class ProtocolSummary(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    duration: Optional[int] = None
    is_active: bool
    is_template: bool
    cover_image: Optional[str] = None
    created_at: Optional[datetime] = None
    days_count: int
    active_prescriptions: int


class ProtocolListResponse(BaseModel):
    protocols: list[ProtocolSummary]
    pagination: Pagination


class TemplateListResponse(BaseModel):
    predefined: list[dict]
    custom: list[ProtocolResponse]
