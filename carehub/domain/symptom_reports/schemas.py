"""Symptom report schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import Pagination, UserSummary

REPORT_STATUSES = ("PENDING", "REVIEWED", "REQUIRES_ATTENTION", "RESOLVED")


class SymptomReportCreate(BaseModel):
    protocol_id: int
    day_number: int = Field(..., ge=1)
    symptoms: str
    severity: int = Field(1, ge=1, le=10)
    report_time: Optional[datetime] = None
    is_now: bool = True
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None

    @field_validator("symptoms")
    @classmethod
    def check_symptoms(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Symptoms are required")
        return v


class SymptomReportReview(BaseModel):
    status: str
    doctor_notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v not in REPORT_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(REPORT_STATUSES)}")
        return v


class SymptomReportResponse(BaseModel):
    id: int
    user_id: int
    protocol_id: int
    day_number: int
    title: Optional[str] = None
    description: Optional[str] = None
    symptoms: str
    severity: int
    is_now: bool
    report_time: Optional[datetime] = None
    status: str
    doctor_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DoctorSymptomReportResponse(SymptomReportResponse):
    user: UserSummary


class SymptomReportListResponse(BaseModel):
    reports: list[SymptomReportResponse]
    pagination: Pagination


class DoctorSymptomReportListResponse(BaseModel):
    reports: list[DoctorSymptomReportResponse]
    pagination: Pagination
