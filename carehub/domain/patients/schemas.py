"""Patient domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import Pagination, UserResponse, UserSummary
from ...shared.validators import validate_email, validate_phone


class PatientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = None
    image: Optional[str] = Field(None, max_length=500)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)


class PatientListResponse(BaseModel):
    patients: list[UserResponse]
    pagination: Pagination


class PatientCreateResponse(BaseModel):
    patient: UserResponse
    created: bool


class PrescriptionSummary(BaseModel):
    id: int
    protocol_id: int
    protocol_name: str
    status: str
    current_day: int
    adherence_rate: float
    planned_start_date: datetime
    actual_start_date: Optional[datetime] = None


class PatientDetailResponse(BaseModel):
    patient: UserResponse
    prescriptions: list[PrescriptionSummary]


class RecentPrescription(BaseModel):
    id: int
    status: str
    protocol: str
    patient: UserSummary
    prescribed_at: Optional[datetime] = None


class DoctorStats(BaseModel):
    totalPatients: int
    totalProtocols: int
    activePrescriptions: int
    averageAdherence: int
    totalCourses: int
    pendingReferrals: int
    recentPrescriptions: list[RecentPrescription]


class PatientStats(BaseModel):
    activeProtocols: int
    completedProtocols: int
    joinedDate: Optional[datetime] = None


class DoctorResponse(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True
