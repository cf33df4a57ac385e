"""Clinic domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email


class ClinicUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Clinic name cannot be empty")
        return v.strip() if v else v


class AddMemberRequest(BaseModel):
    email: str
    role: str = "DOCTOR"

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        if v not in ("DOCTOR", "ADMIN", "VIEWER"):
            raise ValueError("Role must be DOCTOR, ADMIN or VIEWER")
        return v


class MemberUser(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: str

    class Config:
        from_attributes = True


class ClinicMemberResponse(BaseModel):
    id: int
    role: str
    is_active: bool
    joined_at: Optional[datetime] = None
    user: MemberUser

    class Config:
        from_attributes = True


class PlanResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    billing_cycle: str
    max_doctors: int
    max_patients: Optional[int] = None
    max_protocols: Optional[int] = None
    max_courses: Optional[int] = None
    trial_days: int
    is_default: bool
    is_active: bool

    class Config:
        from_attributes = True


class SubscriptionResponse(BaseModel):
    id: int
    status: str
    max_doctors: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None
    plan: PlanResponse

    class Config:
        from_attributes = True


class ClinicResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    logo: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    owner_id: int
    is_active: bool
    created_at: Optional[datetime] = None
    subscription: Optional[SubscriptionResponse] = None

    class Config:
        from_attributes = True


class PublicClinicResponse(BaseModel):
    name: str
    slug: str
    description: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None

    class Config:
        from_attributes = True


class ClinicStats(BaseModel):
    totalDoctors: int
    totalProtocols: int
    totalPatients: int
    totalCourses: int


class AdminClinicUpdate(ClinicUpdate):
    is_active: Optional[bool] = None


class ClinicDetailResponse(ClinicResponse):
    owner: MemberUser
    members: list[ClinicMemberResponse] = []
