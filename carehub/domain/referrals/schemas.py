"""Referral domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import UserSummary
from ...shared.validators import validate_email

LEAD_STATUSES = ("PENDING", "CONTACTED", "CONVERTED", "REJECTED", "EXPIRED")
CREDIT_TYPES = ("SUCCESSFUL_REFERRAL", "BONUS_CREDIT", "MANUAL_ADJUSTMENT")


class IndicatedPatient(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class PatientReferralCreate(BaseModel):
    prescription_id: int
    notes: Optional[str] = None
    indicated_patient: IndicatedPatient


class PublicReferralSubmit(IndicatedPatient):
    doctor_id: int
    referrer_code: Optional[str] = None


class LeadUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is not None and v not in LEAD_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(LEAD_STATUSES)}")
        return v


class LeadResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    status: str
    source: str
    notes: Optional[str] = None
    referral_code: Optional[str] = None
    doctor_id: int
    referrer_id: Optional[int] = None
    last_contact_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DoctorLeadResponse(LeadResponse):
    referrer: Optional[UserSummary] = None


class LeadStats(BaseModel):
    total: int
    pending: int
    contacted: int
    converted: int
    rejected: int


class LeadPagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class DoctorLeadListResponse(BaseModel):
    leads: list[DoctorLeadResponse]
    pagination: LeadPagination
    stats: LeadStats


class CreditResponse(BaseModel):
    id: int
    amount: int
    type: str
    status: str
    description: Optional[str] = None
    referral_lead_id: Optional[int] = None
    used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreditsResponse(BaseModel):
    credits: list[CreditResponse]
    balance: int


class ReferralCodeResponse(BaseModel):
    referral_code: str


class DoctorCard(BaseModel):
    id: int
    name: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True
