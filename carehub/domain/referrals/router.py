"""Referral router - patient, public and doctor referral endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_doctor, require_patient
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    CreditsResponse,
    DoctorCard,
    DoctorLeadListResponse,
    DoctorLeadResponse,
    LeadResponse,
    LeadUpdate,
    PatientReferralCreate,
    PublicReferralSubmit,
    ReferralCodeResponse,
)
from .service import ReferralService

logger = logging.getLogger(__name__)

patient_router = APIRouter(prefix="/patient/referrals", tags=["Referrals"])
public_router = APIRouter(prefix="/referrals", tags=["Referrals"])
doctor_router = APIRouter(prefix="/doctor/referrals", tags=["Referrals"])

submit_limiter = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="referral_submit")


def get_referral_service(db: Session = Depends(get_db)) -> ReferralService:
    """Dependency injection for ReferralService"""
    return ReferralService(db)


# ===== PATIENT =====


@patient_router.get("", response_model=list[LeadResponse])
async def list_my_referrals(
    current_user: User = Depends(require_patient),
    service: ReferralService = Depends(get_referral_service),
):
    return service.list_my_leads(current_user)


@patient_router.post("", response_model=LeadResponse, status_code=201)
async def refer_patient(
    data: PatientReferralCreate,
    current_user: User = Depends(require_patient),
    service: ReferralService = Depends(get_referral_service),
):
    return service.refer_patient(data, current_user)


@patient_router.get("/code", response_model=ReferralCodeResponse)
async def get_referral_code(
    current_user: User = Depends(require_patient),
    service: ReferralService = Depends(get_referral_service),
):
    return {"referral_code": service.get_my_code(current_user)}


@patient_router.get("/credits", response_model=CreditsResponse)
async def get_credits(
    current_user: User = Depends(require_patient),
    service: ReferralService = Depends(get_referral_service),
):
    return service.get_my_credits(current_user)


# ===== PUBLIC =====


@public_router.get("/doctor/{doctor_id}", response_model=DoctorCard)
async def get_doctor_card(doctor_id: int, service: ReferralService = Depends(get_referral_service)):
    return service.get_doctor_card(doctor_id)


@public_router.post("/submit", response_model=LeadResponse, status_code=201)
async def submit_referral(
    data: PublicReferralSubmit,
    service: ReferralService = Depends(get_referral_service),
    _: None = Depends(submit_limiter),
):
    return service.submit_public(data)


# ===== DOCTOR =====


@doctor_router.get("", response_model=DoctorLeadListResponse)
async def list_doctor_referrals(
    status: Optional[str] = Query("ALL"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_doctor),
    service: ReferralService = Depends(get_referral_service),
):
    return service.list_doctor_leads(current_user, status, page, limit)


@doctor_router.put("/{lead_id}", response_model=DoctorLeadResponse)
async def update_referral(
    lead_id: int,
    data: LeadUpdate,
    current_user: User = Depends(require_doctor),
    service: ReferralService = Depends(get_referral_service),
):
    return service.update_lead(lead_id, data, current_user)


__all__ = ["patient_router", "public_router", "doctor_router", "get_referral_service"]
