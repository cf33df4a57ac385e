"""Clinic router - FastAPI endpoints for clinics and members"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_doctor
from ...database import get_db
from ...models import User
from .schemas import (
    AddMemberRequest,
    ClinicMemberResponse,
    ClinicResponse,
    ClinicStats,
    ClinicUpdate,
    PublicClinicResponse,
)
from .service import ClinicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinic", tags=["Clinics"])


def get_clinic_service(db: Session = Depends(get_db)) -> ClinicService:
    """Dependency injection for ClinicService"""
    return ClinicService(db)


@router.get("", response_model=ClinicResponse)
async def get_clinic(
    current_user: User = Depends(require_doctor),
    service: ClinicService = Depends(get_clinic_service),
):
    """Clinic the doctor owns or belongs to"""
    return service.get_clinic(current_user)


@router.put("", response_model=ClinicResponse)
async def update_clinic(
    data: ClinicUpdate,
    current_user: User = Depends(require_doctor),
    service: ClinicService = Depends(get_clinic_service),
):
    return service.update_clinic(current_user, data)


@router.get("/stats", response_model=ClinicStats)
async def get_clinic_stats(
    current_user: User = Depends(require_doctor),
    service: ClinicService = Depends(get_clinic_service),
):
    return service.get_stats(current_user)


# ============================================================================
# MEMBERS
# ============================================================================


@router.get("/members", response_model=list[ClinicMemberResponse])
async def list_members(
    current_user: User = Depends(require_doctor),
    service: ClinicService = Depends(get_clinic_service),
):
    return service.list_members(current_user)


@router.post("/members", response_model=ClinicMemberResponse, status_code=201)
async def add_member(
    data: AddMemberRequest,
    current_user: User = Depends(require_doctor),
    service: ClinicService = Depends(get_clinic_service),
):
    """Add an existing doctor account to the clinic (admins only)"""
    return service.add_member(current_user, data)


@router.delete("/members/{user_id}")
async def remove_member(
    user_id: int,
    current_user: User = Depends(require_doctor),
    service: ClinicService = Depends(get_clinic_service),
):
    service.remove_member(current_user, user_id)
    return {"success": True, "message": "Doctor removed from clinic"}


# ============================================================================
# PUBLIC
# ============================================================================


@router.get("/slug/{slug}", response_model=PublicClinicResponse)
async def get_public_clinic(slug: str, service: ClinicService = Depends(get_clinic_service)):
    return service.get_public_clinic(slug)


__all__ = ["router", "get_clinic_service"]
