"""Patient router - doctor patient management and patient self-service"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_doctor, require_patient
from ...database import get_db
from ...models import User
from ...schemas import UserResponse
from .schemas import (
    DoctorResponse,
    DoctorStats,
    PatientCreate,
    PatientCreateResponse,
    PatientDetailResponse,
    PatientListResponse,
    PatientStats,
    ProfileUpdate,
)
from .service import PatientService

logger = logging.getLogger(__name__)

doctor_router = APIRouter(prefix="/doctor", tags=["Patients"])
patient_router = APIRouter(prefix="/patient", tags=["Patient Profile"])


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


# ============================================================================
# DOCTOR
# ============================================================================


@doctor_router.get("/patients", response_model=PatientListResponse)
async def list_patients(
    search: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_doctor),
    service: PatientService = Depends(get_patient_service),
):
    return service.list_patients(current_user, search, limit, offset)


@doctor_router.post("/patients", response_model=PatientCreateResponse, status_code=201)
async def add_patient(
    data: PatientCreate,
    current_user: User = Depends(require_doctor),
    service: PatientService = Depends(get_patient_service),
):
    patient, created = service.add_patient(data, current_user)
    return {"patient": patient, "created": created}


@doctor_router.get("/patients/{patient_id}", response_model=PatientDetailResponse)
async def get_patient(
    patient_id: int,
    current_user: User = Depends(require_doctor),
    service: PatientService = Depends(get_patient_service),
):
    return service.get_patient(patient_id, current_user)


@doctor_router.delete("/patients/{patient_id}")
async def remove_patient(
    patient_id: int,
    current_user: User = Depends(require_doctor),
    service: PatientService = Depends(get_patient_service),
):
    service.remove_patient(patient_id, current_user)
    return {"success": True, "message": "Patient removed"}


@doctor_router.post("/patients/{patient_id}/send-password-reset")
async def send_patient_password_reset(
    patient_id: int,
    current_user: User = Depends(require_doctor),
    service: PatientService = Depends(get_patient_service),
):
    """E-mail the patient a fresh password reset link"""
    service.send_password_reset(patient_id, current_user)
    return {"success": True, "message": "Password reset e-mail sent"}


@doctor_router.get("/stats", response_model=DoctorStats)
async def get_doctor_stats(
    current_user: User = Depends(require_doctor),
    service: PatientService = Depends(get_patient_service),
):
    """Dashboard numbers for the doctor"""
    return service.get_stats(current_user)


# ============================================================================
# PATIENT
# ============================================================================


@patient_router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(require_patient)):
    return current_user


@patient_router.patch("/profile", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(require_patient),
    service: PatientService = Depends(get_patient_service),
):
    return service.update_profile(current_user, data)


@patient_router.get("/doctors", response_model=list[DoctorResponse])
async def list_my_doctors(
    current_user: User = Depends(require_patient),
    service: PatientService = Depends(get_patient_service),
):
    return service.list_my_doctors(current_user)


@patient_router.get("/stats", response_model=PatientStats)
async def get_my_stats(
    current_user: User = Depends(require_patient),
    service: PatientService = Depends(get_patient_service),
):
    return service.get_patient_stats(current_user)


__all__ = ["doctor_router", "patient_router", "get_patient_service"]
