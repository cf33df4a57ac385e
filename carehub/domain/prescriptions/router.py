"""Prescription router - doctor and patient endpoints for prescriptions and task progress"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_doctor, require_patient
from ...database import get_db
from ...models import User
from .schemas import (
    ActivateRequest,
    PrescriptionCreate,
    PrescriptionCreateResponse,
    PrescriptionDetailResponse,
    PrescriptionListResponse,
    PrescriptionResponse,
    PrescriptionUpdate,
    ProgressCreate,
    ProgressMetrics,
    ProgressRecordResponse,
    ProgressResponse,
    StartDateRequest,
    StatusChangeResponse,
)
from .service import PrescriptionService

logger = logging.getLogger(__name__)

doctor_router = APIRouter(prefix="/doctor/prescriptions", tags=["Prescriptions"])
patient_router = APIRouter(prefix="/patient/prescriptions", tags=["Patient Prescriptions"])


def get_prescription_service(db: Session = Depends(get_db)) -> PrescriptionService:
    """Dependency injection for PrescriptionService"""
    return PrescriptionService(db)


# ============================================================================
# DOCTOR ENDPOINTS
# ============================================================================


@doctor_router.get("", response_model=PrescriptionListResponse)
async def list_doctor_prescriptions(
    status: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    patient_id: Optional[int] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_doctor),
    service: PrescriptionService = Depends(get_prescription_service),
):
    return service.list_doctor_prescriptions(current_user, status, email, patient_id, limit, offset)


@doctor_router.post("", response_model=PrescriptionCreateResponse, status_code=201)
async def create_prescription(
    data: PrescriptionCreate,
    current_user: User = Depends(require_doctor),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """
    Prescribe a protocol to a patient.

    The patient is resolved by id, then by e-mail, then falls back to the
    doctor's most recent active patient. An open prescription of the same
    protocol is updated instead of duplicated.
    """
    prescription, updated = service.create_prescription(data, current_user)
    return {"prescription": prescription, "updated": updated}


@doctor_router.get("/{prescription_id}", response_model=PrescriptionResponse)
async def get_doctor_prescription(
    prescription_id: int,
    current_user: User = Depends(require_doctor),
    service: PrescriptionService = Depends(get_prescription_service),
):
    return service.get_doctor_prescription(prescription_id, current_user)


@doctor_router.patch("/{prescription_id}", response_model=PrescriptionResponse)
async def update_prescription(
    prescription_id: int,
    data: PrescriptionUpdate,
    current_user: User = Depends(require_doctor),
    service: PrescriptionService = Depends(get_prescription_service),
):
    return service.update_prescription(prescription_id, data, current_user)


@doctor_router.delete("/{prescription_id}")
async def delete_prescription(
    prescription_id: int,
    current_user: User = Depends(require_doctor),
    service: PrescriptionService = Depends(get_prescription_service),
):
    service.delete_prescription(prescription_id, current_user)
    return {"success": True, "message": "Prescription deleted"}


@doctor_router.get("/{prescription_id}/progress", response_model=ProgressMetrics)
async def get_doctor_prescription_metrics(
    prescription_id: int,
    current_user: User = Depends(require_doctor),
    service: PrescriptionService = Depends(get_prescription_service),
):
    prescription = service.get_doctor_prescription(prescription_id, current_user)
    return service.get_metrics(prescription)


# ============================================================================
# PATIENT ENDPOINTS
# ============================================================================


@patient_router.get("", response_model=PrescriptionListResponse)
async def list_patient_prescriptions(
    status: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    return service.list_patient_prescriptions(current_user, status, limit, offset)


@patient_router.get("/{prescription_id}", response_model=PrescriptionDetailResponse, response_model_exclude_none=True)
async def get_patient_prescription(
    prescription_id: int,
    include_days: bool = Query(True),
    include_progress: bool = Query(True),
    include_metrics: bool = Query(True),
    day: Optional[int] = Query(None, ge=1),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    prescription = service.get_patient_prescription(prescription_id, current_user)
    return service.get_prescription_detail(
        prescription, include_days, include_progress, include_metrics, day, start_date, end_date
    )


@patient_router.post("/{prescription_id}/activate", response_model=StatusChangeResponse)
async def activate_prescription(
    prescription_id: int,
    data: Optional[ActivateRequest] = None,
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    prescription, message = service.activate(prescription_id, data or ActivateRequest(), current_user)
    return {"success": True, "message": message, "prescription": prescription}


@patient_router.post("/{prescription_id}/start", response_model=StatusChangeResponse)
async def start_prescription(
    prescription_id: int,
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    prescription = service.start(prescription_id, current_user)
    return {"success": True, "message": "Protocol started", "prescription": prescription}


@patient_router.put("/{prescription_id}/start-date", response_model=StatusChangeResponse)
async def update_start_date(
    prescription_id: int,
    data: StartDateRequest,
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    prescription = service.update_start_date(prescription_id, data, current_user)
    return {"success": True, "message": "Start date updated", "prescription": prescription}


@patient_router.post("/{prescription_id}/reset", response_model=StatusChangeResponse)
async def reset_prescription(
    prescription_id: int,
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    prescription = service.reset(prescription_id, current_user)
    return {"success": True, "message": "Protocol reset", "prescription": prescription}


@patient_router.get("/{prescription_id}/progress", response_model=ProgressMetrics)
async def get_patient_prescription_metrics(
    prescription_id: int,
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    prescription = service.get_patient_prescription(prescription_id, current_user)
    return service.get_metrics(prescription)


@patient_router.post("/{prescription_id}/progress", response_model=ProgressRecordResponse)
async def record_progress(
    prescription_id: int,
    data: ProgressCreate,
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    progress, prescription = service.record_progress(prescription_id, data, current_user)
    return {
        "progress": ProgressResponse.model_validate(progress),
        "adherence_rate": prescription.adherence_rate,
        "current_day": prescription.current_day,
    }


@patient_router.post("/{prescription_id}/progress/{progress_id}/toggle", response_model=ProgressRecordResponse)
async def toggle_progress(
    prescription_id: int,
    progress_id: int,
    current_user: User = Depends(require_patient),
    service: PrescriptionService = Depends(get_prescription_service),
):
    progress, prescription = service.toggle_progress(prescription_id, progress_id, current_user)
    return {
        "progress": ProgressResponse.model_validate(progress),
        "adherence_rate": prescription.adherence_rate,
        "current_day": prescription.current_day,
    }


__all__ = ["doctor_router", "patient_router", "get_prescription_service"]
