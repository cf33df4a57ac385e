"""Symptom report router"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_doctor, require_patient
from ...database import get_db
from ...models import User
from .schemas import (
    DoctorSymptomReportListResponse,
    DoctorSymptomReportResponse,
    SymptomReportCreate,
    SymptomReportListResponse,
    SymptomReportResponse,
    SymptomReportReview,
)
from .service import SymptomReportService

patient_router = APIRouter(prefix="/patient/symptom-reports", tags=["Symptom Reports"])
doctor_router = APIRouter(prefix="/doctor/symptom-reports", tags=["Symptom Reports"])


def get_symptom_report_service(db: Session = Depends(get_db)) -> SymptomReportService:
    """Dependency injection for SymptomReportService"""
    return SymptomReportService(db)


@patient_router.post("", response_model=SymptomReportResponse, status_code=201)
async def create_symptom_report(
    data: SymptomReportCreate,
    current_user: User = Depends(require_patient),
    service: SymptomReportService = Depends(get_symptom_report_service),
):
    return service.create_report(data, current_user)


@patient_router.get("", response_model=SymptomReportListResponse)
async def list_my_symptom_reports(
    protocol_id: Optional[int] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_patient),
    service: SymptomReportService = Depends(get_symptom_report_service),
):
    return service.list_my_reports(current_user, protocol_id, limit, offset)


@doctor_router.get("", response_model=DoctorSymptomReportListResponse)
async def list_symptom_reports(
    status: Optional[str] = Query(None),
    patient_id: Optional[int] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_doctor),
    service: SymptomReportService = Depends(get_symptom_report_service),
):
    return service.list_doctor_reports(current_user, status, patient_id, limit, offset)


@doctor_router.patch("/{report_id}", response_model=DoctorSymptomReportResponse)
async def review_symptom_report(
    report_id: int,
    data: SymptomReportReview,
    current_user: User = Depends(require_doctor),
    service: SymptomReportService = Depends(get_symptom_report_service),
):
    return service.review_report(report_id, data, current_user)


__all__ = ["patient_router", "doctor_router", "get_symptom_report_service"]
