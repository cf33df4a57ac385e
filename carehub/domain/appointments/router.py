"""Appointment router"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_doctor, require_patient
from ...database import get_db
from ...models import User
from .schemas import (
    AppointmentCreate,
    AppointmentUpdate,
    DoctorAppointmentResponse,
    PatientAppointmentResponse,
)
from .service import AppointmentService

doctor_router = APIRouter(prefix="/doctor/appointments", tags=["Appointments"])
patient_router = APIRouter(prefix="/patient/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@doctor_router.get("", response_model=list[DoctorAppointmentResponse])
async def list_appointments(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    patient_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_doctor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.list_doctor_appointments(current_user, start_date, end_date, patient_id, status)


@doctor_router.post("", response_model=DoctorAppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(require_doctor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.create_appointment(data, current_user)


@doctor_router.patch("/{appointment_id}", response_model=DoctorAppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_user: User = Depends(require_doctor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.update_appointment(appointment_id, data, current_user)


@doctor_router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(require_doctor),
    service: AppointmentService = Depends(get_appointment_service),
):
    await service.delete_appointment(appointment_id, current_user)
    return {"success": True, "message": "Appointment deleted"}


@patient_router.get("", response_model=list[PatientAppointmentResponse])
async def list_my_appointments(
    current_user: User = Depends(require_patient),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.list_patient_appointments(current_user)


__all__ = ["doctor_router", "patient_router", "get_appointment_service"]
