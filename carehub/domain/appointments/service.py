"""Appointment service - scheduling with best-effort Google Calendar sync"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Appointment, GoogleCalendarIntegration, User
from ...services.google_calendar_service import google_calendar_service
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate

logger = logging.getLogger(__name__)


class AppointmentService:
    """Service layer for appointments"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.calendar = google_calendar_service

    def _sync_target(self, doctor_id: int) -> Optional[GoogleCalendarIntegration]:
        integration = self.calendar.get_integration(self.db, doctor_id)
        if integration and integration.auto_sync_enabled:
            return integration
        return None

    def _get(self, appointment_id: int, doctor: User) -> Appointment:
        appointment = self.repo.get_for_doctor(self.db, appointment_id, doctor.id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def list_doctor_appointments(
        self,
        doctor: User,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        patient_id: Optional[int],
        status: Optional[str],
    ) -> list[Appointment]:
        return self.repo.list_for_doctor(self.db, doctor.id, start_date, end_date, patient_id, status)

    def list_patient_appointments(self, user: User) -> list[Appointment]:
        return self.repo.list_for_patient(self.db, user.id)

    async def create_appointment(self, data: AppointmentCreate, doctor: User) -> Appointment:
        if data.end_time <= data.start_time:
            raise HTTPException(status_code=400, detail="end_time must be after start_time")

        patient = self.repo.get_related_patient(self.db, doctor.id, data.patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")

        appointment = Appointment(doctor_id=doctor.id, status="SCHEDULED", **data.model_dump())
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"📅 Appointment {appointment.id} scheduled: doctor {doctor.id} / patient {patient.id}")

        integration = self._sync_target(doctor.id)
        if integration:
            try:
                appointment.google_event_id = await self.calendar.create_event(self.db, integration, appointment)
                self.db.commit()
                self.db.refresh(appointment)
            except Exception as e:
                logger.error(f"❌ Google Calendar sync failed for appointment {appointment.id}: {e}")
                self.db.rollback()

        return appointment

    async def update_appointment(self, appointment_id: int, data: AppointmentUpdate, doctor: User) -> Appointment:
        appointment = self._get(appointment_id, doctor)

        updates = data.model_dump(exclude_unset=True)
        start = updates.get("start_time") or appointment.start_time
        end = updates.get("end_time") or appointment.end_time
        if end <= start:
            raise HTTPException(status_code=400, detail="end_time must be after start_time")

        for key, value in updates.items():
            if value is not None:
                setattr(appointment, key, value)
        self.db.commit()
        self.db.refresh(appointment)

        integration = self._sync_target(doctor.id)
        if integration and appointment.google_event_id:
            try:
                if appointment.status == "CANCELLED":
                    await self.calendar.delete_event(self.db, integration, appointment.google_event_id)
                    appointment.google_event_id = None
                    self.db.commit()
                    self.db.refresh(appointment)
                else:
                    await self.calendar.update_event(self.db, integration, appointment)
            except Exception as e:
                logger.error(f"❌ Google Calendar sync failed for appointment {appointment.id}: {e}")
                self.db.rollback()

        return appointment

    async def delete_appointment(self, appointment_id: int, doctor: User) -> None:
        appointment = self._get(appointment_id, doctor)
        event_id = appointment.google_event_id

        self.db.delete(appointment)
        self.db.commit()
        logger.info(f"🗑️ Appointment {appointment_id} deleted")

        integration = self._sync_target(doctor.id)
        if integration and event_id:
            try:
                await self.calendar.delete_event(self.db, integration, event_id)
            except Exception as e:
                logger.error(f"❌ Failed to delete Google Calendar event {event_id}: {e}")
