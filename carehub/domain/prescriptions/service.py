"""Prescription service - status transitions, task progress and derived metrics"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import send_prescription_email
from ...models import (
    PRESCRIPTION_ABANDONED,
    PRESCRIPTION_ACTIVE,
    PRESCRIPTION_COMPLETED,
    PRESCRIPTION_PAUSED,
    PRESCRIPTION_PRESCRIBED,
    ROLE_PATIENT,
    TASK_COMPLETED,
    TASK_PENDING,
    DoctorPatientRelationship,
    ProtocolPrescription,
    ProtocolTaskProgress,
    User,
)
from ...schemas import build_pagination
from .progress import adherence_rate, compute_metrics
from .repository import PrescriptionRepository
from .schemas import (
    ActivateRequest,
    PrescriptionCreate,
    PrescriptionUpdate,
    ProgressCreate,
    ProgressMetrics,
    StartDateRequest,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    PRESCRIPTION_PRESCRIBED: {PRESCRIPTION_ACTIVE, PRESCRIPTION_ABANDONED},
    PRESCRIPTION_ACTIVE: {PRESCRIPTION_PAUSED, PRESCRIPTION_ABANDONED, PRESCRIPTION_COMPLETED},
    PRESCRIPTION_PAUSED: {PRESCRIPTION_ACTIVE, PRESCRIPTION_ABANDONED},
}


def apply_status_change(prescription: ProtocolPrescription, new_status: str, now: Optional[datetime] = None) -> None:
    """Move a prescription to ``new_status`` and stamp the matching timestamps.

    Raises HTTPException(400) for a transition outside ALLOWED_TRANSITIONS.
    Setting the current status again is a no-op.
    """
    current = prescription.status
    if new_status == current:
        return
    if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
        raise HTTPException(status_code=400, detail=f"Cannot change status from {current} to {new_status}")

    now = now or datetime.utcnow()
    if new_status == PRESCRIPTION_ACTIVE:
        if current == PRESCRIPTION_PAUSED:
            prescription.paused_at = None
        if not prescription.actual_start_date:
            prescription.actual_start_date = now
    elif new_status == PRESCRIPTION_PAUSED:
        prescription.paused_at = now
    elif new_status == PRESCRIPTION_ABANDONED:
        prescription.abandoned_at = now
    elif new_status == PRESCRIPTION_COMPLETED:
        prescription.actual_end_date = now

    prescription.status = new_status


class PrescriptionService:
    """Service layer for prescriptions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PrescriptionRepository()

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_patient_prescription(self, prescription_id: int, user: User) -> ProtocolPrescription:
        prescription = self.repo.get_for_patient(self.db, prescription_id, user.id)
        if not prescription:
            raise HTTPException(status_code=404, detail="Prescription not found")
        return prescription

    def get_doctor_prescription(self, prescription_id: int, user: User) -> ProtocolPrescription:
        prescription = self.repo.get_for_doctor(self.db, prescription_id, user.id)
        if not prescription:
            raise HTTPException(status_code=404, detail="Prescription not found")
        return prescription

    def list_patient_prescriptions(self, user: User, status: Optional[str], limit: int, offset: int) -> dict:
        items, total = self.repo.list_for_patient(self.db, user.id, status, limit, offset)
        return {"prescriptions": items, "pagination": build_pagination(total, limit, offset)}

    def list_doctor_prescriptions(
        self,
        user: User,
        status: Optional[str],
        email: Optional[str],
        patient_id: Optional[int],
        limit: int,
        offset: int,
    ) -> dict:
        items, total = self.repo.list_for_doctor(self.db, user.id, status, email, patient_id, limit, offset)
        return {"prescriptions": items, "pagination": build_pagination(total, limit, offset)}

    def get_prescription_detail(
        self,
        prescription: ProtocolPrescription,
        include_days: bool = True,
        include_progress: bool = True,
        include_metrics: bool = True,
        day: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict:
        detail: dict = {"prescription": prescription}

        if include_days:
            days = prescription.protocol.days
            if day is not None:
                days = [d for d in days if d.day_number == day]
            detail["days"] = days

        if include_progress:
            detail["progress"] = self.repo.get_progress_records(self.db, prescription.id, day, start_date, end_date)

        if include_metrics:
            total_tasks = self.repo.count_protocol_tasks(self.db, prescription.protocol_id)
            completed, _ = self.repo.count_progress(self.db, prescription.id)
            detail["metrics"] = {
                "totalTasks": total_tasks,
                "completedTasks": completed,
                "adherenceRate": adherence_rate(completed, total_tasks),
            }

        return detail

    def get_metrics(self, prescription: ProtocolPrescription, today: Optional[date] = None) -> ProgressMetrics:
        total_tasks = self.repo.count_protocol_tasks(self.db, prescription.protocol_id)
        records = self.repo.get_progress_records(self.db, prescription.id)
        return compute_metrics(prescription, total_tasks, records, today)

    # ========================================================================
    # DOCTOR OPERATIONS
    # ========================================================================

    def _resolve_patient(self, data: PrescriptionCreate, doctor: User) -> User:
        if data.patient_id:
            patient = self.repo.get_patient_by_id(self.db, data.patient_id)
        elif data.patient_email:
            patient = self.repo.get_user_by_email(self.db, data.patient_email)
            if patient and patient.role != ROLE_PATIENT:
                raise HTTPException(status_code=400, detail="This e-mail does not belong to a patient")
        else:
            relationship = self.repo.get_latest_relationship(self.db, doctor.id)
            patient = relationship.patient if relationship else None

        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    def _ensure_relationship(self, doctor: User, patient: User) -> None:
        relationship = self.repo.get_relationship(self.db, doctor.id, patient.id)
        if relationship is None:
            self.db.add(DoctorPatientRelationship(doctor_id=doctor.id, patient_id=patient.id, is_active=True))
            logger.info(f"🔗 Relationship created between doctor {doctor.id} and patient {patient.id}")
        elif not relationship.is_active:
            relationship.is_active = True
            relationship.end_date = None

    def create_prescription(self, data: PrescriptionCreate, doctor: User) -> tuple[ProtocolPrescription, bool]:
        """Create a prescription, or update the open one for the same protocol and patient.

        Returns (prescription, updated).
        """
        if not data.protocol_id or not data.planned_start_date:
            raise HTTPException(status_code=400, detail="protocol_id and planned_start_date are required")

        protocol = self.repo.get_owned_protocol(self.db, data.protocol_id, doctor.id)
        if not protocol:
            raise HTTPException(status_code=404, detail="Protocol not found")

        patient = self._resolve_patient(data, doctor)
        self._ensure_relationship(doctor, patient)

        existing = self.repo.find_open(self.db, protocol.id, patient.id)
        if existing:
            existing.planned_start_date = data.planned_start_date
            existing.planned_end_date = data.planned_end_date
            if data.consultation_date:
                existing.consultation_date = data.consultation_date
            self.db.commit()
            logger.info(f"🔄 Prescription {existing.id} updated instead of duplicated")
            return self.get_doctor_prescription(existing.id, doctor), True

        prescription = ProtocolPrescription(
            protocol_id=protocol.id,
            user_id=patient.id,
            prescribed_by=doctor.id,
            planned_start_date=data.planned_start_date,
            planned_end_date=data.planned_end_date,
            consultation_date=data.consultation_date,
            status=PRESCRIPTION_PRESCRIBED,
        )
        self.db.add(prescription)
        self.db.commit()
        self.db.refresh(prescription)
        logger.info(f"✅ Prescription {prescription.id} created: protocol {protocol.id} → patient {patient.id}")

        try:
            send_prescription_email(
                patient.email, patient.name, doctor.name or doctor.email, protocol.name, data.planned_start_date, prescription.id
            )
        except Exception as e:
            logger.error(f"❌ Failed to send prescription e-mail for {prescription.id}: {e}")

        return self.get_doctor_prescription(prescription.id, doctor), False

    def update_prescription(self, prescription_id: int, data: PrescriptionUpdate, doctor: User) -> ProtocolPrescription:
        prescription = self.get_doctor_prescription(prescription_id, doctor)

        if data.status:
            apply_status_change(prescription, data.status)
        if data.planned_start_date:
            prescription.planned_start_date = data.planned_start_date
        if data.planned_end_date:
            prescription.planned_end_date = data.planned_end_date
        if data.pause_reason is not None:
            prescription.pause_reason = data.pause_reason
        if data.abandon_reason is not None:
            prescription.abandon_reason = data.abandon_reason

        self.db.commit()
        self.db.refresh(prescription)
        logger.info(f"✅ Prescription {prescription.id} updated (status {prescription.status})")
        return prescription

    def delete_prescription(self, prescription_id: int, doctor: User) -> None:
        prescription = self.get_doctor_prescription(prescription_id, doctor)
        self.db.delete(prescription)
        self.db.commit()
        logger.info(f"🗑️ Prescription {prescription_id} deleted by doctor {doctor.id}")

    # ========================================================================
    # PATIENT OPERATIONS
    # ========================================================================

    def activate(self, prescription_id: int, data: ActivateRequest, user: User) -> tuple[ProtocolPrescription, str]:
        prescription = self.repo.get_for_patient(self.db, prescription_id, user.id)
        if (
            not prescription
            or prescription.status not in (PRESCRIPTION_PRESCRIBED, PRESCRIPTION_ACTIVE)
            or prescription.abandoned_at
            or prescription.paused_at
        ):
            raise HTTPException(status_code=404, detail="Prescription not found or cannot be activated")

        was_active = prescription.status == PRESCRIPTION_ACTIVE
        prescription.status = PRESCRIPTION_ACTIVE
        prescription.actual_start_date = data.actual_start_date or datetime.utcnow()
        if not was_active:
            prescription.current_day = 1
            prescription.adherence_rate = 0
            prescription.last_progress_date = None

        self.db.commit()
        self.db.refresh(prescription)

        message = "Protocol start date updated" if was_active else "Protocol activated"
        logger.info(f"✅ Prescription {prescription.id}: {message}")
        return prescription, message

    def start(self, prescription_id: int, user: User) -> ProtocolPrescription:
        prescription = self.get_patient_prescription(prescription_id, user)
        if prescription.actual_start_date or prescription.status != PRESCRIPTION_PRESCRIBED:
            raise HTTPException(status_code=400, detail="Protocol already started")

        prescription.status = PRESCRIPTION_ACTIVE
        prescription.actual_start_date = datetime.utcnow()
        prescription.current_day = 1
        self.db.commit()
        self.db.refresh(prescription)
        return prescription

    def update_start_date(self, prescription_id: int, data: StartDateRequest, user: User) -> ProtocolPrescription:
        prescription = self.get_patient_prescription(prescription_id, user)
        if prescription.status == PRESCRIPTION_ABANDONED:
            raise HTTPException(status_code=400, detail="Cannot change the start date of an abandoned protocol")
        if data.actual_start_date.date() < prescription.planned_start_date.date():
            raise HTTPException(status_code=400, detail="Start date cannot be before the planned start date")

        prescription.actual_start_date = data.actual_start_date
        self.db.commit()
        self.db.refresh(prescription)
        return prescription

    def reset(self, prescription_id: int, user: User) -> ProtocolPrescription:
        prescription = self.get_patient_prescription(prescription_id, user)
        prescription.status = PRESCRIPTION_PRESCRIBED
        prescription.actual_start_date = None
        prescription.current_day = 1
        self.db.commit()
        self.db.refresh(prescription)
        logger.info(f"🔄 Prescription {prescription.id} reset")
        return prescription

    def _refresh_adherence(self, prescription: ProtocolPrescription) -> None:
        completed, total = self.repo.count_progress(self.db, prescription.id)
        prescription.adherence_rate = adherence_rate(completed, total)
        prescription.last_progress_date = datetime.utcnow()

    def record_progress(self, prescription_id: int, data: ProgressCreate, user: User) -> tuple[ProtocolTaskProgress, ProtocolPrescription]:
        prescription = self.get_patient_prescription(prescription_id, user)
        if prescription.status != PRESCRIPTION_ACTIVE:
            raise HTTPException(status_code=409, detail="Protocol is not active")

        found = self.repo.get_task_in_protocol(self.db, data.task_id, prescription.protocol_id)
        if not found:
            raise HTTPException(status_code=404, detail="Task not found in this protocol")
        _, task_day = found
        if data.day_number is not None and data.day_number != task_day:
            raise HTTPException(status_code=400, detail=f"Task belongs to day {task_day}, not day {data.day_number}")

        scheduled_date = data.scheduled_date or datetime.utcnow().date()
        completed_at = datetime.utcnow() if data.status == TASK_COMPLETED else None

        progress = self.repo.get_progress(self.db, prescription.id, data.task_id, scheduled_date)
        if progress:
            progress.status = data.status
            progress.notes = data.notes
            progress.completed_at = completed_at
        else:
            progress = ProtocolTaskProgress(
                prescription_id=prescription.id,
                task_id=data.task_id,
                day_number=task_day,
                scheduled_date=scheduled_date,
                status=data.status,
                notes=data.notes,
                completed_at=completed_at,
            )
            self.db.add(progress)
        self.db.flush()

        prescription.current_day = task_day
        self._refresh_adherence(prescription)
        self.db.commit()
        self.db.refresh(progress)
        self.db.refresh(prescription)

        logger.info(
            f"📝 Progress on prescription {prescription.id}: task {data.task_id} {data.status} "
            f"(adherence {prescription.adherence_rate}%)"
        )
        return progress, prescription

    def toggle_progress(self, prescription_id: int, progress_id: int, user: User) -> tuple[ProtocolTaskProgress, ProtocolPrescription]:
        prescription = self.get_patient_prescription(prescription_id, user)
        if prescription.status != PRESCRIPTION_ACTIVE:
            raise HTTPException(status_code=409, detail="Protocol is not active")

        progress = self.repo.get_progress_by_id(self.db, progress_id, prescription.id)
        if not progress:
            raise HTTPException(status_code=404, detail="Progress record not found")

        if progress.status == TASK_COMPLETED:
            progress.status = TASK_PENDING
            progress.completed_at = None
        else:
            progress.status = TASK_COMPLETED
            progress.completed_at = datetime.utcnow()
        self.db.flush()

        self._refresh_adherence(prescription)
        self.db.commit()
        self.db.refresh(progress)
        self.db.refresh(prescription)
        return progress, prescription
