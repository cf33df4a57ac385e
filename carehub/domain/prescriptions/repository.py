"""Prescription repository - Database operations for prescriptions and task progress"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    PRESCRIPTION_ACTIVE,
    PRESCRIPTION_PRESCRIBED,
    ROLE_PATIENT,
    TASK_COMPLETED,
    DoctorPatientRelationship,
    Protocol,
    ProtocolDay,
    ProtocolPrescription,
    ProtocolSession,
    ProtocolTask,
    ProtocolTaskProgress,
    User,
)


def _with_people():
    return (
        joinedload(ProtocolPrescription.protocol),
        joinedload(ProtocolPrescription.patient),
        joinedload(ProtocolPrescription.doctor),
    )


class PrescriptionRepository:
    """Repository for prescription database operations"""

    @staticmethod
    def list_for_patient(
        db: Session, user_id: int, status: Optional[str], limit: int, offset: int
    ) -> tuple[list[ProtocolPrescription], int]:
        query = db.query(ProtocolPrescription).filter(ProtocolPrescription.user_id == user_id)
        if status:
            query = query.filter(ProtocolPrescription.status == status)
        total = query.count()
        items = (
            query.options(*_with_people())
            .order_by(ProtocolPrescription.prescribed_at.desc(), ProtocolPrescription.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def list_for_doctor(
        db: Session,
        doctor_id: int,
        status: Optional[str] = None,
        email: Optional[str] = None,
        patient_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ProtocolPrescription], int]:
        query = db.query(ProtocolPrescription).filter(ProtocolPrescription.prescribed_by == doctor_id)
        if status:
            query = query.filter(ProtocolPrescription.status == status)
        if patient_id:
            query = query.filter(ProtocolPrescription.user_id == patient_id)
        if email:
            query = query.join(User, ProtocolPrescription.user_id == User.id).filter(
                func.lower(User.email).like(f"%{email.lower()}%")
            )
        total = query.count()
        items = (
            query.options(*_with_people())
            .order_by(ProtocolPrescription.prescribed_at.desc(), ProtocolPrescription.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def get_for_patient(db: Session, prescription_id: int, user_id: int) -> Optional[ProtocolPrescription]:
        return (
            db.query(ProtocolPrescription)
            .options(*_with_people())
            .filter(ProtocolPrescription.id == prescription_id, ProtocolPrescription.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_for_doctor(db: Session, prescription_id: int, doctor_id: int) -> Optional[ProtocolPrescription]:
        return (
            db.query(ProtocolPrescription)
            .options(*_with_people())
            .filter(ProtocolPrescription.id == prescription_id, ProtocolPrescription.prescribed_by == doctor_id)
            .first()
        )

    @staticmethod
    def find_open(db: Session, protocol_id: int, patient_id: int) -> Optional[ProtocolPrescription]:
        """PRESCRIBED or ACTIVE prescription of the protocol for the patient"""
        return (
            db.query(ProtocolPrescription)
            .filter(
                ProtocolPrescription.protocol_id == protocol_id,
                ProtocolPrescription.user_id == patient_id,
                ProtocolPrescription.status.in_([PRESCRIPTION_PRESCRIBED, PRESCRIPTION_ACTIVE]),
            )
            .first()
        )

    @staticmethod
    def get_owned_protocol(db: Session, protocol_id: int, doctor_id: int) -> Optional[Protocol]:
        return (
            db.query(Protocol)
            .filter(Protocol.id == protocol_id, Protocol.doctor_id == doctor_id, Protocol.is_active.is_(True))
            .first()
        )

    # ===== PATIENTS =====

    @staticmethod
    def get_patient_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id, User.role == ROLE_PATIENT).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def get_relationship(db: Session, doctor_id: int, patient_id: int) -> Optional[DoctorPatientRelationship]:
        return (
            db.query(DoctorPatientRelationship)
            .filter(
                DoctorPatientRelationship.doctor_id == doctor_id,
                DoctorPatientRelationship.patient_id == patient_id,
            )
            .first()
        )

    @staticmethod
    def get_latest_relationship(db: Session, doctor_id: int) -> Optional[DoctorPatientRelationship]:
        return (
            db.query(DoctorPatientRelationship)
            .filter(DoctorPatientRelationship.doctor_id == doctor_id, DoctorPatientRelationship.is_active.is_(True))
            .order_by(DoctorPatientRelationship.created_at.desc(), DoctorPatientRelationship.id.desc())
            .first()
        )

    # ===== TASKS & PROGRESS =====

    @staticmethod
    def get_task_in_protocol(db: Session, task_id: int, protocol_id: int) -> Optional[tuple[ProtocolTask, int]]:
        """(task, day_number) when the task belongs to the protocol"""
        return (
            db.query(ProtocolTask, ProtocolDay.day_number)
            .join(ProtocolSession, ProtocolTask.session_id == ProtocolSession.id)
            .join(ProtocolDay, ProtocolSession.day_id == ProtocolDay.id)
            .filter(ProtocolTask.id == task_id, ProtocolDay.protocol_id == protocol_id)
            .first()
        )

    @staticmethod
    def count_protocol_tasks(db: Session, protocol_id: int) -> int:
        return (
            db.query(func.count(ProtocolTask.id))
            .join(ProtocolSession, ProtocolTask.session_id == ProtocolSession.id)
            .join(ProtocolDay, ProtocolSession.day_id == ProtocolDay.id)
            .filter(ProtocolDay.protocol_id == protocol_id)
            .scalar()
        )

    @staticmethod
    def get_progress_records(
        db: Session,
        prescription_id: int,
        day: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[ProtocolTaskProgress]:
        query = db.query(ProtocolTaskProgress).filter(ProtocolTaskProgress.prescription_id == prescription_id)
        if day is not None:
            query = query.filter(ProtocolTaskProgress.day_number == day)
        if start_date:
            query = query.filter(ProtocolTaskProgress.scheduled_date >= start_date)
        if end_date:
            query = query.filter(ProtocolTaskProgress.scheduled_date <= end_date)
        return query.order_by(ProtocolTaskProgress.scheduled_date, ProtocolTaskProgress.id).all()

    @staticmethod
    def get_progress(db: Session, prescription_id: int, task_id: int, scheduled_date: date) -> Optional[ProtocolTaskProgress]:
        return (
            db.query(ProtocolTaskProgress)
            .filter(
                ProtocolTaskProgress.prescription_id == prescription_id,
                ProtocolTaskProgress.task_id == task_id,
                ProtocolTaskProgress.scheduled_date == scheduled_date,
            )
            .first()
        )

    @staticmethod
    def get_progress_by_id(db: Session, progress_id: int, prescription_id: int) -> Optional[ProtocolTaskProgress]:
        return (
            db.query(ProtocolTaskProgress)
            .filter(ProtocolTaskProgress.id == progress_id, ProtocolTaskProgress.prescription_id == prescription_id)
            .first()
        )

    @staticmethod
    def count_progress(db: Session, prescription_id: int) -> tuple[int, int]:
        """(completed, total) recorded progress rows"""
        total = (
            db.query(func.count(ProtocolTaskProgress.id))
            .filter(ProtocolTaskProgress.prescription_id == prescription_id)
            .scalar()
        )
        completed = (
            db.query(func.count(ProtocolTaskProgress.id))
            .filter(
                ProtocolTaskProgress.prescription_id == prescription_id,
                ProtocolTaskProgress.status == TASK_COMPLETED,
            )
            .scalar()
        )
        return completed, total
