"""Appointment repository"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, DoctorPatientRelationship, User


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def list_for_doctor(
        db: Session,
        doctor_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        patient_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[Appointment]:
        query = db.query(Appointment).options(joinedload(Appointment.patient)).filter(Appointment.doctor_id == doctor_id)
        if start_date:
            query = query.filter(Appointment.start_time >= start_date)
        if end_date:
            query = query.filter(Appointment.start_time <= end_date)
        if patient_id:
            query = query.filter(Appointment.patient_id == patient_id)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.start_time).all()

    @staticmethod
    def list_for_patient(db: Session, patient_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.doctor))
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.start_time)
            .all()
        )

    @staticmethod
    def get_for_doctor(db: Session, appointment_id: int, doctor_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.patient))
            .filter(Appointment.id == appointment_id, Appointment.doctor_id == doctor_id)
            .first()
        )

    @staticmethod
    def get_related_patient(db: Session, doctor_id: int, patient_id: int) -> Optional[User]:
        return (
            db.query(User)
            .join(DoctorPatientRelationship, DoctorPatientRelationship.patient_id == User.id)
            .filter(
                User.id == patient_id,
                DoctorPatientRelationship.doctor_id == doctor_id,
                DoctorPatientRelationship.is_active.is_(True),
            )
            .first()
        )
