"""Patient repository - Database operations for doctor-patient relationships"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import (
    PRESCRIPTION_ACTIVE,
    PRESCRIPTION_PRESCRIBED,
    ROLE_DOCTOR,
    ROLE_PATIENT,
    Course,
    DoctorPatientRelationship,
    Protocol,
    ProtocolPrescription,
    ReferralLead,
    User,
)


class PatientRepository:
    """Repository for patient database operations"""

    @staticmethod
    def list_patients(
        db: Session, doctor_id: int, search: Optional[str], limit: int, offset: int
    ) -> tuple[list[User], int]:
        query = (
            db.query(User)
            .join(DoctorPatientRelationship, DoctorPatientRelationship.patient_id == User.id)
            .filter(
                DoctorPatientRelationship.doctor_id == doctor_id,
                DoctorPatientRelationship.is_active.is_(True),
                User.role == ROLE_PATIENT,
            )
        )
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))

        total = query.count()
        patients = query.order_by(User.name, User.id).offset(offset).limit(limit).all()
        return patients, total

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

    @staticmethod
    def list_prescriptions_for(db: Session, doctor_id: int, patient_id: int) -> list[ProtocolPrescription]:
        return (
            db.query(ProtocolPrescription)
            .options(joinedload(ProtocolPrescription.protocol))
            .filter(ProtocolPrescription.prescribed_by == doctor_id, ProtocolPrescription.user_id == patient_id)
            .order_by(ProtocolPrescription.prescribed_at.desc(), ProtocolPrescription.id.desc())
            .all()
        )

    @staticmethod
    def list_doctors_of(db: Session, patient_id: int) -> list[User]:
        return (
            db.query(User)
            .join(DoctorPatientRelationship, DoctorPatientRelationship.doctor_id == User.id)
            .filter(
                DoctorPatientRelationship.patient_id == patient_id,
                DoctorPatientRelationship.is_active.is_(True),
                User.role == ROLE_DOCTOR,
            )
            .order_by(User.name)
            .all()
        )

    # ===== DASHBOARD STATS =====

    @staticmethod
    def count_active_patients(db: Session, doctor_id: int) -> int:
        return (
            db.query(func.count(DoctorPatientRelationship.id))
            .filter(DoctorPatientRelationship.doctor_id == doctor_id, DoctorPatientRelationship.is_active.is_(True))
            .scalar()
        )

    @staticmethod
    def count_active_protocols(db: Session, doctor_id: int) -> int:
        return (
            db.query(func.count(Protocol.id))
            .filter(Protocol.doctor_id == doctor_id, Protocol.is_active.is_(True))
            .scalar()
        )

    @staticmethod
    def count_open_prescriptions(db: Session, doctor_id: int) -> int:
        return (
            db.query(func.count(ProtocolPrescription.id))
            .filter(
                ProtocolPrescription.prescribed_by == doctor_id,
                ProtocolPrescription.status.in_([PRESCRIPTION_ACTIVE, PRESCRIPTION_PRESCRIBED]),
            )
            .scalar()
        )

    @staticmethod
    def average_active_adherence(db: Session, doctor_id: int) -> Optional[float]:
        return (
            db.query(func.avg(ProtocolPrescription.adherence_rate))
            .filter(ProtocolPrescription.prescribed_by == doctor_id, ProtocolPrescription.status == PRESCRIPTION_ACTIVE)
            .scalar()
        )

    @staticmethod
    def count_published_courses(db: Session, doctor_id: int) -> int:
        return (
            db.query(func.count(Course.id))
            .filter(Course.doctor_id == doctor_id, Course.is_published.is_(True))
            .scalar()
        )

    @staticmethod
    def count_pending_leads(db: Session, doctor_id: int) -> int:
        return (
            db.query(func.count(ReferralLead.id))
            .filter(ReferralLead.doctor_id == doctor_id, ReferralLead.status.in_(["PENDING", "CONTACTED"]))
            .scalar()
        )

    @staticmethod
    def recent_prescriptions(db: Session, doctor_id: int, limit: int = 5) -> list[ProtocolPrescription]:
        return (
            db.query(ProtocolPrescription)
            .options(joinedload(ProtocolPrescription.protocol), joinedload(ProtocolPrescription.patient))
            .filter(ProtocolPrescription.prescribed_by == doctor_id)
            .order_by(ProtocolPrescription.prescribed_at.desc(), ProtocolPrescription.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_prescriptions_by_status(db: Session, patient_id: int) -> dict[str, int]:
        rows = (
            db.query(ProtocolPrescription.status, func.count(ProtocolPrescription.id))
            .filter(ProtocolPrescription.user_id == patient_id)
            .group_by(ProtocolPrescription.status)
            .all()
        )
        return dict(rows)
