"""Clinic repository - Database operations for clinics, members and subscriptions"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    Clinic,
    ClinicMember,
    ClinicSubscription,
    Course,
    DoctorPatientRelationship,
    Protocol,
    SubscriptionPlan,
    User,
)


class ClinicRepository:
    """Repository for clinic database operations"""

    @staticmethod
    def get_owned_clinic(db: Session, user_id: int) -> Optional[Clinic]:
        return (
            db.query(Clinic)
            .options(joinedload(Clinic.subscription))
            .filter(Clinic.owner_id == user_id, Clinic.is_active.is_(True))
            .first()
        )

    @staticmethod
    def get_member_clinic(db: Session, user_id: int) -> Optional[Clinic]:
        return (
            db.query(Clinic)
            .join(ClinicMember, ClinicMember.clinic_id == Clinic.id)
            .filter(
                ClinicMember.user_id == user_id,
                ClinicMember.is_active.is_(True),
                Clinic.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def get_by_id(db: Session, clinic_id: int) -> Optional[Clinic]:
        return db.query(Clinic).filter(Clinic.id == clinic_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Clinic]:
        return db.query(Clinic).filter(Clinic.slug == slug, Clinic.is_active.is_(True)).first()

    @staticmethod
    def slug_exists(db: Session, slug: str, exclude_clinic_id: Optional[int] = None) -> bool:
        query = db.query(Clinic.id).filter(Clinic.slug == slug)
        if exclude_clinic_id:
            query = query.filter(Clinic.id != exclude_clinic_id)
        return query.first() is not None

    @staticmethod
    def list_clinics(db: Session, limit: int, offset: int) -> tuple[list[Clinic], int]:
        query = db.query(Clinic)
        total = query.count()
        clinics = query.order_by(Clinic.created_at.desc()).offset(offset).limit(limit).all()
        return clinics, total

    @staticmethod
    def create_clinic(db: Session, **data) -> Clinic:
        clinic = Clinic(**data)
        db.add(clinic)
        db.flush()
        return clinic

    # ===== MEMBERS =====

    @staticmethod
    def get_active_members(db: Session, clinic_id: int) -> list[ClinicMember]:
        return (
            db.query(ClinicMember)
            .options(joinedload(ClinicMember.user))
            .filter(ClinicMember.clinic_id == clinic_id, ClinicMember.is_active.is_(True))
            .order_by(ClinicMember.joined_at)
            .all()
        )

    @staticmethod
    def get_member(db: Session, clinic_id: int, user_id: int) -> Optional[ClinicMember]:
        return (
            db.query(ClinicMember)
            .filter(ClinicMember.clinic_id == clinic_id, ClinicMember.user_id == user_id)
            .first()
        )

    @staticmethod
    def count_active_members(db: Session, clinic_id: int) -> int:
        return (
            db.query(func.count(ClinicMember.id))
            .filter(ClinicMember.clinic_id == clinic_id, ClinicMember.is_active.is_(True))
            .scalar()
        )

    @staticmethod
    def get_member_ids(db: Session, clinic: Clinic) -> list[int]:
        """Owner plus active members"""
        rows = (
            db.query(ClinicMember.user_id)
            .filter(ClinicMember.clinic_id == clinic.id, ClinicMember.is_active.is_(True))
            .all()
        )
        ids = {row[0] for row in rows}
        ids.add(clinic.owner_id)
        return sorted(ids)

    # ===== PLANS =====

    @staticmethod
    def get_default_plan(db: Session) -> Optional[SubscriptionPlan]:
        plan = (
            db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.is_default.is_(True), SubscriptionPlan.is_active.is_(True))
            .first()
        )
        if plan:
            return plan
        return (
            db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price)
            .first()
        )

    @staticmethod
    def get_subscription(db: Session, subscription_id: int) -> Optional[ClinicSubscription]:
        return db.query(ClinicSubscription).filter(ClinicSubscription.id == subscription_id).first()

    # ===== USAGE COUNTS =====

    @staticmethod
    def count_protocols(db: Session, doctor_ids: list[int], active_only: bool = False) -> int:
        query = db.query(func.count(Protocol.id)).filter(Protocol.doctor_id.in_(doctor_ids))
        if active_only:
            query = query.filter(Protocol.is_active.is_(True))
        return query.scalar()

    @staticmethod
    def count_patients(db: Session, doctor_ids: list[int]) -> int:
        return (
            db.query(func.count(func.distinct(DoctorPatientRelationship.patient_id)))
            .filter(
                DoctorPatientRelationship.doctor_id.in_(doctor_ids),
                DoctorPatientRelationship.is_active.is_(True),
            )
            .scalar()
        )

    @staticmethod
    def count_courses(db: Session, doctor_ids: list[int]) -> int:
        return db.query(func.count(Course.id)).filter(Course.doctor_id.in_(doctor_ids)).scalar()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.lower()).first()
