"""Referral repository - Database operations for leads, referrals and credits"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    ROLE_DOCTOR,
    DoctorPatientRelationship,
    PatientReferral,
    ProtocolPrescription,
    ReferralCredit,
    ReferralLead,
    User,
)

OPEN_LEAD_STATUSES = ("PENDING", "CONTACTED")


class ReferralRepository:
    """Repository for referral database operations"""

    # ===== CODES =====

    @staticmethod
    def user_code_exists(db: Session, code: str) -> bool:
        return db.query(User.id).filter(User.referral_code == code).first() is not None

    @staticmethod
    def lead_code_exists(db: Session, code: str) -> bool:
        return db.query(ReferralLead.id).filter(ReferralLead.referral_code == code).first() is not None

    @staticmethod
    def get_user_by_code(db: Session, code: str) -> Optional[User]:
        return db.query(User).filter(User.referral_code == code.strip().upper()).first()

    # ===== USERS =====

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == doctor_id, User.role == ROLE_DOCTOR, User.is_active.is_(True)).first()

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def is_patient_of(db: Session, doctor_id: int, patient_id: int) -> bool:
        return (
            db.query(DoctorPatientRelationship.id)
            .filter(
                DoctorPatientRelationship.doctor_id == doctor_id,
                DoctorPatientRelationship.patient_id == patient_id,
                DoctorPatientRelationship.is_active.is_(True),
            )
            .first()
            is not None
        )

    @staticmethod
    def get_patient_prescription(db: Session, prescription_id: int, user_id: int) -> Optional[ProtocolPrescription]:
        return (
            db.query(ProtocolPrescription)
            .options(joinedload(ProtocolPrescription.doctor))
            .filter(ProtocolPrescription.id == prescription_id, ProtocolPrescription.user_id == user_id)
            .first()
        )

    # ===== LEADS =====

    @staticmethod
    def find_open_lead(db: Session, email: str, doctor_id: Optional[int] = None) -> Optional[ReferralLead]:
        query = db.query(ReferralLead).filter(
            func.lower(ReferralLead.email) == email.strip().lower(),
            ReferralLead.status.in_(OPEN_LEAD_STATUSES),
        )
        if doctor_id is not None:
            query = query.filter(ReferralLead.doctor_id == doctor_id)
        return query.first()

    @staticmethod
    def list_leads_by_referrer(db: Session, referrer_id: int) -> list[ReferralLead]:
        return (
            db.query(ReferralLead)
            .filter(ReferralLead.referrer_id == referrer_id)
            .order_by(ReferralLead.created_at.desc(), ReferralLead.id.desc())
            .all()
        )

    @staticmethod
    def list_leads_for_doctor(
        db: Session, doctor_id: int, status: Optional[str], limit: int, offset: int
    ) -> tuple[list[ReferralLead], int]:
        query = db.query(ReferralLead).filter(ReferralLead.doctor_id == doctor_id)
        if status:
            query = query.filter(ReferralLead.status == status)
        total = query.count()
        leads = (
            query.options(joinedload(ReferralLead.referrer))
            .order_by(ReferralLead.created_at.desc(), ReferralLead.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return leads, total

    @staticmethod
    def lead_status_counts(db: Session, doctor_id: int) -> dict[str, int]:
        rows = (
            db.query(ReferralLead.status, func.count(ReferralLead.id))
            .filter(ReferralLead.doctor_id == doctor_id)
            .group_by(ReferralLead.status)
            .all()
        )
        return dict(rows)

    @staticmethod
    def get_lead_for_doctor(db: Session, lead_id: int, doctor_id: int) -> Optional[ReferralLead]:
        return (
            db.query(ReferralLead)
            .options(joinedload(ReferralLead.referrer))
            .filter(ReferralLead.id == lead_id, ReferralLead.doctor_id == doctor_id)
            .first()
        )

    @staticmethod
    def add_referral(db: Session, referral: PatientReferral) -> None:
        db.add(referral)

    # ===== CREDITS =====

    @staticmethod
    def list_credits(db: Session, user_id: int) -> list[ReferralCredit]:
        return (
            db.query(ReferralCredit)
            .filter(ReferralCredit.user_id == user_id)
            .order_by(ReferralCredit.created_at.desc(), ReferralCredit.id.desc())
            .all()
        )

    @staticmethod
    def credit_balance(db: Session, user_id: int) -> int:
        return (
            db.query(func.coalesce(func.sum(ReferralCredit.amount), 0))
            .filter(ReferralCredit.user_id == user_id, ReferralCredit.status == "AVAILABLE")
            .scalar()
        )

    @staticmethod
    def credit_exists_for_lead(db: Session, lead_id: int) -> bool:
        return (
            db.query(ReferralCredit.id)
            .filter(ReferralCredit.referral_lead_id == lead_id, ReferralCredit.type == "SUCCESSFUL_REFERRAL")
            .first()
            is not None
        )
