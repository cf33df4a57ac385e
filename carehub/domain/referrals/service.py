"""Referral service - lead capture, lead follow-up and referral credits"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import REFERRAL_VALIDITY_DAYS
from ...email_service import send_credit_notification, send_referral_notification
from ...models import (
    PRESCRIPTION_ACTIVE,
    PRESCRIPTION_PRESCRIBED,
    PatientReferral,
    ReferralCredit,
    ReferralLead,
    User,
)
from ...security_utils import generate_referral_code
from .repository import ReferralRepository
from .schemas import LeadUpdate, PatientReferralCreate, PublicReferralSubmit

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


def generate_unique_code(db: Session, exists: Callable[[Session, str], bool]) -> str:
    """Random referral code not matched by ``exists``; 500 after MAX_CODE_ATTEMPTS collisions"""
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_referral_code()
        if not exists(db, code):
            return code
    logger.error(f"❌ Could not generate a unique referral code after {MAX_CODE_ATTEMPTS} attempts")
    raise HTTPException(status_code=500, detail="Could not generate a unique referral code")


def ensure_user_referral_code(db: Session, user: User) -> str:
    """Give the user a personal referral code if they have none"""
    if user.referral_code:
        return user.referral_code
    user.referral_code = generate_unique_code(db, ReferralRepository.user_code_exists)
    db.commit()
    db.refresh(user)
    logger.info(f"🎟️ Referral code assigned to user {user.id}")
    return user.referral_code


class ReferralService:
    """Service layer for referrals"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReferralRepository()

    def _notify_doctor(self, doctor: User, lead: ReferralLead, referrer: Optional[User]) -> None:
        try:
            send_referral_notification(
                doctor.email,
                doctor.name or doctor.email,
                lead.name,
                lead.email,
                referrer.name if referrer else None,
            )
        except Exception as e:
            logger.error(f"❌ Failed to notify doctor {doctor.id} about lead {lead.id}: {e}")

    # ========================================================================
    # PATIENT
    # ========================================================================

    def list_my_leads(self, user: User) -> list[ReferralLead]:
        return self.repo.list_leads_by_referrer(self.db, user.id)

    def get_my_code(self, user: User) -> str:
        return ensure_user_referral_code(self.db, user)

    def get_my_credits(self, user: User) -> dict:
        return {
            "credits": self.repo.list_credits(self.db, user.id),
            "balance": self.repo.credit_balance(self.db, user.id),
        }

    def refer_patient(self, data: PatientReferralCreate, user: User) -> ReferralLead:
        prescription = self.repo.get_patient_prescription(self.db, data.prescription_id, user.id)
        if (
            not prescription
            or prescription.status not in (PRESCRIPTION_ACTIVE, PRESCRIPTION_PRESCRIBED)
            or prescription.paused_at
            or prescription.abandoned_at
        ):
            raise HTTPException(status_code=403, detail="You need an active protocol to refer someone")

        indicated = data.indicated_patient
        if self.repo.get_user_by_email(self.db, indicated.email):
            raise HTTPException(status_code=400, detail="This person already has an account")
        if self.repo.find_open_lead(self.db, indicated.email):
            raise HTTPException(status_code=400, detail="This person has already been referred")

        lead = ReferralLead(
            name=indicated.name,
            email=indicated.email,
            phone=indicated.phone,
            status="PENDING",
            source="PATIENT_REFERRAL",
            notes=data.notes,
            referral_code=generate_unique_code(self.db, self.repo.lead_code_exists),
            doctor_id=prescription.prescribed_by,
            referrer_id=user.id,
        )
        self.db.add(lead)
        self.db.flush()
        self.repo.add_referral(
            self.db,
            PatientReferral(
                lead_id=lead.id,
                prescription_id=prescription.id,
                referrer_id=user.id,
                notes=data.notes,
                valid_until=datetime.utcnow() + timedelta(days=REFERRAL_VALIDITY_DAYS),
            ),
        )
        self.db.commit()
        self.db.refresh(lead)
        logger.info(f"🤝 Patient {user.id} referred lead {lead.id} to doctor {prescription.prescribed_by}")

        self._notify_doctor(prescription.doctor, lead, user)
        return lead

    # ========================================================================
    # PUBLIC
    # ========================================================================

    def get_doctor_card(self, doctor_id: int) -> User:
        doctor = self.repo.get_doctor(self.db, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    def submit_public(self, data: PublicReferralSubmit) -> ReferralLead:
        doctor = self.get_doctor_card(data.doctor_id)

        existing_user = self.repo.get_user_by_email(self.db, data.email)
        if existing_user and self.repo.is_patient_of(self.db, doctor.id, existing_user.id):
            raise HTTPException(status_code=400, detail="You are already a patient of this doctor")
        if self.repo.find_open_lead(self.db, data.email, doctor.id):
            raise HTTPException(status_code=400, detail="A referral for this e-mail is already pending")

        referrer = None
        if data.referrer_code:
            referrer = self.repo.get_user_by_code(self.db, data.referrer_code)
            if not referrer:
                raise HTTPException(status_code=400, detail="Invalid referral code")
            if not self.repo.is_patient_of(self.db, doctor.id, referrer.id):
                raise HTTPException(status_code=400, detail="This referral code does not belong to this doctor's patients")

        lead = ReferralLead(
            name=data.name,
            email=data.email,
            phone=data.phone,
            status="PENDING",
            source="PATIENT_REFERRAL" if referrer else "DIRECT",
            referral_code=generate_unique_code(self.db, self.repo.lead_code_exists),
            doctor_id=doctor.id,
            referrer_id=referrer.id if referrer else None,
        )
        self.db.add(lead)
        self.db.commit()
        self.db.refresh(lead)
        logger.info(f"📨 Public referral lead {lead.id} submitted for doctor {doctor.id}")

        self._notify_doctor(doctor, lead, referrer)
        return lead

    # ========================================================================
    # DOCTOR
    # ========================================================================

    def list_doctor_leads(self, doctor: User, status: Optional[str], page: int, limit: int) -> dict:
        status_filter = None if not status or status == "ALL" else status
        leads, total = self.repo.list_leads_for_doctor(self.db, doctor.id, status_filter, limit, (page - 1) * limit)
        counts = self.repo.lead_status_counts(self.db, doctor.id)
        return {
            "leads": leads,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if total else 0,
            },
            "stats": {
                "total": sum(counts.values()),
                "pending": counts.get("PENDING", 0),
                "contacted": counts.get("CONTACTED", 0),
                "converted": counts.get("CONVERTED", 0),
                "rejected": counts.get("REJECTED", 0),
            },
        }

    def update_lead(self, lead_id: int, data: LeadUpdate, doctor: User) -> ReferralLead:
        lead = self.repo.get_lead_for_doctor(self.db, lead_id, doctor.id)
        if not lead:
            raise HTTPException(status_code=404, detail="Referral not found")

        previous_status = lead.status
        if data.status:
            lead.status = data.status
        if data.notes is not None:
            lead.notes = data.notes
        lead.last_contact_date = datetime.utcnow()

        credited = False
        if (
            data.status == "CONVERTED"
            and previous_status != "CONVERTED"
            and lead.referrer_id
            and not self.repo.credit_exists_for_lead(self.db, lead.id)
        ):
            self.db.add(
                ReferralCredit(
                    user_id=lead.referrer_id,
                    referral_lead_id=lead.id,
                    amount=1,
                    type="SUCCESSFUL_REFERRAL",
                    status="AVAILABLE",
                    description=f"Referral of {lead.name} converted",
                )
            )
            credited = True

        self.db.commit()
        self.db.refresh(lead)
        logger.info(f"✅ Lead {lead.id} updated: {previous_status} → {lead.status}")

        if credited:
            logger.info(f"💳 Credit granted to user {lead.referrer_id} for lead {lead.id}")
            referrer = lead.referrer
            try:
                send_credit_notification(
                    referrer.email,
                    referrer.name or referrer.email,
                    lead.name,
                    self.repo.credit_balance(self.db, referrer.id),
                )
            except Exception as e:
                logger.error(f"❌ Failed to send credit e-mail to user {referrer.id}: {e}")

        return lead
