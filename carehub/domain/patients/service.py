"""Patient service - Business logic for a doctor's patients and the patient profile"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import PASSWORD_RESET_EXPIRE_MINUTES
from ...email_service import send_password_reset_email, send_patient_welcome_email
from ...models import PRESCRIPTION_ACTIVE, PRESCRIPTION_COMPLETED, ROLE_PATIENT, DoctorPatientRelationship, User
from ...plan_limits import can_add_patient
from ...schemas import build_pagination
from ...security_utils import generate_reset_token
from ..prescriptions.progress import round_half_up
from ..referrals.service import ensure_user_referral_code
from .repository import PatientRepository
from .schemas import PatientCreate, ProfileUpdate

logger = logging.getLogger(__name__)

# Invitation links live longer than a regular password reset
WELCOME_TOKEN_EXPIRE_DAYS = 7


class PatientService:
    """Service layer for patient business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()

    # ========================================================================
    # DOCTOR SIDE
    # ========================================================================

    def list_patients(self, doctor: User, search: Optional[str], limit: int, offset: int) -> dict:
        patients, total = self.repo.list_patients(self.db, doctor.id, search, limit, offset)
        return {"patients": patients, "pagination": build_pagination(total, limit, offset)}

    def _send_welcome(self, patient: User, doctor: User) -> None:
        raw_token, hashed = generate_reset_token()
        patient.reset_token = hashed
        patient.reset_token_expiry = datetime.utcnow() + timedelta(days=WELCOME_TOKEN_EXPIRE_DAYS)
        self.db.commit()
        try:
            send_patient_welcome_email(patient.email, patient.name, doctor.name or doctor.email, raw_token)
            logger.info(f"📧 Welcome e-mail sent to patient {patient.id}")
        except Exception as e:
            logger.error(f"❌ Failed to send welcome e-mail to patient {patient.id}: {e}")

    def add_patient(self, data: PatientCreate, doctor: User) -> tuple[User, bool]:
        """
        Link a patient to the doctor, creating the account when the e-mail is new.

        Returns (patient, created).
        """
        patient = self.repo.get_user_by_email(self.db, data.email)
        created = False
        if patient and patient.role != ROLE_PATIENT:
            raise HTTPException(status_code=400, detail="This e-mail belongs to a non-patient account")

        existing = self.repo.get_relationship(self.db, doctor.id, patient.id) if patient else None
        if existing is None or not existing.is_active:
            allowed, message = can_add_patient(doctor, self.db)
            if not allowed:
                logger.warning(f"⚠️ Doctor {doctor.id} reached patient limit: {message}")
                raise HTTPException(status_code=403, detail=message)

        if not patient:
            patient = User(name=data.name, email=data.email, phone=data.phone, role=ROLE_PATIENT, doctor_id=doctor.id)
            self.db.add(patient)
            self.db.commit()
            self.db.refresh(patient)
            created = True
            logger.info(f"👤 Patient account {patient.id} created by doctor {doctor.id}")
        ensure_user_referral_code(self.db, patient)

        relationship = self.repo.get_relationship(self.db, doctor.id, patient.id)
        if relationship is None:
            self.db.add(DoctorPatientRelationship(doctor_id=doctor.id, patient_id=patient.id, is_active=True))
        elif not relationship.is_active:
            relationship.is_active = True
            relationship.end_date = None
        self.db.commit()

        if created or not patient.password_hash:
            self._send_welcome(patient, doctor)

        self.db.refresh(patient)
        return patient, created

    def get_patient(self, patient_id: int, doctor: User) -> dict:
        patient = self.repo.get_related_patient(self.db, doctor.id, patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")

        prescriptions = self.repo.list_prescriptions_for(self.db, doctor.id, patient.id)
        return {
            "patient": patient,
            "prescriptions": [
                {
                    "id": p.id,
                    "protocol_id": p.protocol_id,
                    "protocol_name": p.protocol.name,
                    "status": p.status,
                    "current_day": p.current_day,
                    "adherence_rate": p.adherence_rate,
                    "planned_start_date": p.planned_start_date,
                    "actual_start_date": p.actual_start_date,
                }
                for p in prescriptions
            ],
        }

    def remove_patient(self, patient_id: int, doctor: User) -> None:
        relationship = self.repo.get_relationship(self.db, doctor.id, patient_id)
        if not relationship or not relationship.is_active:
            raise HTTPException(status_code=404, detail="Patient not found")
        relationship.is_active = False
        relationship.end_date = datetime.utcnow()
        self.db.commit()
        logger.info(f"🔗 Doctor {doctor.id} ended relationship with patient {patient_id}")

    def send_password_reset(self, patient_id: int, doctor: User) -> None:
        patient = self.repo.get_related_patient(self.db, doctor.id, patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")

        raw_token, hashed = generate_reset_token()
        patient.reset_token = hashed
        patient.reset_token_expiry = datetime.utcnow() + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
        self.db.commit()

        try:
            send_password_reset_email(patient.email, patient.name, raw_token)
        except Exception as e:
            logger.error(f"❌ Failed to send password reset to patient {patient.id}: {e}")
            raise HTTPException(status_code=502, detail="Could not send the password reset e-mail") from e
        logger.info(f"📧 Doctor {doctor.id} sent a password reset to patient {patient.id}")

    def get_stats(self, doctor: User) -> dict:
        average = self.repo.average_active_adherence(self.db, doctor.id)
        recent = self.repo.recent_prescriptions(self.db, doctor.id)
        return {
            "totalPatients": self.repo.count_active_patients(self.db, doctor.id),
            "totalProtocols": self.repo.count_active_protocols(self.db, doctor.id),
            "activePrescriptions": self.repo.count_open_prescriptions(self.db, doctor.id),
            "averageAdherence": round_half_up(average) if average is not None else 0,
            "totalCourses": self.repo.count_published_courses(self.db, doctor.id),
            "pendingReferrals": self.repo.count_pending_leads(self.db, doctor.id),
            "recentPrescriptions": [
                {
                    "id": p.id,
                    "status": p.status,
                    "protocol": p.protocol.name,
                    "patient": p.patient,
                    "prescribed_at": p.prescribed_at,
                }
                for p in recent
            ],
        }

    # ========================================================================
    # PATIENT SIDE
    # ========================================================================

    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        for key, value in data.model_dump(exclude_unset=True).items():
            if key == "name" and value is not None:
                value = value.strip()
            setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        return user

    def list_my_doctors(self, user: User) -> list[User]:
        return self.repo.list_doctors_of(self.db, user.id)

    def get_patient_stats(self, user: User) -> dict:
        counts = self.repo.count_prescriptions_by_status(self.db, user.id)
        return {
            "activeProtocols": counts.get(PRESCRIPTION_ACTIVE, 0),
            "completedProtocols": counts.get(PRESCRIPTION_COMPLETED, 0),
            "joinedDate": user.created_at,
        }
