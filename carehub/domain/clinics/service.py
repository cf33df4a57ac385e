"""Clinic service - Business logic for clinics and their doctors"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import DEFAULT_MAX_DOCTORS, DEFAULT_TRIAL_DAYS
from ...models import ROLE_DOCTOR, Clinic, ClinicMember, ClinicSubscription, User
from ...plan_limits import can_add_doctor, get_user_clinic
from ...shared.validators import slugify
from .repository import ClinicRepository
from .schemas import AddMemberRequest, ClinicStats, ClinicUpdate

logger = logging.getLogger(__name__)


def generate_unique_slug(db: Session, name: str, exclude_clinic_id: Optional[int] = None) -> str:
    """Slug from the clinic name, suffixed -1, -2, ... until unused"""
    base = slugify(name) or "clinic"
    slug = base
    counter = 1
    while ClinicRepository.slug_exists(db, slug, exclude_clinic_id):
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def apply_clinic_update(db: Session, clinic: Clinic, updates: dict) -> None:
    """Apply field updates, regenerating the slug when the name changes"""
    if updates.get("name") and updates["name"] != clinic.name:
        clinic.slug = generate_unique_slug(db, updates["name"], exclude_clinic_id=clinic.id)
    for key, value in updates.items():
        setattr(clinic, key, value)
    db.commit()
    db.refresh(clinic)


def ensure_doctor_has_clinic(doctor: User, db: Session) -> Optional[Clinic]:
    """
    Return the doctor's clinic, creating a personal one on the default plan
    (TRIAL subscription, doctor as ADMIN member) when they have none.

    Returns None when no default plan is configured.
    """
    existing = get_user_clinic(doctor, db)
    if existing:
        return existing

    plan = ClinicRepository.get_default_plan(db)
    if not plan:
        logger.warning(f"⚠️ No default subscription plan, clinic not created for doctor {doctor.id}")
        return None

    display_name = doctor.name or doctor.email.split("@")[0]
    clinic_name = f"{display_name} Clinic"
    clinic = ClinicRepository.create_clinic(
        db,
        name=clinic_name,
        slug=generate_unique_slug(db, clinic_name),
        description=f"Personal clinic of {display_name}",
        owner_id=doctor.id,
    )

    trial_days = plan.trial_days or DEFAULT_TRIAL_DAYS
    db.add(
        ClinicSubscription(
            clinic_id=clinic.id,
            plan_id=plan.id,
            status="TRIAL",
            max_doctors=DEFAULT_MAX_DOCTORS,
            trial_end_date=datetime.utcnow() + timedelta(days=trial_days),
        )
    )
    db.add(ClinicMember(clinic_id=clinic.id, user_id=doctor.id, role="ADMIN"))
    db.commit()
    db.refresh(clinic)

    logger.info(f"✅ Created clinic {clinic.id} ({clinic.slug}) for doctor {doctor.id}")
    return clinic


class ClinicService:
    """Service layer for clinic business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClinicRepository()

    def get_clinic(self, user: User) -> Clinic:
        clinic = get_user_clinic(user, self.db)
        if not clinic:
            raise HTTPException(status_code=404, detail="Clinic not found")
        return clinic

    def is_clinic_admin(self, user: User, clinic: Clinic) -> bool:
        """Owner, or an active ADMIN member"""
        if clinic.owner_id == user.id:
            return True
        member = self.repo.get_member(self.db, clinic.id, user.id)
        return bool(member and member.is_active and member.role == "ADMIN")

    def _get_admin_clinic(self, user: User) -> Clinic:
        clinic = self.get_clinic(user)
        if not self.is_clinic_admin(user, clinic):
            raise HTTPException(status_code=403, detail="Only clinic administrators can do this")
        return clinic

    def update_clinic(self, user: User, data: ClinicUpdate) -> Clinic:
        clinic = self._get_admin_clinic(user)

        apply_clinic_update(self.db, clinic, data.model_dump(exclude_unset=True))
        logger.info(f"✅ Clinic {clinic.id} updated by user {user.id}")
        return clinic

    def list_members(self, user: User) -> list[ClinicMember]:
        clinic = self.get_clinic(user)
        return self.repo.get_active_members(self.db, clinic.id)

    def add_member(self, user: User, data: AddMemberRequest) -> ClinicMember:
        clinic = self._get_admin_clinic(user)

        can_add, message = can_add_doctor(clinic, self.db)
        if not can_add:
            raise HTTPException(status_code=403, detail=message)

        doctor = self.repo.get_user_by_email(self.db, data.email)
        if not doctor or doctor.role != ROLE_DOCTOR:
            raise HTTPException(status_code=404, detail="Doctor not found")

        member = self.repo.get_member(self.db, clinic.id, doctor.id)
        if member and member.is_active:
            raise HTTPException(status_code=400, detail="Doctor is already a member of this clinic")

        if member:
            member.is_active = True
            member.role = data.role
        else:
            member = ClinicMember(clinic_id=clinic.id, user_id=doctor.id, role=data.role)
            self.db.add(member)
        self.db.commit()
        self.db.refresh(member)

        logger.info(f"✅ Doctor {doctor.id} added to clinic {clinic.id} as {data.role}")
        return member

    def remove_member(self, user: User, member_user_id: int) -> None:
        clinic = self._get_admin_clinic(user)
        if clinic.owner_id == member_user_id:
            raise HTTPException(status_code=400, detail="The clinic owner cannot be removed")

        member = self.repo.get_member(self.db, clinic.id, member_user_id)
        if not member:
            raise HTTPException(status_code=404, detail="Member not found")

        self.db.delete(member)
        self.db.commit()
        logger.info(f"🗑️ Doctor {member_user_id} removed from clinic {clinic.id}")

    def get_stats(self, user: User) -> ClinicStats:
        clinic = self.get_clinic(user)
        member_ids = self.repo.get_member_ids(self.db, clinic)
        return ClinicStats(
            totalDoctors=len(member_ids),
            totalProtocols=self.repo.count_protocols(self.db, member_ids),
            totalPatients=self.repo.count_patients(self.db, member_ids),
            totalCourses=self.repo.count_courses(self.db, member_ids),
        )

    def get_public_clinic(self, slug: str) -> Clinic:
        clinic = self.repo.get_by_slug(self.db, slug)
        if not clinic:
            raise HTTPException(status_code=404, detail="Clinic not found")
        return clinic
