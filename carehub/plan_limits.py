"""
Plan limits for clinic subscriptions.

Every check returns (allowed, message). Usage is counted across all doctors of
the clinic, against the clinic subscription's plan. A plan limit of None means
unlimited; no clinic or no subscription means nothing is allowed.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .domain.clinics.repository import ClinicRepository
from .models import Clinic, User

logger = logging.getLogger(__name__)

INACTIVE_SUBSCRIPTION_STATUSES = {"CANCELLED", "EXPIRED"}


def get_user_clinic(user: User, db: Session) -> Optional[Clinic]:
    """Clinic the user owns, otherwise the one they are an active member of"""
    return ClinicRepository.get_owned_clinic(db, user.id) or ClinicRepository.get_member_clinic(db, user.id)


def _subscription_error(clinic: Optional[Clinic]) -> Optional[str]:
    if not clinic:
        return "You are not part of a clinic."
    if not clinic.subscription:
        return "Your clinic has no subscription."
    if clinic.subscription.status in INACTIVE_SUBSCRIPTION_STATUSES:
        return "Your clinic subscription is not active."
    return None


def can_add_doctor(clinic: Clinic, db: Session) -> tuple:
    error = _subscription_error(clinic)
    if error:
        return (False, error)

    current = ClinicRepository.count_active_members(db, clinic.id)
    if current >= clinic.subscription.max_doctors:
        return (False, f"Doctor limit reached ({clinic.subscription.max_doctors}) for this clinic.")
    return (True, "")


def _check_plan_usage(user: User, db: Session, limit_attr: str, counter: Callable, label: str) -> tuple:
    clinic = get_user_clinic(user, db)
    error = _subscription_error(clinic)
    if error:
        return (False, error)

    limit = getattr(clinic.subscription.plan, limit_attr)
    if limit is None:
        return (True, "")

    current = counter(db, ClinicRepository.get_member_ids(db, clinic))
    if current >= limit:
        logger.info(f"⚠️ Clinic {clinic.id} reached {label} limit {current}/{limit}")
        return (False, f"Your plan allows up to {limit} {label}. Upgrade to add more.")
    return (True, "")


def can_create_protocol(user: User, db: Session) -> tuple:
    return _check_plan_usage(user, db, "max_protocols", ClinicRepository.count_protocols, "protocols")


def can_add_patient(user: User, db: Session) -> tuple:
    return _check_plan_usage(user, db, "max_patients", ClinicRepository.count_patients, "patients")


def can_create_course(user: User, db: Session) -> tuple:
    return _check_plan_usage(user, db, "max_courses", ClinicRepository.count_courses, "courses")


LIMIT_CHECKS = {
    "patients": can_add_patient,
    "protocols": can_create_protocol,
    "courses": can_create_course,
}
