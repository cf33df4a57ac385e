"""
Subscription Routes - plan usage checks for the current doctor's clinic
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import require_doctor
from ..database import get_db
from ..domain.clinics.repository import ClinicRepository
from ..domain.clinics.schemas import SubscriptionResponse
from ..models import User
from ..plan_limits import LIMIT_CHECKS, get_user_clinic

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["Subscription"])


@router.get("/check-limit")
async def check_limit(
    type: str = Query(..., description="patients, protocols or courses"),
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    """Whether the doctor may add one more resource of the given type"""
    checker = LIMIT_CHECKS.get(type)
    if not checker:
        raise HTTPException(status_code=400, detail=f"Invalid type. Use one of: {', '.join(LIMIT_CHECKS)}")

    allowed, message = checker(current_user, db)
    return {"allowed": allowed, "message": message, "type": type}


@router.get("/current")
async def get_current_subscription(current_user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    """The clinic subscription, its plan and current usage"""
    clinic = get_user_clinic(current_user, db)
    if not clinic or not clinic.subscription:
        raise HTTPException(status_code=404, detail="No subscription found")

    doctor_ids = ClinicRepository.get_member_ids(db, clinic)
    plan = clinic.subscription.plan
    return {
        "clinic_id": clinic.id,
        "subscription": SubscriptionResponse.model_validate(clinic.subscription),
        "usage": {
            "doctors": {"current": ClinicRepository.count_active_members(db, clinic.id), "limit": clinic.subscription.max_doctors},
            "patients": {"current": ClinicRepository.count_patients(db, doctor_ids), "limit": plan.max_patients},
            "protocols": {"current": ClinicRepository.count_protocols(db, doctor_ids), "limit": plan.max_protocols},
            "courses": {"current": ClinicRepository.count_courses(db, doctor_ids), "limit": plan.max_courses},
        },
    }
