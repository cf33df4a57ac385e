"""
Admin Routes - doctors, subscription plans, clinics and platform metrics (SUPER_ADMIN only)
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import require_super_admin
from ..database import get_db
from ..domain.clinics.repository import ClinicRepository
from ..domain.clinics.schemas import (
    AdminClinicUpdate,
    ClinicDetailResponse,
    ClinicResponse,
    PlanResponse,
    SubscriptionResponse,
)
from ..domain.clinics.service import apply_clinic_update, ensure_doctor_has_clinic
from ..domain.referrals.service import ensure_user_referral_code
from ..email_service import send_doctor_invite_email
from ..models import (
    PRESCRIPTION_ACTIVE,
    ROLE_DOCTOR,
    ROLE_PATIENT,
    Clinic,
    ClinicSubscription,
    DoctorPatientRelationship,
    Protocol,
    ProtocolPrescription,
    SubscriptionPlan,
    User,
)
from ..plan_limits import get_user_clinic
from ..schemas import build_pagination
from ..security_utils import generate_reset_token
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

SUBSCRIPTION_STATUSES = ("TRIAL", "ACTIVE", "PAST_DUE", "CANCELLED", "EXPIRED")
BILLING_CYCLES = ("MONTHLY", "YEARLY")
INVITE_TOKEN_EXPIRE_DAYS = 7
ACTIVE_SUBSCRIPTION_DAYS = 30


# ============================================================================
# SCHEMAS
# ============================================================================


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: float = Field(0, ge=0)
    billing_cycle: str = "MONTHLY"
    max_doctors: int = Field(1, ge=1)
    max_patients: Optional[int] = Field(None, ge=0)
    max_protocols: Optional[int] = Field(None, ge=0)
    max_courses: Optional[int] = Field(None, ge=0)
    trial_days: int = Field(30, ge=0)
    is_default: bool = False
    is_active: bool = True

    @field_validator("billing_cycle")
    @classmethod
    def check_cycle(cls, v):
        if v not in BILLING_CYCLES:
            raise ValueError("billing_cycle must be MONTHLY or YEARLY")
        return v


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    billing_cycle: Optional[str] = None
    max_doctors: Optional[int] = Field(None, ge=1)
    max_patients: Optional[int] = Field(None, ge=0)
    max_protocols: Optional[int] = Field(None, ge=0)
    max_courses: Optional[int] = Field(None, ge=0)
    trial_days: Optional[int] = Field(None, ge=0)
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("billing_cycle")
    @classmethod
    def check_cycle(cls, v):
        if v is not None and v not in BILLING_CYCLES:
            raise ValueError("billing_cycle must be MONTHLY or YEARLY")
        return v


class SubscriptionUpdate(BaseModel):
    status: Optional[str] = None
    plan_id: Optional[int] = None
    max_doctors: Optional[int] = Field(None, ge=1)
    end_date: Optional[datetime] = None
    trial_end_date: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is not None and v not in SUBSCRIPTION_STATUSES:
            raise ValueError(f"Status must be one of {', '.join(SUBSCRIPTION_STATUSES)}")
        return v


class DoctorCreate(BaseModel):
    name: str = Field(..., max_length=255)
    email: str
    subscription_type: str = "TRIAL"

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("subscription_type")
    @classmethod
    def check_type(cls, v):
        if v not in ("TRIAL", "ACTIVE"):
            raise ValueError("subscription_type must be TRIAL or ACTIVE")
        return v


def _clear_other_defaults(db: Session, plan_id: Optional[int]) -> None:
    query = db.query(SubscriptionPlan).filter(SubscriptionPlan.is_default.is_(True))
    if plan_id:
        query = query.filter(SubscriptionPlan.id != plan_id)
    query.update({SubscriptionPlan.is_default: False}, synchronize_session=False)


# ============================================================================
# DOCTORS
# ============================================================================


@router.get("/doctors")
async def list_doctors(current_user: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    doctors = db.query(User).filter(User.role == ROLE_DOCTOR).order_by(User.created_at.desc(), User.id.desc()).all()
    patient_counts = dict(
        db.query(DoctorPatientRelationship.doctor_id, func.count(DoctorPatientRelationship.id))
        .filter(DoctorPatientRelationship.is_active.is_(True))
        .group_by(DoctorPatientRelationship.doctor_id)
        .all()
    )

    result = []
    for doctor in doctors:
        clinic = get_user_clinic(doctor, db)
        subscription = clinic.subscription if clinic else None
        result.append(
            {
                "id": doctor.id,
                "name": doctor.name,
                "email": doctor.email,
                "is_active": doctor.is_active,
                "created_at": doctor.created_at,
                "clinic": {"id": clinic.id, "name": clinic.name, "slug": clinic.slug} if clinic else None,
                "subscription": SubscriptionResponse.model_validate(subscription) if subscription else None,
                "patientCount": patient_counts.get(doctor.id, 0),
            }
        )
    return {"doctors": result}


@router.post("/doctors", status_code=201)
async def create_doctor(
    data: DoctorCreate, current_user: User = Depends(require_super_admin), db: Session = Depends(get_db)
):
    """Create a doctor without a password and e-mail them an invitation to set one"""
    if db.query(User).filter(func.lower(User.email) == data.email).first():
        raise HTTPException(status_code=400, detail="An account with this e-mail already exists")

    plan = ClinicRepository.get_default_plan(db)
    if not plan:
        raise HTTPException(status_code=400, detail="No default subscription plan is configured")

    raw_token, hashed = generate_reset_token()
    doctor = User(
        name=data.name,
        email=data.email,
        role=ROLE_DOCTOR,
        reset_token=hashed,
        reset_token_expiry=datetime.utcnow() + timedelta(days=INVITE_TOKEN_EXPIRE_DAYS),
    )
    db.add(doctor)
    db.commit()
    db.refresh(doctor)

    ensure_user_referral_code(db, doctor)
    clinic = ensure_doctor_has_clinic(doctor, db)

    if data.subscription_type == "ACTIVE":
        clinic.subscription.status = "ACTIVE"
        clinic.subscription.trial_end_date = None
        clinic.subscription.end_date = datetime.utcnow() + timedelta(days=ACTIVE_SUBSCRIPTION_DAYS)
        db.commit()

    logger.info(f"✅ Doctor {doctor.id} created by admin {current_user.id} ({data.subscription_type})")

    try:
        send_doctor_invite_email(
            doctor.email, doctor.name, plan.name, data.subscription_type == "TRIAL", plan.trial_days, raw_token
        )
    except Exception as e:
        logger.error(f"❌ Failed to send invitation to doctor {doctor.id}: {e}")

    return {
        "success": True,
        "doctor": {"id": doctor.id, "name": doctor.name, "email": doctor.email},
        "clinic_id": clinic.id,
        "message": "Doctor created and invitation sent",
    }


# ============================================================================
# PLANS
# ============================================================================


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(current_user: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    return db.query(SubscriptionPlan).order_by(SubscriptionPlan.price, SubscriptionPlan.id).all()


@router.post("/plans", response_model=PlanResponse, status_code=201)
async def create_plan(
    data: PlanCreate, current_user: User = Depends(require_super_admin), db: Session = Depends(get_db)
):
    if db.query(SubscriptionPlan).filter(SubscriptionPlan.name == data.name).first():
        raise HTTPException(status_code=400, detail="A plan with this name already exists")

    if data.is_default:
        _clear_other_defaults(db, None)
    plan = SubscriptionPlan(**data.model_dump())
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info(f"✅ Plan {plan.id} ({plan.name}) created by admin {current_user.id}")
    return plan


@router.put("/plans/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: int,
    data: PlanUpdate,
    current_user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("is_default"):
        _clear_other_defaults(db, plan.id)
    for key, value in updates.items():
        setattr(plan, key, value)
    db.commit()
    db.refresh(plan)
    return plan


@router.delete("/plans/{plan_id}")
async def delete_plan(plan_id: int, current_user: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")

    in_use = db.query(func.count(ClinicSubscription.id)).filter(ClinicSubscription.plan_id == plan.id).scalar()
    if in_use:
        raise HTTPException(status_code=409, detail=f"Plan is used by {in_use} subscription(s)")

    db.delete(plan)
    db.commit()
    logger.info(f"🗑️ Plan {plan_id} deleted by admin {current_user.id}")
    return {"success": True, "message": "Plan deleted"}


# ============================================================================
# CLINICS & SUBSCRIPTIONS
# ============================================================================


@router.get("/clinics")
async def list_clinics(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    clinics, total = ClinicRepository.list_clinics(db, limit, offset)
    return {
        "clinics": [ClinicResponse.model_validate(c) for c in clinics],
        "pagination": build_pagination(total, limit, offset),
    }


def _get_clinic_or_404(db: Session, clinic_id: int) -> Clinic:
    clinic = ClinicRepository.get_by_id(db, clinic_id)
    if not clinic:
        raise HTTPException(status_code=404, detail="Clinic not found")
    return clinic


@router.get("/clinics/{clinic_id}", response_model=ClinicDetailResponse)
async def get_clinic(clinic_id: int, current_user: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    return _get_clinic_or_404(db, clinic_id)


@router.put("/clinics/{clinic_id}", response_model=ClinicDetailResponse)
async def update_clinic(
    clinic_id: int,
    data: AdminClinicUpdate,
    current_user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    clinic = _get_clinic_or_404(db, clinic_id)
    apply_clinic_update(db, clinic, data.model_dump(exclude_unset=True))
    logger.info(f"✅ Clinic {clinic.id} updated by admin {current_user.id}")
    return clinic


@router.patch("/subscriptions/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    data: SubscriptionUpdate,
    current_user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    subscription = ClinicRepository.get_subscription(db, subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("plan_id") and not db.query(SubscriptionPlan).filter(SubscriptionPlan.id == updates["plan_id"]).first():
        raise HTTPException(status_code=404, detail="Plan not found")

    for key, value in updates.items():
        if value is not None:
            setattr(subscription, key, value)
    db.commit()
    db.refresh(subscription)
    logger.info(f"🔄 Subscription {subscription.id} updated by admin {current_user.id}: {updates}")
    return subscription


# ============================================================================
# METRICS
# ============================================================================


@router.get("/metrics")
async def get_metrics(current_user: User = Depends(require_super_admin), db: Session = Depends(get_db)):
    def count_users(role: str) -> int:
        return db.query(func.count(User.id)).filter(User.role == role).scalar()

    return {
        "doctors": count_users(ROLE_DOCTOR),
        "patients": count_users(ROLE_PATIENT),
        "clinics": db.query(func.count(Clinic.id)).scalar(),
        "activeSubscriptions": db.query(func.count(ClinicSubscription.id))
        .filter(ClinicSubscription.status.in_(["TRIAL", "ACTIVE"]))
        .scalar(),
        "protocols": db.query(func.count(Protocol.id)).scalar(),
        "prescriptions": db.query(func.count(ProtocolPrescription.id)).scalar(),
        "activePrescriptions": db.query(func.count(ProtocolPrescription.id))
        .filter(ProtocolPrescription.status == PRESCRIPTION_ACTIVE)
        .scalar(),
    }
