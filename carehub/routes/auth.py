import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import create_access_token, get_current_user
from ..config import JWT_EXPIRE_HOURS, PASSWORD_RESET_EXPIRE_MINUTES
from ..database import get_db
from ..domain.clinics.service import ensure_doctor_has_clinic
from ..domain.referrals.service import ensure_user_referral_code
from ..email_service import send_password_reset_email
from ..models import ROLE_DOCTOR, User
from ..rate_limiter import create_rate_limiter
from ..schemas import MessageResponse, UserResponse
from ..security_utils import generate_reset_token, hash_password, hash_token, verify_password
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

login_limiter = create_rate_limiter(limit=10, window_seconds=60, key_prefix="login")
password_reset_limiter = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="password_reset")

MIN_PASSWORD_LENGTH = 6
FORGOT_PASSWORD_MESSAGE = "If this e-mail is registered, you will receive a link to reset your password."


def _check_password(v: str) -> str:
    if not v or len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return v


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _check_password(v)


class LoginRequest(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return _check_password(v)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user),
        expires_in=JWT_EXPIRE_HOURS * 3600,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register_doctor(data: RegisterRequest, db: Session = Depends(get_db)):
    """Create a doctor account with a personal clinic on the default plan"""
    if db.query(User).filter(func.lower(User.email) == data.email).first():
        raise HTTPException(status_code=400, detail="An account with this e-mail already exists")

    user = User(
        name=data.name.strip(),
        email=data.email,
        password_hash=hash_password(data.password),
        role=ROLE_DOCTOR,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    ensure_user_referral_code(db, user)
    ensure_doctor_has_clinic(user, db)

    logger.info(f"✅ Doctor registered: {user.id}")
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, db: Session = Depends(get_db), _: None = Depends(login_limiter)):
    email = data.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()

    if not user or not user.is_active or not verify_password(data.password, user.password_hash):
        logger.warning(f"🚫 Failed login attempt for {email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info(f"✅ User {user.id} logged in")
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(password_reset_limiter),
):
    """Always answers with the same message so e-mails cannot be enumerated"""
    email = data.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()

    if user and user.is_active:
        raw_token, hashed = generate_reset_token()
        user.reset_token = hashed
        user.reset_token_expiry = datetime.utcnow() + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
        db.commit()

        try:
            send_password_reset_email(user.email, user.name, raw_token)
            logger.info(f"📧 Password reset e-mail sent to user {user.id}")
        except Exception as e:
            logger.error(f"❌ Failed to send password reset e-mail to user {user.id}: {e}")

    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    _: None = Depends(password_reset_limiter),
):
    user = (
        db.query(User)
        .filter(
            User.reset_token == hash_token(data.token),
            User.reset_token_expiry > datetime.utcnow(),
        )
        .first()
    )
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired token")

    user.password_hash = hash_password(data.password)
    user.reset_token = None
    user.reset_token_expiry = None
    db.commit()

    logger.info(f"✅ Password reset for user {user.id}")
    return MessageResponse(message="Password reset successfully")


__all__ = ["router"]
