"""
Google Calendar Integration Routes
Handles the OAuth connection used to sync doctor appointments
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import require_doctor
from ..database import get_db
from ..models import User
from ..security_utils import decrypt_value, generate_timed_token, verify_timed_token
from ..services.google_calendar_service import google_calendar_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google-calendar", tags=["google-calendar"])

OAUTH_STATE_SALT = "google-calendar-oauth"
OAUTH_STATE_MAX_AGE = 600


class CallbackRequest(BaseModel):
    code: str
    state: Optional[str] = None


class SettingsUpdate(BaseModel):
    auto_sync_enabled: Optional[bool] = None
    default_appointment_duration: Optional[int] = None


@router.get("/status")
async def get_google_calendar_status(current_user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    """Get Google Calendar connection status"""
    integration = google_calendar_service.get_integration(db, current_user.id)
    if not integration:
        return {"connected": False, "user_email": None, "calendar_id": None, "auto_sync_enabled": None}

    return {
        "connected": True,
        "user_email": integration.google_user_email,
        "calendar_id": integration.google_calendar_id,
        "auto_sync_enabled": integration.auto_sync_enabled,
    }


@router.get("/connect")
async def initiate_google_calendar_oauth(current_user: User = Depends(require_doctor)):
    """Initiate Google Calendar OAuth flow"""
    if not google_calendar_service.is_configured:
        raise HTTPException(status_code=500, detail="Google Calendar not configured")

    state = generate_timed_token({"user_id": current_user.id}, salt=OAUTH_STATE_SALT)
    logger.info(f"Google Calendar OAuth initiated for user {current_user.id}")
    return {"authorization_url": google_calendar_service.get_authorization_url(state)}


@router.post("/callback")
async def handle_google_calendar_callback(
    data: CallbackRequest,
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    """Exchange the authorization code and store the encrypted tokens"""
    if not data.code:
        raise HTTPException(status_code=400, detail="No authorization code provided")

    if data.state:
        state = verify_timed_token(data.state, max_age=OAUTH_STATE_MAX_AGE, salt=OAUTH_STATE_SALT)
        if not state or state.get("user_id") != current_user.id:
            raise HTTPException(status_code=400, detail="Invalid OAuth state")

    try:
        integration = await google_calendar_service.connect(db, current_user.id, data.code)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ Google Calendar callback error: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=400, detail="Failed to connect Google Calendar") from e

    return {
        "success": True,
        "message": "Google Calendar connected successfully",
        "user_email": integration.google_user_email,
    }


@router.patch("/settings")
async def update_google_calendar_settings(
    data: SettingsUpdate,
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    integration = google_calendar_service.get_integration(db, current_user.id)
    if not integration:
        raise HTTPException(status_code=404, detail="Google Calendar not connected")

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(integration, key, value)
    db.commit()
    return {"success": True, "auto_sync_enabled": integration.auto_sync_enabled}


@router.post("/disconnect")
async def disconnect_google_calendar(current_user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    """Disconnect Google Calendar integration"""
    integration = google_calendar_service.get_integration(db, current_user.id)
    if not integration:
        raise HTTPException(status_code=404, detail="Google Calendar not connected")

    try:
        await google_calendar_service.revoke(decrypt_value(integration.access_token))
    except Exception as e:
        logger.warning(f"Failed to revoke Google tokens: {str(e)}")

    db.delete(integration)
    db.commit()

    logger.info(f"✅ Google Calendar disconnected for user {current_user.id}")
    return {"success": True, "message": "Google Calendar disconnected"}
