import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI
from ..models import Appointment, GoogleCalendarIntegration
from ..security_utils import decrypt_value, encrypt_value

logger = logging.getLogger(__name__)

# Access tokens expiring within this window are refreshed before use
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)


class GoogleCalendarService:
    """Service for interacting with the Google OAuth and Calendar APIs"""

    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
    CALENDAR_URL = "https://www.googleapis.com/calendar/v3"
    SCOPES = [
        "https://www.googleapis.com/auth/calendar.events",
        "https://www.googleapis.com/auth/userinfo.email",
    ]

    def __init__(self):
        self.client_id = GOOGLE_CLIENT_ID
        self.client_secret = GOOGLE_CLIENT_SECRET
        self.redirect_uri = GOOGLE_REDIRECT_URI

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # ===== OAUTH =====

    def get_authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{self.AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.post(
                self.TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            if response.status_code != 200:
                logger.error(f"❌ Google token exchange failed: {response.status_code} {response.text}")
            response.raise_for_status()
            return response.json()

    async def refresh_access_token(self, refresh_token: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.post(
                self.TOKEN_URL,
                data={
                    "refresh_token": refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "refresh_token",
                },
            )
            response.raise_for_status()
            return response.json()

    async def get_user_email(self, access_token: str) -> Optional[str]:
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.get(self.USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
            response.raise_for_status()
            return response.json().get("email")

    async def revoke(self, token: str) -> None:
        async with httpx.AsyncClient(timeout=15) as client:
            await client.post(self.REVOKE_URL, params={"token": token})

    # ===== INTEGRATION STORAGE =====

    @staticmethod
    def get_integration(db: Session, user_id: int) -> Optional[GoogleCalendarIntegration]:
        return db.query(GoogleCalendarIntegration).filter(GoogleCalendarIntegration.user_id == user_id).first()

    async def connect(self, db: Session, user_id: int, code: str) -> GoogleCalendarIntegration:
        """Exchange the OAuth code and store the encrypted tokens"""
        tokens = await self.exchange_code_for_token(code)
        access_token = tokens.get("access_token")
        refresh_token = tokens.get("refresh_token")
        if not access_token or not refresh_token:
            raise ValueError("Google did not return both access and refresh tokens")

        google_email = await self.get_user_email(access_token)
        expires_at = datetime.utcnow() + timedelta(seconds=tokens.get("expires_in", 3600))

        integration = self.get_integration(db, user_id)
        if integration:
            integration.access_token = encrypt_value(access_token)
            integration.refresh_token = encrypt_value(refresh_token)
            integration.token_expires_at = expires_at
            integration.google_user_email = google_email
        else:
            integration = GoogleCalendarIntegration(
                user_id=user_id,
                access_token=encrypt_value(access_token),
                refresh_token=encrypt_value(refresh_token),
                token_expires_at=expires_at,
                google_user_email=google_email,
                google_calendar_id="primary",
                auto_sync_enabled=True,
            )
            db.add(integration)
        db.commit()
        db.refresh(integration)
        logger.info(f"✅ Google Calendar connected for user {user_id}")
        return integration

    async def get_valid_access_token(self, db: Session, integration: GoogleCalendarIntegration) -> str:
        """Decrypted access token, refreshed first when it expires within TOKEN_REFRESH_MARGIN"""
        if integration.token_expires_at > datetime.utcnow() + TOKEN_REFRESH_MARGIN:
            return decrypt_value(integration.access_token)

        logger.info(f"🔄 Refreshing Google access token for user {integration.user_id}")
        tokens = await self.refresh_access_token(decrypt_value(integration.refresh_token))
        access_token = tokens["access_token"]
        integration.access_token = encrypt_value(access_token)
        integration.token_expires_at = datetime.utcnow() + timedelta(seconds=tokens.get("expires_in", 3600))
        if tokens.get("refresh_token"):
            integration.refresh_token = encrypt_value(tokens["refresh_token"])
        db.commit()
        return access_token

    # ===== EVENTS =====

    @staticmethod
    def build_event(appointment: Appointment) -> dict[str, Any]:
        event = {
            "summary": appointment.title,
            "description": appointment.description or "",
            "start": {"dateTime": appointment.start_time.isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": appointment.end_time.isoformat(), "timeZone": "UTC"},
        }
        if appointment.location:
            event["location"] = appointment.location
        if appointment.patient and appointment.patient.email:
            event["attendees"] = [{"email": appointment.patient.email}]
        return event

    def _events_url(self, integration: GoogleCalendarIntegration) -> str:
        return f"{self.CALENDAR_URL}/calendars/{integration.google_calendar_id or 'primary'}/events"

    async def create_event(self, db: Session, integration: GoogleCalendarIntegration, appointment: Appointment) -> str:
        token = await self.get_valid_access_token(db, integration)
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.post(
                self._events_url(integration),
                headers={"Authorization": f"Bearer {token}"},
                json=self.build_event(appointment),
            )
            response.raise_for_status()
            return response.json()["id"]

    async def update_event(self, db: Session, integration: GoogleCalendarIntegration, appointment: Appointment) -> None:
        token = await self.get_valid_access_token(db, integration)
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.patch(
                f"{self._events_url(integration)}/{appointment.google_event_id}",
                headers={"Authorization": f"Bearer {token}"},
                json=self.build_event(appointment),
            )
            response.raise_for_status()

    async def delete_event(self, db: Session, integration: GoogleCalendarIntegration, event_id: str) -> None:
        token = await self.get_valid_access_token(db, integration)
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.delete(
                f"{self._events_url(integration)}/{event_id}",
                headers={"Authorization": f"Bearer {token}"},
            )
            # Already removed on Google's side
            if response.status_code not in (404, 410):
                response.raise_for_status()


google_calendar_service = GoogleCalendarService()
