import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from ..auth import require_doctor
from ..models import User
from ..rate_limiter import create_rate_limiter
from ..services.ai_service import AIServiceError, AIServiceNotConfiguredError, improve_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["AI"])

ai_limiter = create_rate_limiter(limit=30, window_seconds=60, key_prefix="ai_improve")


class ImproveTextRequest(BaseModel):
    text: str = Field(..., max_length=10000)
    context: Optional[str] = None

    @field_validator("text")
    @classmethod
    def check_text(cls, v):
        if not v.strip():
            raise ValueError("Text is required")
        return v


class ImproveTextResponse(BaseModel):
    improvedText: str
    originalText: str


@router.post("/improve-text", response_model=ImproveTextResponse)
async def improve_text_endpoint(
    data: ImproveTextRequest,
    current_user: User = Depends(require_doctor),
    _: None = Depends(ai_limiter),
):
    """Rewrite a protocol or clinical text more clearly"""
    try:
        improved = await improve_text(data.text, data.context)
    except AIServiceNotConfiguredError as e:
        raise HTTPException(status_code=503, detail="AI assistant is not configured") from e
    except AIServiceError as e:
        raise HTTPException(status_code=502, detail="AI provider error") from e

    logger.info(f"✨ Text improved for user {current_user.id} (context: {data.context or 'general'})")
    return ImproveTextResponse(improvedText=improved, originalText=data.text)
