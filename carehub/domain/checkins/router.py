"""Check-in router - patient daily check-ins and doctor question management"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ...auth import require_doctor, require_patient
from ...database import get_db
from ...models import User
from .schemas import (
    AnswerResponse,
    CheckinStatus,
    CheckinSubmit,
    CheckinSubmitResponse,
    QuestionCreate,
    QuestionResponse,
    QuestionsForToday,
    QuestionUpdate,
)
from .service import CheckinService

logger = logging.getLogger(__name__)

patient_router = APIRouter(prefix="/patient/checkins", tags=["Check-ins"])
doctor_router = APIRouter(prefix="/doctor/protocols", tags=["Check-ins"])


def get_checkin_service(db: Session = Depends(get_db)) -> CheckinService:
    """Dependency injection for CheckinService"""
    return CheckinService(db)


# ============================================================================
# PATIENT
# ============================================================================


@patient_router.get("/questions", response_model=QuestionsForToday)
async def get_todays_questions(
    protocol_id: Optional[int] = Query(None),
    current_user: User = Depends(require_patient),
    service: CheckinService = Depends(get_checkin_service),
):
    return service.get_questions_for_today(protocol_id, current_user)


@patient_router.post("/responses", response_model=CheckinSubmitResponse, status_code=201)
async def submit_checkin(
    data: CheckinSubmit,
    current_user: User = Depends(require_patient),
    service: CheckinService = Depends(get_checkin_service),
):
    """201 on the first submission of the day, 200 when answers are updated"""
    responses, is_update = service.submit_responses(data, current_user)
    body = CheckinSubmitResponse(
        isUpdate=is_update,
        responses=[AnswerResponse.model_validate(r) for r in responses],
    )
    return JSONResponse(status_code=200 if is_update else 201, content=jsonable_encoder(body))


@patient_router.get("/status", response_model=CheckinStatus)
async def get_checkin_status(
    protocol_id: Optional[int] = Query(None),
    current_user: User = Depends(require_patient),
    service: CheckinService = Depends(get_checkin_service),
):
    return service.get_status(protocol_id, current_user)


# ============================================================================
# DOCTOR
# ============================================================================


@doctor_router.get("/{protocol_id}/checkin-questions", response_model=list[QuestionResponse])
async def list_questions(
    protocol_id: int,
    current_user: User = Depends(require_doctor),
    service: CheckinService = Depends(get_checkin_service),
):
    return service.list_questions(protocol_id, current_user)


@doctor_router.post("/{protocol_id}/checkin-questions", response_model=QuestionResponse, status_code=201)
async def create_question(
    protocol_id: int,
    data: QuestionCreate,
    current_user: User = Depends(require_doctor),
    service: CheckinService = Depends(get_checkin_service),
):
    return service.create_question(protocol_id, data, current_user)


@doctor_router.put("/{protocol_id}/checkin-questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    protocol_id: int,
    question_id: int,
    data: QuestionUpdate,
    current_user: User = Depends(require_doctor),
    service: CheckinService = Depends(get_checkin_service),
):
    return service.update_question(protocol_id, question_id, data, current_user)


@doctor_router.delete("/{protocol_id}/checkin-questions/{question_id}")
async def delete_question(
    protocol_id: int,
    question_id: int,
    current_user: User = Depends(require_doctor),
    service: CheckinService = Depends(get_checkin_service),
):
    service.delete_question(protocol_id, question_id, current_user)
    return {"success": True, "message": "Question removed"}


@doctor_router.get("/{protocol_id}/checkin-responses", response_model=list[AnswerResponse])
async def list_responses(
    protocol_id: int,
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(require_doctor),
    service: CheckinService = Depends(get_checkin_service),
):
    return service.list_responses(protocol_id, current_user, day)


__all__ = ["patient_router", "doctor_router", "get_checkin_service"]
