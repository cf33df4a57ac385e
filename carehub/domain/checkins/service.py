"""Check-in service - daily questionnaires attached to protocols"""

import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import DailyCheckinQuestion, DailyCheckinResponse, Protocol, ProtocolPrescription, User
from ..prescriptions.progress import DEFAULT_PROTOCOL_DURATION, round_half_up
from .repository import CheckinRepository
from .schemas import CheckinSubmit, QuestionCreate, QuestionUpdate

logger = logging.getLogger(__name__)

HISTORY_DAYS = 7


def checkin_progress(prescription: ProtocolPrescription, today: date) -> dict:
    """Day reached in the protocol, total days and percentage (0-100)"""
    start = (prescription.actual_start_date or prescription.planned_start_date).date()
    current = max(1, (today - start).days + 1)

    if prescription.planned_end_date:
        total = max(1, (prescription.planned_end_date.date() - start).days + 1)
    else:
        total = prescription.protocol.duration or DEFAULT_PROTOCOL_DURATION

    percentage = min(100, max(0, round_half_up(current / total * 100)))
    return {"currentDay": current, "totalDays": total, "percentage": percentage}


class CheckinService:
    """Service layer for daily check-ins"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CheckinRepository()

    # ========================================================================
    # PATIENT
    # ========================================================================

    def _require_active_prescription(self, protocol_id: Optional[int], user: User) -> ProtocolPrescription:
        if not protocol_id:
            raise HTTPException(status_code=400, detail="protocol_id is required")
        prescription = self.repo.get_active_prescription(self.db, protocol_id, user.id)
        if not prescription:
            raise HTTPException(status_code=404, detail="No active prescription for this protocol")
        return prescription

    def get_questions_for_today(self, protocol_id: Optional[int], user: User) -> dict:
        self._require_active_prescription(protocol_id, user)
        today = datetime.utcnow().date()
        answers = self.repo.get_responses_for_day(self.db, user.id, protocol_id, today)
        return {
            "questions": self.repo.list_questions(self.db, protocol_id),
            "hasCheckinToday": bool(answers),
            "existingResponses": {a.question_id: a.answer for a in answers},
            "date": today,
        }

    def submit_responses(self, data: CheckinSubmit, user: User) -> tuple[list[DailyCheckinResponse], bool]:
        """Upsert today's answers. Returns (responses, is_update)."""
        self._require_active_prescription(data.protocol_id, user)

        valid_ids = {q.id for q in self.repo.list_questions(self.db, data.protocol_id)}
        invalid = [a.question_id for a in data.responses if a.question_id not in valid_ids]
        if invalid:
            raise HTTPException(status_code=400, detail=f"Invalid questions for this protocol: {invalid}")

        today = datetime.utcnow().date()
        existing = {r.question_id: r for r in self.repo.get_responses_for_day(self.db, user.id, data.protocol_id, today)}
        is_update = bool(existing)

        saved = []
        for answer in data.responses:
            response = existing.get(answer.question_id)
            if response:
                response.answer = answer.answer
            else:
                response = DailyCheckinResponse(
                    question_id=answer.question_id,
                    user_id=user.id,
                    protocol_id=data.protocol_id,
                    answer=answer.answer,
                    date=today,
                )
                self.db.add(response)
                existing[answer.question_id] = response
            saved.append(response)

        self.db.commit()
        for response in saved:
            self.db.refresh(response)

        logger.info(
            f"📋 Check-in {'updated' if is_update else 'submitted'} by user {user.id} "
            f"for protocol {data.protocol_id} ({len(saved)} answers)"
        )
        return saved, is_update

    def get_status(self, protocol_id: Optional[int], user: User, today: Optional[date] = None) -> dict:
        prescription = self._require_active_prescription(protocol_id, user)
        today = today or datetime.utcnow().date()

        today_answers = self.repo.get_responses_for_day(self.db, user.id, protocol_id, today)
        total_questions = len(self.repo.list_questions(self.db, protocol_id))

        history: "OrderedDict[date, list]" = OrderedDict()
        recent = self.repo.get_responses_between(
            self.db, user.id, protocol_id, today - timedelta(days=HISTORY_DAYS), today
        )
        for response in recent:
            history.setdefault(response.date, []).append(response)

        return {
            "hasCheckinToday": bool(today_answers),
            "completedQuestions": len(today_answers),
            "totalQuestions": total_questions,
            "isComplete": len(today_answers) >= total_questions,
            "progress": checkin_progress(prescription, today),
            "todayResponses": today_answers,
            "recentHistory": [{"date": day, "responses": items} for day, items in history.items()],
        }

    # ========================================================================
    # DOCTOR
    # ========================================================================

    def _owned_protocol(self, protocol_id: int, doctor: User) -> Protocol:
        protocol = self.repo.get_owned_protocol(self.db, protocol_id, doctor.id)
        if not protocol:
            raise HTTPException(status_code=404, detail="Protocol not found")
        return protocol

    def _question_of(self, protocol: Protocol, question_id: int) -> DailyCheckinQuestion:
        question = self.repo.get_question(self.db, question_id)
        if not question:
            raise HTTPException(status_code=404, detail="Question not found")
        if question.protocol_id != protocol.id:
            raise HTTPException(status_code=403, detail="Question belongs to another protocol")
        return question

    def list_questions(self, protocol_id: int, doctor: User) -> list[DailyCheckinQuestion]:
        protocol = self._owned_protocol(protocol_id, doctor)
        return self.repo.list_questions(self.db, protocol.id)

    def create_question(self, protocol_id: int, data: QuestionCreate, doctor: User) -> DailyCheckinQuestion:
        protocol = self._owned_protocol(protocol_id, doctor)
        if data.type == "MULTIPLE_CHOICE" and not data.options:
            raise HTTPException(status_code=400, detail="Multiple choice questions need options")

        question = DailyCheckinQuestion(protocol_id=protocol.id, **data.model_dump())
        self.db.add(question)
        self.db.commit()
        self.db.refresh(question)
        logger.info(f"✅ Check-in question {question.id} added to protocol {protocol.id}")
        return question

    def update_question(self, protocol_id: int, question_id: int, data: QuestionUpdate, doctor: User) -> DailyCheckinQuestion:
        protocol = self._owned_protocol(protocol_id, doctor)
        question = self._question_of(protocol, question_id)

        updates = data.model_dump(exclude_unset=True)
        new_type = updates.get("type", question.type)
        new_options = updates.get("options", question.options)
        if new_type == "MULTIPLE_CHOICE" and not new_options:
            raise HTTPException(status_code=400, detail="Multiple choice questions need options")

        for key, value in updates.items():
            setattr(question, key, value)
        self.db.commit()
        self.db.refresh(question)
        return question

    def delete_question(self, protocol_id: int, question_id: int, doctor: User) -> None:
        protocol = self._owned_protocol(protocol_id, doctor)
        question = self._question_of(protocol, question_id)
        question.is_active = False
        self.db.commit()
        logger.info(f"🗑️ Check-in question {question.id} deactivated")

    def list_responses(self, protocol_id: int, doctor: User, day: Optional[date] = None) -> list[DailyCheckinResponse]:
        protocol = self._owned_protocol(protocol_id, doctor)
        return self.repo.list_protocol_responses(self.db, protocol.id, day)
