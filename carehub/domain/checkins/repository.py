"""Check-in repository - Database operations for check-in questions and responses"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import (
    PRESCRIPTION_ACTIVE,
    DailyCheckinQuestion,
    DailyCheckinResponse,
    Protocol,
    ProtocolPrescription,
)


class CheckinRepository:
    """Repository for check-in database operations"""

    @staticmethod
    def get_active_prescription(db: Session, protocol_id: int, user_id: int) -> Optional[ProtocolPrescription]:
        return (
            db.query(ProtocolPrescription)
            .filter(
                ProtocolPrescription.protocol_id == protocol_id,
                ProtocolPrescription.user_id == user_id,
                ProtocolPrescription.status == PRESCRIPTION_ACTIVE,
            )
            .first()
        )

    @staticmethod
    def get_owned_protocol(db: Session, protocol_id: int, doctor_id: int) -> Optional[Protocol]:
        return db.query(Protocol).filter(Protocol.id == protocol_id, Protocol.doctor_id == doctor_id).first()

    # ===== QUESTIONS =====

    @staticmethod
    def list_questions(db: Session, protocol_id: int, active_only: bool = True) -> list[DailyCheckinQuestion]:
        query = db.query(DailyCheckinQuestion).filter(DailyCheckinQuestion.protocol_id == protocol_id)
        if active_only:
            query = query.filter(DailyCheckinQuestion.is_active.is_(True))
        return query.order_by(DailyCheckinQuestion.order, DailyCheckinQuestion.id).all()

    @staticmethod
    def get_question(db: Session, question_id: int) -> Optional[DailyCheckinQuestion]:
        return db.query(DailyCheckinQuestion).filter(DailyCheckinQuestion.id == question_id).first()

    # ===== RESPONSES =====

    @staticmethod
    def get_responses_for_day(db: Session, user_id: int, protocol_id: int, day: date) -> list[DailyCheckinResponse]:
        return (
            db.query(DailyCheckinResponse)
            .filter(
                DailyCheckinResponse.user_id == user_id,
                DailyCheckinResponse.protocol_id == protocol_id,
                DailyCheckinResponse.date == day,
            )
            .all()
        )

    @staticmethod
    def get_responses_between(
        db: Session, user_id: int, protocol_id: int, start: date, end: date
    ) -> list[DailyCheckinResponse]:
        return (
            db.query(DailyCheckinResponse)
            .filter(
                DailyCheckinResponse.user_id == user_id,
                DailyCheckinResponse.protocol_id == protocol_id,
                DailyCheckinResponse.date >= start,
                DailyCheckinResponse.date <= end,
            )
            .order_by(DailyCheckinResponse.date.desc(), DailyCheckinResponse.question_id)
            .all()
        )

    @staticmethod
    def list_protocol_responses(db: Session, protocol_id: int, day: Optional[date] = None) -> list[DailyCheckinResponse]:
        query = db.query(DailyCheckinResponse).filter(DailyCheckinResponse.protocol_id == protocol_id)
        if day:
            query = query.filter(DailyCheckinResponse.date == day)
        return query.order_by(DailyCheckinResponse.date.desc(), DailyCheckinResponse.user_id).all()
