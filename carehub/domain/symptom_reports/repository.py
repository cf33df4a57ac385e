"""Symptom report repository"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Protocol, ProtocolPrescription, SymptomReport


class SymptomReportRepository:
    """Repository for symptom report database operations"""

    @staticmethod
    def has_prescription(db: Session, protocol_id: int, user_id: int) -> bool:
        return (
            db.query(ProtocolPrescription.id)
            .filter(ProtocolPrescription.protocol_id == protocol_id, ProtocolPrescription.user_id == user_id)
            .first()
            is not None
        )

    @staticmethod
    def list_for_patient(
        db: Session, user_id: int, protocol_id: Optional[int], limit: int, offset: int
    ) -> tuple[list[SymptomReport], int]:
        query = db.query(SymptomReport).filter(SymptomReport.user_id == user_id)
        if protocol_id:
            query = query.filter(SymptomReport.protocol_id == protocol_id)
        total = query.count()
        reports = query.order_by(SymptomReport.created_at.desc(), SymptomReport.id.desc()).offset(offset).limit(limit).all()
        return reports, total

    @staticmethod
    def list_for_doctor(
        db: Session, doctor_id: int, status: Optional[str], patient_id: Optional[int], limit: int, offset: int
    ) -> tuple[list[SymptomReport], int]:
        query = (
            db.query(SymptomReport)
            .join(Protocol, SymptomReport.protocol_id == Protocol.id)
            .filter(Protocol.doctor_id == doctor_id)
        )
        if status:
            query = query.filter(SymptomReport.status == status)
        if patient_id:
            query = query.filter(SymptomReport.user_id == patient_id)
        total = query.count()
        reports = (
            query.options(joinedload(SymptomReport.user), joinedload(SymptomReport.protocol))
            .order_by(SymptomReport.created_at.desc(), SymptomReport.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return reports, total

    @staticmethod
    def get_for_doctor(db: Session, report_id: int, doctor_id: int) -> Optional[SymptomReport]:
        return (
            db.query(SymptomReport)
            .join(Protocol, SymptomReport.protocol_id == Protocol.id)
            .options(joinedload(SymptomReport.user), joinedload(SymptomReport.protocol))
            .filter(SymptomReport.id == report_id, Protocol.doctor_id == doctor_id)
            .first()
        )
