"""Symptom report service"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import SymptomReport, User
from ...schemas import build_pagination
from .repository import SymptomReportRepository
from .schemas import SymptomReportCreate, SymptomReportReview

logger = logging.getLogger(__name__)


class SymptomReportService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = SymptomReportRepository()

    def create_report(self, data: SymptomReportCreate, user: User) -> SymptomReport:
        if not self.repo.has_prescription(self.db, data.protocol_id, user.id):
            raise HTTPException(status_code=404, detail="No prescription for this protocol")

        fields = data.model_dump()
        if fields["report_time"] is None:
            fields["report_time"] = datetime.utcnow()
        report = SymptomReport(user_id=user.id, status="PENDING", **fields)
        self.db.add(report)
        self.db.commit()
        self.db.refresh(report)

        level = logging.WARNING if report.severity >= 8 else logging.INFO
        logger.log(level, f"🩺 Symptom report {report.id} (severity {report.severity}) from user {user.id}")
        return report

    def list_my_reports(self, user: User, protocol_id: Optional[int], limit: int, offset: int) -> dict:
        reports, total = self.repo.list_for_patient(self.db, user.id, protocol_id, limit, offset)
        return {"reports": reports, "pagination": build_pagination(total, limit, offset)}

    def list_doctor_reports(
        self, doctor: User, status: Optional[str], patient_id: Optional[int], limit: int, offset: int
    ) -> dict:
        reports, total = self.repo.list_for_doctor(self.db, doctor.id, status, patient_id, limit, offset)
        return {"reports": reports, "pagination": build_pagination(total, limit, offset)}

    def review_report(self, report_id: int, data: SymptomReportReview, doctor: User) -> SymptomReport:
        report = self.repo.get_for_doctor(self.db, report_id, doctor.id)
        if not report:
            raise HTTPException(status_code=404, detail="Symptom report not found")

        report.status = data.status
        if data.doctor_notes is not None:
            report.doctor_notes = data.doctor_notes
        report.reviewed_at = datetime.utcnow()
        report.reviewed_by = doctor.id
        self.db.commit()
        self.db.refresh(report)
        logger.info(f"✅ Symptom report {report.id} marked {report.status} by doctor {doctor.id}")
        return report
