"""Protocol repository - Database operations for protocols and their day/session/task tree"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import (
    PRESCRIPTION_ACTIVE,
    PRESCRIPTION_PRESCRIBED,
    Course,
    Protocol,
    ProtocolCourse,
    ProtocolDay,
    ProtocolPrescription,
    ProtocolSession,
    ProtocolTask,
)


def protocol_tree_options():
    return selectinload(Protocol.days).selectinload(ProtocolDay.sessions).selectinload(ProtocolSession.tasks)


class ProtocolRepository:
    """Repository for protocol database operations"""

    @staticmethod
    def list_protocols(
        db: Session,
        doctor_id: int,
        is_template: Optional[bool] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Protocol], int]:
        query = db.query(Protocol).filter(Protocol.doctor_id == doctor_id)
        if is_template is not None:
            query = query.filter(Protocol.is_template.is_(is_template))
        if is_active is not None:
            query = query.filter(Protocol.is_active.is_(is_active))
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(func.lower(Protocol.name).like(pattern), func.lower(Protocol.description).like(pattern))
            )

        total = query.count()
        protocols = query.order_by(Protocol.created_at.desc(), Protocol.id.desc()).offset(offset).limit(limit).all()
        return protocols, total

    @staticmethod
    def get_protocol(db: Session, protocol_id: int, doctor_id: Optional[int] = None) -> Optional[Protocol]:
        query = db.query(Protocol).options(protocol_tree_options()).filter(Protocol.id == protocol_id)
        if doctor_id is not None:
            query = query.filter(Protocol.doctor_id == doctor_id)
        return query.first()

    @staticmethod
    def list_custom_templates(db: Session, doctor_id: int) -> list[Protocol]:
        return (
            db.query(Protocol)
            .options(protocol_tree_options())
            .filter(Protocol.doctor_id == doctor_id, Protocol.is_template.is_(True))
            .order_by(Protocol.created_at.desc())
            .all()
        )

    @staticmethod
    def count_days(db: Session, protocol_ids: list[int]) -> dict[int, int]:
        if not protocol_ids:
            return {}
        rows = (
            db.query(ProtocolDay.protocol_id, func.count(ProtocolDay.id))
            .filter(ProtocolDay.protocol_id.in_(protocol_ids))
            .group_by(ProtocolDay.protocol_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def count_open_prescriptions(db: Session, protocol_ids: list[int]) -> dict[int, int]:
        if not protocol_ids:
            return {}
        rows = (
            db.query(ProtocolPrescription.protocol_id, func.count(ProtocolPrescription.id))
            .filter(
                ProtocolPrescription.protocol_id.in_(protocol_ids),
                ProtocolPrescription.status.in_([PRESCRIPTION_PRESCRIBED, PRESCRIPTION_ACTIVE]),
            )
            .group_by(ProtocolPrescription.protocol_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def save(db: Session, protocol: Protocol) -> Protocol:
        db.add(protocol)
        db.commit()
        db.refresh(protocol)
        return protocol

    @staticmethod
    def count_tasks(db: Session, protocol_id: int) -> int:
        return (
            db.query(func.count(ProtocolTask.id))
            .join(ProtocolSession, ProtocolTask.session_id == ProtocolSession.id)
            .join(ProtocolDay, ProtocolSession.day_id == ProtocolDay.id)
            .filter(ProtocolDay.protocol_id == protocol_id)
            .scalar()
        )

    # ===== COURSE LINKS =====

    @staticmethod
    def get_course(db: Session, course_id: int, doctor_id: int) -> Optional[Course]:
        return db.query(Course).filter(Course.id == course_id, Course.doctor_id == doctor_id).first()

    @staticmethod
    def get_course_link(db: Session, protocol_id: int, course_id: int) -> Optional[ProtocolCourse]:
        return (
            db.query(ProtocolCourse)
            .filter(ProtocolCourse.protocol_id == protocol_id, ProtocolCourse.course_id == course_id)
            .first()
        )

    @staticmethod
    def list_linked_courses(db: Session, protocol_id: int) -> list[Course]:
        return (
            db.query(Course)
            .join(ProtocolCourse, ProtocolCourse.course_id == Course.id)
            .filter(ProtocolCourse.protocol_id == protocol_id)
            .order_by(ProtocolCourse.order_index)
            .all()
        )
