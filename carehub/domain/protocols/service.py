"""Protocol service - Business logic for protocol authoring"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Course, Protocol, ProtocolCourse, ProtocolDay, ProtocolSession, ProtocolTask, User
from ...plan_limits import can_create_protocol
from ...schemas import build_pagination
from .repository import ProtocolRepository
from .schemas import (
    DayIn,
    FromTemplateRequest,
    LinkCourseRequest,
    ProtocolCreate,
    ProtocolListResponse,
    ProtocolSummary,
    ProtocolUpdate,
)
from .templates import PREDEFINED_TEMPLATES, get_predefined_template

logger = logging.getLogger(__name__)


def build_days(days: list[DayIn]) -> list[ProtocolDay]:
    """Turn the nested payload into ORM objects, numbering sessions and tasks by position when omitted"""
    built = []
    for day in days:
        day_obj = ProtocolDay(day_number=day.day_number, title=day.title, description=day.description)
        for s_index, session in enumerate(day.sessions):
            session_obj = ProtocolSession(
                session_number=session.session_number or s_index + 1,
                title=session.title,
                description=session.description,
            )
            for t_index, task in enumerate(session.tasks):
                task_data = task.model_dump()
                if task_data["order_index"] is None:
                    task_data["order_index"] = t_index
                session_obj.tasks.append(ProtocolTask(**task_data))
            day_obj.sessions.append(session_obj)
        built.append(day_obj)
    return built


def _template_days(template_days: list[dict]) -> list[DayIn]:
    """Predefined templates list tasks per day; they go into a single session"""
    return [
        DayIn(
            day_number=day["day_number"],
            title=day.get("title") or f"Day {day['day_number']}",
            sessions=[{"session_number": 1, "title": "Session 1", "tasks": day.get("tasks", [])}],
        )
        for day in template_days
    ]


def _copy_days(protocol: Protocol) -> list[DayIn]:
    return [
        DayIn(
            day_number=day.day_number,
            title=day.title,
            description=day.description,
            sessions=[
                {
                    "session_number": session.session_number,
                    "title": session.title,
                    "description": session.description,
                    "tasks": [
                        {
                            "title": t.title,
                            "description": t.description,
                            "type": t.type,
                            "duration_minutes": t.duration_minutes,
                            "order_index": t.order_index,
                            "has_more_info": t.has_more_info,
                            "video_url": t.video_url,
                            "full_explanation": t.full_explanation,
                            "modal_title": t.modal_title,
                            "modal_button_text": t.modal_button_text,
                            "modal_button_url": t.modal_button_url,
                        }
                        for t in session.tasks
                    ],
                }
                for session in day.sessions
            ],
        )
        for day in protocol.days
    ]


class ProtocolService:
    """Service layer for protocol business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProtocolRepository()

    def list_protocols(
        self,
        user: User,
        is_template: Optional[bool],
        is_active: Optional[bool],
        search: Optional[str],
        limit: int,
        offset: int,
    ) -> ProtocolListResponse:
        protocols, total = self.repo.list_protocols(self.db, user.id, is_template, is_active, search, limit, offset)
        ids = [p.id for p in protocols]
        day_counts = self.repo.count_days(self.db, ids)
        open_counts = self.repo.count_open_prescriptions(self.db, ids)

        summaries = [
            ProtocolSummary(
                id=p.id,
                name=p.name,
                description=p.description,
                duration=p.duration,
                is_active=p.is_active,
                is_template=p.is_template,
                cover_image=p.cover_image,
                created_at=p.created_at,
                days_count=day_counts.get(p.id, 0),
                active_prescriptions=open_counts.get(p.id, 0),
            )
            for p in protocols
        ]
        return ProtocolListResponse(protocols=summaries, pagination=build_pagination(total, limit, offset))

    def get_protocol(self, protocol_id: int, user: User) -> Protocol:
        protocol = self.repo.get_protocol(self.db, protocol_id, user.id)
        if not protocol:
            raise HTTPException(status_code=404, detail="Protocol not found")
        return protocol

    def create_protocol(self, data: ProtocolCreate, user: User) -> Protocol:
        logger.info(f"📥 Creating protocol for doctor {user.id}")

        can_create, error_message = can_create_protocol(user, self.db)
        if not can_create:
            logger.warning(f"⚠️ Doctor {user.id} reached protocol limit: {error_message}")
            raise HTTPException(status_code=403, detail=error_message)

        fields = data.model_dump(exclude={"days"})
        if fields["duration"] is None:
            fields["duration"] = len(data.days) or None

        protocol = Protocol(doctor_id=user.id, **fields)
        protocol.days = build_days(data.days)
        protocol = self.repo.save(self.db, protocol)

        logger.info(f"✅ Protocol {protocol.id} created with {len(data.days)} days")
        return self.get_protocol(protocol.id, user)

    def update_protocol(self, protocol_id: int, data: ProtocolUpdate, user: User) -> Protocol:
        protocol = self.get_protocol(protocol_id, user)

        updates = data.model_dump(exclude_unset=True, exclude={"days"})
        for key, value in updates.items():
            setattr(protocol, key, value)

        if data.days is not None:
            # Old days must be gone before new ones reuse their day numbers
            protocol.days = []
            self.db.flush()
            protocol.days = build_days(data.days)
            logger.info(f"🔄 Protocol {protocol.id} tree replaced with {len(data.days)} days")

        self.repo.save(self.db, protocol)
        return self.get_protocol(protocol.id, user)

    def delete_protocol(self, protocol_id: int, user: User) -> None:
        protocol = self.get_protocol(protocol_id, user)
        protocol.is_active = False
        self.db.commit()
        logger.info(f"🗑️ Protocol {protocol.id} deactivated")

    # ===== TEMPLATES =====

    def list_templates(self, user: User) -> dict:
        return {
            "predefined": PREDEFINED_TEMPLATES,
            "custom": self.repo.list_custom_templates(self.db, user.id),
        }

    def create_from_template(self, data: FromTemplateRequest, user: User) -> Protocol:
        if data.template_name:
            template = get_predefined_template(data.template_name)
            if not template:
                raise HTTPException(status_code=404, detail="Template not found")
            payload = ProtocolCreate(
                name=data.name or template["name"],
                description=template["description"],
                duration=template["duration"],
                days=_template_days(template["days"]),
            )
        elif data.protocol_id:
            source = self.get_protocol(data.protocol_id, user)
            payload = ProtocolCreate(
                name=data.name or f"{source.name} (copy)",
                description=source.description,
                duration=source.duration,
                cover_image=source.cover_image,
                show_doctor_info=source.show_doctor_info,
                modal_title=source.modal_title,
                modal_video_url=source.modal_video_url,
                modal_description=source.modal_description,
                modal_button_text=source.modal_button_text,
                modal_button_url=source.modal_button_url,
                days=_copy_days(source),
            )
        else:
            raise HTTPException(status_code=400, detail="template_name or protocol_id is required")

        return self.create_protocol(payload, user)

    # ===== COURSE LINKS =====

    def list_linked_courses(self, protocol_id: int, user: User) -> list[Course]:
        protocol = self.get_protocol(protocol_id, user)
        return self.repo.list_linked_courses(self.db, protocol.id)

    def link_course(self, protocol_id: int, data: LinkCourseRequest, user: User) -> ProtocolCourse:
        protocol = self.get_protocol(protocol_id, user)
        course = self.repo.get_course(self.db, data.course_id, user.id)
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")
        if self.repo.get_course_link(self.db, protocol.id, course.id):
            raise HTTPException(status_code=409, detail="Course already linked to this protocol")

        link = ProtocolCourse(protocol_id=protocol.id, course_id=course.id, order_index=data.order_index)
        self.db.add(link)
        self.db.commit()
        self.db.refresh(link)
        return link

    def unlink_course(self, protocol_id: int, course_id: int, user: User) -> None:
        protocol = self.get_protocol(protocol_id, user)
        link = self.repo.get_course_link(self.db, protocol.id, course_id)
        if not link:
            raise HTTPException(status_code=404, detail="Course is not linked to this protocol")
        self.db.delete(link)
        self.db.commit()
