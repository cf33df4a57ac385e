"""Protocol router - FastAPI endpoints for doctor protocol authoring"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_doctor
from ...database import get_db
from ...models import User
from .schemas import (
    FromTemplateRequest,
    LinkCourseRequest,
    ProtocolCreate,
    ProtocolListResponse,
    ProtocolResponse,
    ProtocolUpdate,
    TemplateListResponse,
)
from .service import ProtocolService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctor/protocols", tags=["Protocols"])


def get_protocol_service(db: Session = Depends(get_db)) -> ProtocolService:
    """Dependency injection for ProtocolService"""
    return ProtocolService(db)


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/templates", response_model=TemplateListResponse)
async def list_templates(
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    """Built-in templates plus the doctor's own protocols flagged as templates"""
    return service.list_templates(current_user)


@router.post("/from-template", response_model=ProtocolResponse, status_code=201)
async def create_from_template(
    data: FromTemplateRequest,
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    return service.create_from_template(data, current_user)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=ProtocolListResponse)
async def list_protocols(
    is_template: Optional[bool] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    return service.list_protocols(current_user, is_template, is_active, search, limit, offset)


@router.post("", response_model=ProtocolResponse, status_code=201)
async def create_protocol(
    data: ProtocolCreate,
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    return service.create_protocol(data, current_user)


@router.get("/{protocol_id}", response_model=ProtocolResponse)
async def get_protocol(
    protocol_id: int,
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    return service.get_protocol(protocol_id, current_user)


@router.put("/{protocol_id}", response_model=ProtocolResponse)
async def update_protocol(
    protocol_id: int,
    data: ProtocolUpdate,
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    """Update protocol fields; sending `days` replaces the whole day tree"""
    return service.update_protocol(protocol_id, data, current_user)


@router.delete("/{protocol_id}")
async def delete_protocol(
    protocol_id: int,
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    service.delete_protocol(protocol_id, current_user)
    return {"success": True, "message": "Protocol removed"}


# ============================================================================
# LINKED COURSES
# ============================================================================


@router.get("/{protocol_id}/courses")
async def list_linked_courses(
    protocol_id: int,
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    courses = service.list_linked_courses(protocol_id, current_user)
    return [{"id": c.id, "title": c.title, "is_published": c.is_published} for c in courses]


@router.post("/{protocol_id}/courses", status_code=201)
async def link_course(
    protocol_id: int,
    data: LinkCourseRequest,
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    link = service.link_course(protocol_id, data, current_user)
    return {"id": link.id, "protocol_id": link.protocol_id, "course_id": link.course_id}


@router.delete("/{protocol_id}/courses/{course_id}")
async def unlink_course(
    protocol_id: int,
    course_id: int,
    current_user: User = Depends(require_doctor),
    service: ProtocolService = Depends(get_protocol_service),
):
    service.unlink_course(protocol_id, course_id, current_user)
    return {"success": True, "message": "Course unlinked"}


__all__ = ["router", "get_protocol_service"]
