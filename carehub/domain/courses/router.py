"""Course router - doctor course authoring and patient course consumption"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_doctor, require_patient
from ...database import get_db
from ...models import User
from .schemas import (
    AssignCourseRequest,
    CompleteLessonRequest,
    CourseCreate,
    CourseListResponse,
    CourseResponse,
    CourseUpdate,
    EnrolmentResponse,
    LessonCompleteResponse,
    PatientCourseDetail,
    PatientCourseSummary,
    PublishRequest,
)
from .service import CourseService

doctor_router = APIRouter(prefix="/doctor/courses", tags=["Courses"])
patient_router = APIRouter(prefix="/patient/courses", tags=["Patient Courses"])


def get_course_service(db: Session = Depends(get_db)) -> CourseService:
    """Dependency injection for CourseService"""
    return CourseService(db)


# ============================================================================
# DOCTOR
# ============================================================================


@doctor_router.get("", response_model=CourseListResponse)
async def list_courses(
    is_published: Optional[bool] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_doctor),
    service: CourseService = Depends(get_course_service),
):
    return service.list_courses(current_user, is_published, limit, offset)


@doctor_router.post("", response_model=CourseResponse, status_code=201)
async def create_course(
    data: CourseCreate,
    current_user: User = Depends(require_doctor),
    service: CourseService = Depends(get_course_service),
):
    return service.create_course(data, current_user)


@doctor_router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int,
    current_user: User = Depends(require_doctor),
    service: CourseService = Depends(get_course_service),
):
    return service.get_course(course_id, current_user)


@doctor_router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    data: CourseUpdate,
    current_user: User = Depends(require_doctor),
    service: CourseService = Depends(get_course_service),
):
    """Sending `modules` replaces all modules and lessons"""
    return service.update_course(course_id, data, current_user)


@doctor_router.put("/{course_id}/publish")
async def publish_course(
    course_id: int,
    data: PublishRequest,
    current_user: User = Depends(require_doctor),
    service: CourseService = Depends(get_course_service),
):
    course = service.set_published(course_id, data.is_published, current_user)
    return {"success": True, "is_published": course.is_published}


@doctor_router.delete("/{course_id}")
async def delete_course(
    course_id: int,
    current_user: User = Depends(require_doctor),
    service: CourseService = Depends(get_course_service),
):
    service.delete_course(course_id, current_user)
    return {"success": True, "message": "Course deleted"}


@doctor_router.post("/{course_id}/assign", response_model=EnrolmentResponse, status_code=201)
async def assign_course(
    course_id: int,
    data: AssignCourseRequest,
    current_user: User = Depends(require_doctor),
    service: CourseService = Depends(get_course_service),
):
    return service.assign_course(course_id, data, current_user)


# ============================================================================
# PATIENT
# ============================================================================


@patient_router.get("", response_model=list[PatientCourseSummary])
async def list_my_courses(
    current_user: User = Depends(require_patient),
    service: CourseService = Depends(get_course_service),
):
    return service.list_patient_courses(current_user)


@patient_router.get("/{course_id}", response_model=PatientCourseDetail)
async def get_my_course(
    course_id: int,
    current_user: User = Depends(require_patient),
    service: CourseService = Depends(get_course_service),
):
    return service.get_patient_course(course_id, current_user)


@patient_router.post("/{course_id}/lessons/{lesson_id}/complete", response_model=LessonCompleteResponse)
async def complete_lesson(
    course_id: int,
    lesson_id: int,
    data: Optional[CompleteLessonRequest] = None,
    current_user: User = Depends(require_patient),
    service: CourseService = Depends(get_course_service),
):
    return service.complete_lesson(course_id, lesson_id, data or CompleteLessonRequest(), current_user)


__all__ = ["doctor_router", "patient_router", "get_course_service"]
