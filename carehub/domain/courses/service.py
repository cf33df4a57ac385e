"""Course service - course authoring for doctors, access and progress for patients"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Course, CourseModule, Lesson, User, UserCourse, UserLesson
from ...plan_limits import can_create_course
from ...schemas import build_pagination
from ..prescriptions.progress import round_half_up
from .repository import CourseRepository
from .schemas import AssignCourseRequest, CompleteLessonRequest, CourseCreate, CourseUpdate, ModuleIn

logger = logging.getLogger(__name__)


def build_modules(modules: list[ModuleIn]) -> list[CourseModule]:
    built = []
    for m_index, module in enumerate(modules):
        module_obj = CourseModule(
            title=module.title,
            description=module.description,
            order_index=module.order_index if module.order_index is not None else m_index,
        )
        for l_index, lesson in enumerate(module.lessons):
            lesson_data = lesson.model_dump()
            if lesson_data["order_index"] is None:
                lesson_data["order_index"] = l_index
            module_obj.lessons.append(Lesson(**lesson_data))
        built.append(module_obj)
    return built


def course_progress(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(completed / total * 100)


class CourseService:
    """Service layer for courses"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CourseRepository()

    # ========================================================================
    # DOCTOR
    # ========================================================================

    def list_courses(self, doctor: User, is_published: Optional[bool], limit: int, offset: int) -> dict:
        courses, total = self.repo.list_courses(self.db, doctor.id, is_published, limit, offset)
        return {"courses": courses, "pagination": build_pagination(total, limit, offset)}

    def get_course(self, course_id: int, doctor: User) -> Course:
        course = self.repo.get_owned(self.db, course_id, doctor.id)
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")
        return course

    def create_course(self, data: CourseCreate, doctor: User) -> Course:
        allowed, message = can_create_course(doctor, self.db)
        if not allowed:
            logger.warning(f"⚠️ Doctor {doctor.id} reached course limit: {message}")
            raise HTTPException(status_code=403, detail=message)

        course = Course(doctor_id=doctor.id, **data.model_dump(exclude={"modules"}))
        course.modules = build_modules(data.modules)
        self.db.add(course)
        self.db.commit()
        logger.info(f"✅ Course {course.id} created with {len(data.modules)} modules")
        return self.get_course(course.id, doctor)

    def update_course(self, course_id: int, data: CourseUpdate, doctor: User) -> Course:
        course = self.get_course(course_id, doctor)
        for key, value in data.model_dump(exclude_unset=True, exclude={"modules"}).items():
            setattr(course, key, value)

        if data.modules is not None:
            course.modules = []
            self.db.flush()
            course.modules = build_modules(data.modules)
            logger.info(f"🔄 Course {course.id} content replaced with {len(data.modules)} modules")

        self.db.commit()
        return self.get_course(course.id, doctor)

    def set_published(self, course_id: int, is_published: bool, doctor: User) -> Course:
        course = self.get_course(course_id, doctor)
        course.is_published = is_published
        self.db.commit()
        logger.info(f"📢 Course {course.id} {'published' if is_published else 'unpublished'}")
        return course

    def delete_course(self, course_id: int, doctor: User) -> None:
        course = self.get_course(course_id, doctor)
        self.db.delete(course)
        self.db.commit()
        logger.info(f"🗑️ Course {course_id} deleted")

    def assign_course(self, course_id: int, data: AssignCourseRequest, doctor: User) -> UserCourse:
        course = self.get_course(course_id, doctor)
        patient = self.repo.get_related_patient(self.db, doctor.id, data.patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")

        enrolment = self.repo.get_enrolment(self.db, patient.id, course.id)
        if enrolment:
            return enrolment

        enrolment = UserCourse(user_id=patient.id, course_id=course.id, status="ENROLLED", progress=0)
        self.db.add(enrolment)
        self.db.commit()
        self.db.refresh(enrolment)
        logger.info(f"🎓 Course {course.id} assigned to patient {patient.id}")
        return enrolment

    # ========================================================================
    # PATIENT
    # ========================================================================

    def _accessible_course_ids(self, user: User) -> set[int]:
        enrolled = {e.course_id for e in self.repo.list_enrolments(self.db, user.id)}
        return enrolled | self.repo.prescribed_course_ids(self.db, user.id)

    def _accessible_course(self, course_id: int, user: User) -> Course:
        course = self.repo.get_course(self.db, course_id)
        if not course or not course.is_published or course.id not in self._accessible_course_ids(user):
            raise HTTPException(status_code=404, detail="Course not found")
        return course

    def list_patient_courses(self, user: User) -> list[dict]:
        enrolments = {e.course_id: e for e in self.repo.list_enrolments(self.db, user.id)}
        courses = self.repo.list_published(self.db, self._accessible_course_ids(user))

        summaries = []
        for course in courses:
            total = sum(len(m.lessons) for m in course.modules)
            completed = len(self.repo.completed_lesson_ids(self.db, user.id, course.id))
            enrolment = enrolments.get(course.id)
            summaries.append(
                {
                    "id": course.id,
                    "title": course.title,
                    "description": course.description,
                    "cover_image": course.cover_image,
                    "totalLessons": total,
                    "completedLessons": completed,
                    "progress": course_progress(completed, total),
                    "status": enrolment.status if enrolment else "NOT_STARTED",
                }
            )
        return summaries

    def get_patient_course(self, course_id: int, user: User) -> dict:
        course = self._accessible_course(course_id, user)
        done = self.repo.completed_lesson_ids(self.db, user.id, course.id)
        enrolment = self.repo.get_enrolment(self.db, user.id, course.id)
        total = sum(len(m.lessons) for m in course.modules)

        return {
            "id": course.id,
            "title": course.title,
            "description": course.description,
            "cover_image": course.cover_image,
            "progress": course_progress(len(done), total),
            "status": enrolment.status if enrolment else "NOT_STARTED",
            "modules": [
                {
                    "id": m.id,
                    "title": m.title,
                    "description": m.description,
                    "order_index": m.order_index,
                    "lessons": [
                        {
                            "id": lesson.id,
                            "title": lesson.title,
                            "content": lesson.content,
                            "video_url": lesson.video_url,
                            "duration_minutes": lesson.duration_minutes,
                            "order_index": lesson.order_index,
                            "isCompleted": lesson.id in done,
                        }
                        for lesson in m.lessons
                    ],
                }
                for m in course.modules
            ],
        }

    def complete_lesson(self, course_id: int, lesson_id: int, data: CompleteLessonRequest, user: User) -> dict:
        if data.prescription_id and not self.repo.get_patient_prescription(self.db, data.prescription_id, user.id):
            raise HTTPException(status_code=404, detail="Prescription not found")

        course = self._accessible_course(course_id, user)
        lesson = self.repo.get_lesson_in_course(self.db, lesson_id, course.id)
        if not lesson:
            raise HTTPException(status_code=404, detail="Lesson not found in this course")

        now = datetime.utcnow()
        enrolment = self.repo.get_enrolment(self.db, user.id, course.id)
        if not enrolment:
            enrolment = UserCourse(user_id=user.id, course_id=course.id, status="IN_PROGRESS", progress=0)
            self.db.add(enrolment)

        user_lesson = self.repo.get_user_lesson(self.db, user.id, lesson.id)
        if user_lesson:
            user_lesson.completed_at = user_lesson.completed_at or now
        else:
            self.db.add(UserLesson(user_id=user.id, lesson_id=lesson.id, completed_at=now))
        self.db.flush()

        total = self.repo.count_lessons(self.db, course.id)
        completed = len(self.repo.completed_lesson_ids(self.db, user.id, course.id))
        enrolment.progress = course_progress(completed, total)
        if enrolment.progress >= 100:
            enrolment.status = "COMPLETED"
            enrolment.completed_at = enrolment.completed_at or now
        else:
            enrolment.status = "IN_PROGRESS"

        self.db.commit()
        self.db.refresh(enrolment)
        logger.info(f"📚 User {user.id} completed lesson {lesson.id} ({enrolment.progress}% of course {course.id})")

        return {
            "success": True,
            "lesson_id": lesson.id,
            "progress": enrolment.progress,
            "status": enrolment.status,
            "completed_at": enrolment.completed_at,
        }
