"""Course repository - Database operations for courses, enrolments and lesson completion"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ...models import (
    PRESCRIPTION_ACTIVE,
    Course,
    CourseModule,
    DoctorPatientRelationship,
    Lesson,
    ProtocolCourse,
    ProtocolPrescription,
    User,
    UserCourse,
    UserLesson,
)


def course_tree_options():
    return selectinload(Course.modules).selectinload(CourseModule.lessons)


class CourseRepository:
    """Repository for course database operations"""

    # ===== DOCTOR =====

    @staticmethod
    def list_courses(
        db: Session, doctor_id: int, is_published: Optional[bool], limit: int, offset: int
    ) -> tuple[list[Course], int]:
        query = db.query(Course).filter(Course.doctor_id == doctor_id)
        if is_published is not None:
            query = query.filter(Course.is_published.is_(is_published))
        total = query.count()
        courses = (
            query.options(course_tree_options())
            .order_by(Course.created_at.desc(), Course.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return courses, total

    @staticmethod
    def get_owned(db: Session, course_id: int, doctor_id: int) -> Optional[Course]:
        return (
            db.query(Course)
            .options(course_tree_options())
            .filter(Course.id == course_id, Course.doctor_id == doctor_id)
            .first()
        )

    @staticmethod
    def get_related_patient(db: Session, doctor_id: int, patient_id: int) -> Optional[User]:
        return (
            db.query(User)
            .join(DoctorPatientRelationship, DoctorPatientRelationship.patient_id == User.id)
            .filter(
                User.id == patient_id,
                DoctorPatientRelationship.doctor_id == doctor_id,
                DoctorPatientRelationship.is_active.is_(True),
            )
            .first()
        )

    # ===== PATIENT ACCESS =====

    @staticmethod
    def get_course(db: Session, course_id: int) -> Optional[Course]:
        return db.query(Course).options(course_tree_options()).filter(Course.id == course_id).first()

    @staticmethod
    def get_enrolment(db: Session, user_id: int, course_id: int) -> Optional[UserCourse]:
        return db.query(UserCourse).filter(UserCourse.user_id == user_id, UserCourse.course_id == course_id).first()

    @staticmethod
    def list_enrolments(db: Session, user_id: int) -> list[UserCourse]:
        return db.query(UserCourse).filter(UserCourse.user_id == user_id).all()

    @staticmethod
    def prescribed_course_ids(db: Session, user_id: int) -> set[int]:
        """Courses linked to the protocols of the user's ACTIVE prescriptions"""
        rows = (
            db.query(ProtocolCourse.course_id)
            .join(ProtocolPrescription, ProtocolPrescription.protocol_id == ProtocolCourse.protocol_id)
            .filter(ProtocolPrescription.user_id == user_id, ProtocolPrescription.status == PRESCRIPTION_ACTIVE)
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def list_published(db: Session, course_ids: set[int]) -> list[Course]:
        if not course_ids:
            return []
        return (
            db.query(Course)
            .options(course_tree_options())
            .filter(Course.id.in_(course_ids), Course.is_published.is_(True))
            .order_by(Course.title)
            .all()
        )

    @staticmethod
    def get_patient_prescription(db: Session, prescription_id: int, user_id: int) -> Optional[ProtocolPrescription]:
        return (
            db.query(ProtocolPrescription)
            .filter(ProtocolPrescription.id == prescription_id, ProtocolPrescription.user_id == user_id)
            .first()
        )

    # ===== LESSONS =====

    @staticmethod
    def get_lesson_in_course(db: Session, lesson_id: int, course_id: int) -> Optional[Lesson]:
        return (
            db.query(Lesson)
            .join(CourseModule, Lesson.module_id == CourseModule.id)
            .filter(Lesson.id == lesson_id, CourseModule.course_id == course_id)
            .first()
        )

    @staticmethod
    def count_lessons(db: Session, course_id: int) -> int:
        return (
            db.query(func.count(Lesson.id))
            .join(CourseModule, Lesson.module_id == CourseModule.id)
            .filter(CourseModule.course_id == course_id)
            .scalar()
        )

    @staticmethod
    def completed_lesson_ids(db: Session, user_id: int, course_id: int) -> set[int]:
        rows = (
            db.query(UserLesson.lesson_id)
            .join(Lesson, UserLesson.lesson_id == Lesson.id)
            .join(CourseModule, Lesson.module_id == CourseModule.id)
            .filter(
                UserLesson.user_id == user_id,
                CourseModule.course_id == course_id,
                UserLesson.completed_at.isnot(None),
            )
            .all()
        )
        return {row[0] for row in rows}

    @staticmethod
    def get_user_lesson(db: Session, user_id: int, lesson_id: int) -> Optional[UserLesson]:
        return db.query(UserLesson).filter(UserLesson.user_id == user_id, UserLesson.lesson_id == lesson_id).first()
