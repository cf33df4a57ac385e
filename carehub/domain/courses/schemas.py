"""Course domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictBool, field_validator

from ...schemas import Pagination
from ...security_utils import sanitize_html


class LessonIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    video_url: Optional[str] = Field(None, max_length=500)
    duration_minutes: Optional[int] = Field(None, ge=0)
    order_index: Optional[int] = None

    @field_validator("content")
    @classmethod
    def clean_content(cls, v):
        return sanitize_html(v) if v else v


class ModuleIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = None
    lessons: list[LessonIn] = []


class CourseCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    cover_image: Optional[str] = Field(None, max_length=500)
    is_published: bool = False
    modules: list[ModuleIn] = []

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    cover_image: Optional[str] = Field(None, max_length=500)
    is_published: Optional[bool] = None
    modules: Optional[list[ModuleIn]] = None


class PublishRequest(BaseModel):
    is_published: StrictBool


class AssignCourseRequest(BaseModel):
    patient_id: int


class CompleteLessonRequest(BaseModel):
    prescription_id: Optional[int] = None


class LessonResponse(BaseModel):
    id: int
    title: str
    content: Optional[str] = None
    video_url: Optional[str] = None
    duration_minutes: Optional[int] = None
    order_index: int

    class Config:
        from_attributes = True


class ModuleResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    order_index: int
    lessons: list[LessonResponse] = []

    class Config:
        from_attributes = True


class CourseResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    is_published: bool
    doctor_id: int
    created_at: Optional[datetime] = None
    modules: list[ModuleResponse] = []

    class Config:
        from_attributes = True


class CourseListResponse(BaseModel):
    courses: list[CourseResponse]
    pagination: Pagination


class EnrolmentResponse(BaseModel):
    id: int
    user_id: int
    course_id: int
    status: str
    progress: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PatientCourseSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    totalLessons: int
    completedLessons: int
    progress: int
    status: str


class PatientLesson(LessonResponse):
    isCompleted: bool = False


class PatientModule(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    order_index: int
    lessons: list[PatientLesson]


class PatientCourseDetail(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    progress: int
    status: str
    modules: list[PatientModule]


class LessonCompleteResponse(BaseModel):
    success: bool = True
    lesson_id: int
    progress: int
    status: str
    completed_at: Optional[datetime] = None
