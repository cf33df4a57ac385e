from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Roles
ROLE_DOCTOR = "DOCTOR"
ROLE_PATIENT = "PATIENT"
ROLE_SUPER_ADMIN = "SUPER_ADMIN"

# Prescription statuses
PRESCRIPTION_PRESCRIBED = "PRESCRIBED"
PRESCRIPTION_ACTIVE = "ACTIVE"
PRESCRIPTION_PAUSED = "PAUSED"
PRESCRIPTION_ABANDONED = "ABANDONED"
PRESCRIPTION_COMPLETED = "COMPLETED"

# Task progress statuses
TASK_PENDING = "PENDING"
TASK_COMPLETED = "COMPLETED"
TASK_MISSED = "MISSED"
TASK_POSTPONED = "POSTPONED"
TASK_STATUSES = (TASK_PENDING, TASK_COMPLETED, TASK_MISSED, TASK_POSTPONED)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)  # null until the patient sets one
    role = Column(String(20), nullable=False, default=ROLE_PATIENT, index=True)
    phone = Column(String(50), nullable=True)
    image = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Patient's primary doctor, used to validate referral codes
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    referral_code = Column(String(10), unique=True, nullable=True, index=True)

    # Password reset (sha256 of the token sent by e-mail)
    reset_token = Column(String(64), nullable=True, index=True)
    reset_token_expiry = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("User", remote_side=[id])
    protocols = relationship("Protocol", back_populates="doctor")
    habits = relationship("Habit", back_populates="user", cascade="all, delete-orphan")


class DoctorPatientRelationship(Base):
    __tablename__ = "doctor_patient_relationships"
    __table_args__ = (UniqueConstraint("doctor_id", "patient_id", name="uq_doctor_patient"),)

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    start_date = Column(DateTime, server_default=func.now())
    end_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    patient = relationship("User", foreign_keys=[patient_id])


# ============================================================================
# CLINICS & SUBSCRIPTIONS
# ============================================================================


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, default=0, nullable=False)
    billing_cycle = Column(String(20), default="MONTHLY", nullable=False)
    max_doctors = Column(Integer, default=1, nullable=False)
    max_patients = Column(Integer, nullable=True)
    max_protocols = Column(Integer, nullable=True)
    max_courses = Column(Integer, nullable=True)
    trial_days = Column(Integer, default=30, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    subscriptions = relationship("ClinicSubscription", back_populates="plan")


class Clinic(Base):
    __tablename__ = "clinics"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    logo = Column(String(500), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(500), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User")
    members = relationship("ClinicMember", back_populates="clinic", cascade="all, delete-orphan")
    subscription = relationship(
        "ClinicSubscription", back_populates="clinic", uselist=False, cascade="all, delete-orphan"
    )


class ClinicMember(Base):
    __tablename__ = "clinic_members"
    __table_args__ = (UniqueConstraint("clinic_id", "user_id", name="uq_clinic_member"),)

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), default="DOCTOR", nullable=False)  # ADMIN, DOCTOR, VIEWER
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime, server_default=func.now())

    clinic = relationship("Clinic", back_populates="members")
    user = relationship("User")


class ClinicSubscription(Base):
    __tablename__ = "clinic_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id", ondelete="CASCADE"), unique=True, nullable=False)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    status = Column(String(20), default="TRIAL", nullable=False)  # TRIAL, ACTIVE, PAST_DUE, CANCELLED, EXPIRED
    max_doctors = Column(Integer, default=1, nullable=False)
    start_date = Column(DateTime, server_default=func.now())
    end_date = Column(DateTime, nullable=True)
    trial_end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="subscription")
    plan = relationship("SubscriptionPlan", back_populates="subscriptions")


# ============================================================================
# PROTOCOLS
# ============================================================================


class Protocol(Base):
    __tablename__ = "protocols"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=True)  # days
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_template = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    show_doctor_info = Column(Boolean, default=True, nullable=False)
    cover_image = Column(String(500), nullable=True)
    consultation_date = Column(DateTime, nullable=True)

    # Intro modal shown to the patient
    modal_title = Column(String(255), nullable=True)
    modal_video_url = Column(String(500), nullable=True)
    modal_description = Column(Text, nullable=True)
    modal_button_text = Column(String(100), nullable=True)
    modal_button_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("User", back_populates="protocols")
    days = relationship(
        "ProtocolDay",
        back_populates="protocol",
        cascade="all, delete-orphan",
        order_by="ProtocolDay.day_number",
    )
    prescriptions = relationship("ProtocolPrescription", back_populates="protocol", cascade="all, delete-orphan")
    checkin_questions = relationship(
        "DailyCheckinQuestion",
        back_populates="protocol",
        cascade="all, delete-orphan",
        order_by="DailyCheckinQuestion.order",
    )
    course_links = relationship("ProtocolCourse", back_populates="protocol", cascade="all, delete-orphan")


class ProtocolDay(Base):
    __tablename__ = "protocol_days"
    __table_args__ = (UniqueConstraint("protocol_id", "day_number", name="uq_protocol_day"),)

    id = Column(Integer, primary_key=True, index=True)
    protocol_id = Column(Integer, ForeignKey("protocols.id", ondelete="CASCADE"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    protocol = relationship("Protocol", back_populates="days")
    sessions = relationship(
        "ProtocolSession",
        back_populates="day",
        cascade="all, delete-orphan",
        order_by="ProtocolSession.session_number",
    )


class ProtocolSession(Base):
    __tablename__ = "protocol_sessions"

    id = Column(Integer, primary_key=True, index=True)
    day_id = Column(Integer, ForeignKey("protocol_days.id", ondelete="CASCADE"), nullable=False, index=True)
    session_number = Column(Integer, nullable=False, default=1)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    day = relationship("ProtocolDay", back_populates="sessions")
    tasks = relationship(
        "ProtocolTask",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ProtocolTask.order_index",
    )


class ProtocolTask(Base):
    __tablename__ = "protocol_tasks"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("protocol_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(50), default="task", nullable=False)
    duration_minutes = Column(Integer, nullable=True)
    order_index = Column(Integer, default=0, nullable=False)
    has_more_info = Column(Boolean, default=False, nullable=False)
    video_url = Column(String(500), nullable=True)
    full_explanation = Column(Text, nullable=True)
    modal_title = Column(String(255), nullable=True)
    modal_button_text = Column(String(100), nullable=True)
    modal_button_url = Column(String(500), nullable=True)

    session = relationship("ProtocolSession", back_populates="tasks")


class ProtocolPrescription(Base):
    __tablename__ = "protocol_prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    protocol_id = Column(Integer, ForeignKey("protocols.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    prescribed_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    prescribed_at = Column(DateTime, server_default=func.now())

    planned_start_date = Column(DateTime, nullable=False)
    planned_end_date = Column(DateTime, nullable=True)
    actual_start_date = Column(DateTime, nullable=True)
    actual_end_date = Column(DateTime, nullable=True)
    consultation_date = Column(DateTime, nullable=True)

    status = Column(String(20), default=PRESCRIPTION_PRESCRIBED, nullable=False, index=True)
    current_day = Column(Integer, default=1, nullable=False)
    adherence_rate = Column(Float, default=0, nullable=False)
    last_progress_date = Column(DateTime, nullable=True)

    paused_at = Column(DateTime, nullable=True)
    pause_reason = Column(Text, nullable=True)
    abandoned_at = Column(DateTime, nullable=True)
    abandon_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    protocol = relationship("Protocol", back_populates="prescriptions")
    patient = relationship("User", foreign_keys=[user_id])
    doctor = relationship("User", foreign_keys=[prescribed_by])
    progress = relationship("ProtocolTaskProgress", back_populates="prescription", cascade="all, delete-orphan")


class ProtocolTaskProgress(Base):
    __tablename__ = "protocol_task_progress"
    __table_args__ = (
        UniqueConstraint("prescription_id", "task_id", "scheduled_date", name="uq_task_progress_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(
        Integer, ForeignKey("protocol_prescriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task_id = Column(Integer, ForeignKey("protocol_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    status = Column(String(20), default=TASK_PENDING, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    prescription = relationship("ProtocolPrescription", back_populates="progress")
    task = relationship("ProtocolTask")


# ============================================================================
# DAILY CHECK-INS
# ============================================================================


class DailyCheckinQuestion(Base):
    __tablename__ = "daily_checkin_questions"

    id = Column(Integer, primary_key=True, index=True)
    protocol_id = Column(Integer, ForeignKey("protocols.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    type = Column(String(30), nullable=False)  # MULTIPLE_CHOICE, SCALE, TEXT, YES_NO
    options = Column(JSON, nullable=True)
    is_required = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    protocol = relationship("Protocol", back_populates="checkin_questions")


class DailyCheckinResponse(Base):
    __tablename__ = "daily_checkin_responses"
    __table_args__ = (UniqueConstraint("question_id", "user_id", "date", name="uq_checkin_answer_day"),)

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer, ForeignKey("daily_checkin_questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    protocol_id = Column(Integer, ForeignKey("protocols.id", ondelete="CASCADE"), nullable=False, index=True)
    answer = Column(Text, nullable=False)
    date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    question = relationship("DailyCheckinQuestion")
    user = relationship("User")


# ============================================================================
# HABITS
# ============================================================================


class Habit(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    category = Column(String(50), default="personal", nullable=False)
    order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="habits")
    progress = relationship(
        "HabitProgress", back_populates="habit", cascade="all, delete-orphan", order_by="HabitProgress.date"
    )


class HabitProgress(Base):
    __tablename__ = "habit_progress"
    __table_args__ = (UniqueConstraint("habit_id", "date", name="uq_habit_day"),)

    id = Column(Integer, primary_key=True, index=True)
    habit_id = Column(Integer, ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    is_checked = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    habit = relationship("Habit", back_populates="progress")


# ============================================================================
# COURSES
# ============================================================================


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    cover_image = Column(String(500), nullable=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_published = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    modules = relationship(
        "CourseModule", back_populates="course", cascade="all, delete-orphan", order_by="CourseModule.order_index"
    )
    protocol_links = relationship("ProtocolCourse", back_populates="course", cascade="all, delete-orphan")


class CourseModule(Base):
    __tablename__ = "course_modules"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, default=0, nullable=False)

    course = relationship("Course", back_populates="modules")
    lessons = relationship(
        "Lesson", back_populates="module", cascade="all, delete-orphan", order_by="Lesson.order_index"
    )


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    module_id = Column(Integer, ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    video_url = Column(String(500), nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    order_index = Column(Integer, default=0, nullable=False)

    module = relationship("CourseModule", back_populates="lessons")


class ProtocolCourse(Base):
    __tablename__ = "protocol_courses"
    __table_args__ = (UniqueConstraint("protocol_id", "course_id", name="uq_protocol_course"),)

    id = Column(Integer, primary_key=True, index=True)
    protocol_id = Column(Integer, ForeignKey("protocols.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    order_index = Column(Integer, default=0, nullable=False)

    protocol = relationship("Protocol", back_populates="course_links")
    course = relationship("Course", back_populates="protocol_links")


class UserCourse(Base):
    __tablename__ = "user_courses"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_user_course"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), default="ENROLLED", nullable=False)  # ENROLLED, IN_PROGRESS, COMPLETED
    progress = Column(Integer, default=0, nullable=False)
    started_at = Column(DateTime, server_default=func.now())
    completed_at = Column(DateTime, nullable=True)

    course = relationship("Course")


class UserLesson(Base):
    __tablename__ = "user_lessons"
    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)

    lesson = relationship("Lesson")


# ============================================================================
# REFERRALS
# ============================================================================


class ReferralLead(Base):
    __tablename__ = "referral_leads"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    status = Column(String(20), default="PENDING", nullable=False, index=True)
    source = Column(String(50), default="PATIENT_REFERRAL", nullable=False)
    notes = Column(Text, nullable=True)
    referral_code = Column(String(10), unique=True, nullable=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    referrer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    last_contact_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    referrer = relationship("User", foreign_keys=[referrer_id])
    credits = relationship("ReferralCredit", back_populates="lead")


class PatientReferral(Base):
    """A patient's referral made from within one of their prescriptions."""

    __tablename__ = "patient_referrals"

    id = Column(Integer, primary_key=True, index=True)
    lead_id = Column(Integer, ForeignKey("referral_leads.id", ondelete="CASCADE"), nullable=False, index=True)
    prescription_id = Column(
        Integer, ForeignKey("protocol_prescriptions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    referrer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    valid_until = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    lead = relationship("ReferralLead")


class ReferralCredit(Base):
    __tablename__ = "referral_credits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    referral_lead_id = Column(Integer, ForeignKey("referral_leads.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Integer, default=1, nullable=False)
    type = Column(String(30), default="SUCCESSFUL_REFERRAL", nullable=False)
    status = Column(String(20), default="AVAILABLE", nullable=False)  # AVAILABLE, USED, EXPIRED
    description = Column(Text, nullable=True)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    lead = relationship("ReferralLead", back_populates="credits")


# ============================================================================
# SYMPTOM REPORTS & APPOINTMENTS
# ============================================================================


class SymptomReport(Base):
    __tablename__ = "symptom_reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    protocol_id = Column(Integer, ForeignKey("protocols.id", ondelete="CASCADE"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    symptoms = Column(Text, nullable=False)
    severity = Column(Integer, default=1, nullable=False)
    is_now = Column(Boolean, default=True, nullable=False)
    report_time = Column(DateTime, nullable=True)
    status = Column(String(30), default="PENDING", nullable=False, index=True)
    doctor_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    protocol = relationship("Protocol")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), default="SCHEDULED", nullable=False)
    google_event_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    patient = relationship("User", foreign_keys=[patient_id])


class GoogleCalendarIntegration(Base):
    """One per doctor; tokens are Fernet-encrypted at rest"""

    __tablename__ = "google_calendar_integrations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    token_expires_at = Column(DateTime, nullable=False)
    google_user_email = Column(String(255), nullable=True)
    google_calendar_id = Column(String(500), nullable=True, default="primary")
    auto_sync_enabled = Column(Boolean, default=True)
    default_appointment_duration = Column(Integer, default=60)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User")
