from datetime import datetime, time
from enum import Enum as PyEnum

from sqlalchemy import (
    Enum, ForeignKey, UniqueConstraint, Index, Boolean, DateTime, Time,
    Integer, JSON
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from flask_login import UserMixin

from extensions import db
from blueprints.planning.dto import ClassKind

# ---------- Enums ----------
class StaffRole(PyEnum):
    DIRECTOR = "DIRECTOR"
    VICE_DIRECTOR = "VICE_DIRECTOR"
    SUPERVISOR = "SUPERVISOR"
    TEACHER = "TEACHER"

MANAGER_ROLES = (StaffRole.DIRECTOR, StaffRole.VICE_DIRECTOR, StaffRole.SUPERVISOR)

class UserStatus(PyEnum):
    APPROVED = "APPROVED"
    PENDING = "PENDING"
    DENIED = "DENIED"


# ---------- Core Entities ----------
class User(UserMixin, db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    role: Mapped[StaffRole] = mapped_column(Enum(StaffRole), nullable=False, default=StaffRole.TEACHER, index=True)
    status: Mapped[UserStatus] = mapped_column(Enum(UserStatus), nullable=False, default=UserStatus.PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    commitments = relationship("Commitment", back_populates="teacher", cascade="all, delete-orphan")

    @property
    def is_active(self):
        return self.status == UserStatus.APPROVED

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    def __repr__(self):
        return f"<User {self.email}>"


class Subject(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False, unique=True)

    def __repr__(self):
        return f"<Subject {self.name}>"


class SchoolClass(db.Model):
    __tablename__ = "school_class"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False, unique=True)
    kind: Mapped[ClassKind] = mapped_column(Enum(ClassKind), nullable=False, default=ClassKind.PARTIAL)
    has_timetable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    day_start: Mapped[time] = mapped_column(Time, nullable=False)
    day_end: Mapped[time] = mapped_column(Time, nullable=False)
    break_start: Mapped[time] = mapped_column(Time, nullable=False)
    break_end: Mapped[time] = mapped_column(Time, nullable=False)
    # только для FULL
    lunch_start: Mapped[time | None] = mapped_column(Time)
    lunch_end: Mapped[time | None] = mapped_column(Time)
    second_break_start: Mapped[time | None] = mapped_column(Time)
    second_break_end: Mapped[time | None] = mapped_column(Time)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    assignments = relationship("ClassAssignment", back_populates="school_class", cascade="all, delete-orphan")
    lessons = relationship("Lesson", back_populates="school_class", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<SchoolClass {self.name}>"


class ClassAssignment(db.Model):
    """Предмет → преподаватель → кол-во уроков в неделю, в рамках одного класса."""
    id: Mapped[int] = mapped_column(primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("school_class.id", ondelete="CASCADE"), nullable=False)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subject.id", ondelete="CASCADE"), nullable=False)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    weekly_lessons: Mapped[int] = mapped_column(Integer, nullable=False)

    school_class = relationship("SchoolClass", back_populates="assignments")
    subject = relationship("Subject")
    teacher = relationship("User")

    __table_args__ = (
        UniqueConstraint("class_id", "subject_id", name="uq_class_assignment_subject"),
    )


class Commitment(db.Model):
    """Постоянное обязательство преподавателя вне школы (блокирует уроки)."""
    id: Mapped[int] = mapped_column(primary_key=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    place: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    weekdays: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # 0=Mon .. 6=Sun
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    teacher = relationship("User", back_populates="commitments")


class Lesson(db.Model):
    id: Mapped[int] = mapped_column(primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("school_class.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id: Mapped[int] = mapped_column(ForeignKey("subject.id", ondelete="RESTRICT"), nullable=False)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Mon .. 4=Fri
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_generated: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    school_class = relationship("SchoolClass", back_populates="lessons")
    subject = relationship("Subject")
    teacher = relationship("User")

    __table_args__ = (
        UniqueConstraint("class_id", "weekday", "start_time", name="uq_lesson_class_slot"),
        Index("ix_lesson_teacher_weekday", "teacher_id", "weekday"),
    )


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int | None] = mapped_column(Integer)
    action: Mapped[str] = mapped_column(db.String(64), nullable=False)
    entity: Mapped[str] = mapped_column(db.String(64), nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer)
    payload: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
