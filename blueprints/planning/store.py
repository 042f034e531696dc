# blueprints/planning/store.py
"""
Граница между ядром и БД: загрузка снимка и атомарная запись расписания.
"""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from sqlalchemy import delete, select

from extensions import db
from models import AuditLog, ClassAssignment, Commitment, Lesson, SchoolClass
from .dto import (
    Assignment, ClassContext, ClassScheduleTemplate, ExistingLessonPlacement,
    LessonPlacement, TeacherCommitment, TeacherConstraints, TimeWindow, Timetable,
    ClassKind,
)

log = logging.getLogger(__name__)


def _window(start, end, label: str) -> Optional[TimeWindow]:
    if start is None or end is None:
        return None
    return TimeWindow(start, end, label)


def template_for(cls: SchoolClass) -> ClassScheduleTemplate:
    full = cls.kind is ClassKind.FULL
    return ClassScheduleTemplate(
        class_id=cls.id,
        kind=cls.kind,
        day_start=cls.day_start,
        day_end=cls.day_end,
        first_break=TimeWindow(cls.break_start, cls.break_end, "Break"),
        lunch=_window(cls.lunch_start, cls.lunch_end, "Lunch") if full else None,
        second_break=_window(cls.second_break_start, cls.second_break_end, "Break") if full else None,
    )


def load_class_context(class_id: int) -> Optional[ClassContext]:
    cls = db.session.get(SchoolClass, class_id)
    if cls is None:
        return None
    rows = db.session.scalars(
        select(ClassAssignment)
        .where(ClassAssignment.class_id == class_id)
        .order_by(ClassAssignment.subject_id)
    ).all()
    assignments = tuple(Assignment(r.subject_id, r.teacher_id, r.weekly_lessons) for r in rows)
    return ClassContext(template=template_for(cls), assignments=assignments)


def load_teacher_constraints(teacher_ids: Iterable[int], exclude_class_id: Optional[int] = None) -> TeacherConstraints:
    """Обязательства преподавателей и их уроки в других классах."""
    ids = sorted(set(teacher_ids))
    if not ids:
        return TeacherConstraints()

    commitments = db.session.scalars(
        select(Commitment).where(Commitment.teacher_id.in_(ids)).order_by(Commitment.id)
    ).all()

    q = select(Lesson).where(Lesson.teacher_id.in_(ids))
    if exclude_class_id is not None:
        q = q.where(Lesson.class_id != exclude_class_id)
    lessons = db.session.scalars(q.order_by(Lesson.id)).all()

    return TeacherConstraints(
        commitments=tuple(
            # выходные в обязательствах на сетку Пн–Пт не влияют
            TeacherCommitment(c.teacher_id, tuple(int(d) for d in (c.weekdays or [])), c.start_time, c.end_time, c.place or "")
            for c in commitments
        ),
        existing=tuple(
            ExistingLessonPlacement(r.teacher_id, r.weekday, r.start_time, r.end_time, r.class_id)
            for r in lessons
        ),
    )


def timetable_from_db(class_id: int) -> Timetable:
    lessons = db.session.scalars(
        select(Lesson).where(Lesson.class_id == class_id)
        .order_by(Lesson.weekday, Lesson.start_time)
    ).all()
    return Timetable(class_id, tuple(
        LessonPlacement(r.subject_id, r.teacher_id, r.weekday, r.start_time, r.end_time, r.is_generated)
        for r in lessons
    ))


def _audit(user_id: Optional[int], action: str, class_id: int, payload: dict) -> None:
    db.session.add(AuditLog(user_id=user_id, action=action, entity="school_class",
                            entity_id=class_id, payload=payload))


def save_timetable(class_id: int, timetable: Timetable, user_id: Optional[int] = None) -> int:
    """
    Полная замена расписания класса одной транзакцией: delete + insert,
    флаг has_timetable и запись в журнал аудита.
    При ошибке сессия откатывается, прежнее расписание остаётся.
    """
    try:
        cls = db.session.get(SchoolClass, class_id)
        if cls is None:
            raise LookupError(f"class {class_id} not found")
        deleted = db.session.execute(delete(Lesson).where(Lesson.class_id == class_id)).rowcount
        db.session.add_all([
            Lesson(class_id=class_id, subject_id=p.subject_id, teacher_id=p.teacher_id,
                   weekday=p.weekday, start_time=p.start, end_time=p.end, is_generated=p.is_generated)
            for p in timetable
        ])
        cls.has_timetable = True
        _audit(user_id, "timetable_saved", class_id, {"lessons": len(timetable), "replaced": deleted})
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    log.info("timetable saved", extra={
        "event": "timetable_saved", "class_id": class_id,
        "lessons": len(timetable), "deleted": deleted, "user_id": user_id,
    })
    return len(timetable)


def clear_timetable(class_id: int, user_id: Optional[int] = None) -> int:
    try:
        cls = db.session.get(SchoolClass, class_id)
        if cls is None:
            raise LookupError(f"class {class_id} not found")
        deleted = db.session.execute(delete(Lesson).where(Lesson.class_id == class_id)).rowcount
        cls.has_timetable = False
        _audit(user_id, "timetable_cleared", class_id, {"deleted": deleted})
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    log.info("timetable cleared", extra={
        "event": "timetable_cleared", "class_id": class_id, "deleted": deleted, "user_id": user_id,
    })
    return deleted
