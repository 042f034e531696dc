# blueprints/constraints/services.py
from __future__ import annotations
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple

from blueprints.planning.dto import (
    ClassContext, LessonPlacement, TeacherConstraints, Timetable,
    WEEKDAYS, fmt_time, intervals_overlap, weekday_name,
)
from blueprints.planning.grid import LESSON_MINUTES, TimeGrid
from .model import ConstraintModel, SUBJECT_DAILY_CAP, SOURCE_COMMITMENT

log = logging.getLogger(__name__)


class ViolationKind(str, Enum):
    COMPLETENESS = "COMPLETENESS"
    SLOT_ALIGNMENT = "SLOT_ALIGNMENT"
    NO_DOUBLE_BOOKING = "NO_DOUBLE_BOOKING"
    TEACHER_AVAILABILITY = "TEACHER_AVAILABILITY"
    TEACHER_SELF_CONFLICT = "TEACHER_SELF_CONFLICT"
    SUBJECT_DAILY_CAP = "SUBJECT_DAILY_CAP"


@dataclass
class Violation:
    kind: ViolationKind
    reason: str
    placements: List[LessonPlacement] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.kind.value,
            "reason": self.reason,
            "placements": [p.to_dict() for p in self.placements],
            "details": self.details,
        }


def _where(p: LessonPlacement) -> str:
    day = weekday_name(p.weekday) if p.weekday in WEEKDAYS else f"day {p.weekday}"
    return f"{day} {fmt_time(p.start)}-{fmt_time(p.end)}"


def check_completeness(timetable: Timetable, context: ClassContext) -> List[Violation]:
    errors: List[Violation] = []
    required = context.required_total
    if len(timetable) != required:
        errors.append(Violation(
            kind=ViolationKind.COMPLETENESS,
            reason=f"timetable has {len(timetable)} lessons, expected {required}",
            details={"placed": len(timetable), "required": required},
        ))

    by_subject: Dict[int, List[LessonPlacement]] = defaultdict(list)
    for p in timetable:
        by_subject[p.subject_id].append(p)
    assigned = {a.subject_id: a for a in context.assignments}

    for a in context.assignments:
        got = len(by_subject.get(a.subject_id, []))
        if got != a.weekly_lessons:
            errors.append(Violation(
                kind=ViolationKind.COMPLETENESS,
                reason=f"subject {a.subject_id} has {got} lessons, expected {a.weekly_lessons}",
                placements=by_subject.get(a.subject_id, []),
                details={"subject_id": a.subject_id, "placed": got, "required": a.weekly_lessons},
            ))
    for subject_id in sorted(set(by_subject) - set(assigned)):
        errors.append(Violation(
            kind=ViolationKind.COMPLETENESS,
            reason=f"subject {subject_id} is not assigned to this class",
            placements=by_subject[subject_id],
            details={"subject_id": subject_id, "placed": len(by_subject[subject_id]), "required": 0},
        ))

    # предмет ведёт только назначенный преподаватель
    for subject_id, a in assigned.items():
        wrong = [p for p in by_subject.get(subject_id, []) if p.teacher_id != a.teacher_id]
        if wrong:
            errors.append(Violation(
                kind=ViolationKind.COMPLETENESS,
                reason=f"subject {subject_id} must be taught by teacher {a.teacher_id}",
                placements=wrong,
                details={"subject_id": subject_id, "teacher_id": a.teacher_id},
            ))
    return errors


def check_slot_alignment(timetable: Timetable, grid: TimeGrid) -> List[Violation]:
    errors: List[Violation] = []
    for p in timetable:
        if p.weekday not in WEEKDAYS:
            errors.append(Violation(
                kind=ViolationKind.SLOT_ALIGNMENT,
                reason=f"weekday {p.weekday} is not a school day",
                placements=[p], details={"weekday": p.weekday},
            ))
        elif grid.slot_for(p.start, p.end) is None:
            errors.append(Violation(
                kind=ViolationKind.SLOT_ALIGNMENT,
                reason=f"{_where(p)} does not match a {grid.lesson_minutes}-minute lesson slot",
                placements=[p],
                details={"slots": [s.label() for s in grid.slots]},
            ))
    return errors


def _overlapping_pairs(placements: List[LessonPlacement]) -> Iterator[Tuple[LessonPlacement, LessonPlacement]]:
    # развёртка по началу урока: сравниваются только пересекающиеся по времени
    active: List[LessonPlacement] = []
    for p in sorted(placements, key=lambda x: (x.start_min, x.end_min)):
        active = [a for a in active if a.end_min > p.start_min]
        for a in active:
            if intervals_overlap(a.start_min, a.end_min, p.start_min, p.end_min):
                yield a, p
        active.append(p)


def _grouped(timetable: Timetable, key) -> List[List[LessonPlacement]]:
    groups: Dict[Any, List[LessonPlacement]] = defaultdict(list)
    for p in timetable:
        groups[key(p)].append(p)
    return [groups[k] for k in sorted(groups)]


def check_double_booking(timetable: Timetable) -> List[Violation]:
    errors: List[Violation] = []
    for day in _grouped(timetable, lambda p: p.weekday):
        for a, b in _overlapping_pairs(day):
            errors.append(Violation(
                kind=ViolationKind.NO_DOUBLE_BOOKING,
                reason=f"two lessons at {_where(a)}",
                placements=[a, b],
            ))
    return errors


def check_teacher_availability(timetable: Timetable, model: ConstraintModel) -> List[Violation]:
    errors: List[Violation] = []
    for p in timetable:
        hits = model.conflicts(p.teacher_id, p.weekday, p.start, p.end)
        if not hits:
            continue
        sources = sorted({h.source for h in hits})
        what = "a fixed commitment" if sources == [SOURCE_COMMITMENT] else "another class"
        if len(sources) > 1:
            what = "a fixed commitment and another class"
        errors.append(Violation(
            kind=ViolationKind.TEACHER_AVAILABILITY,
            reason=f"teacher {p.teacher_id} is busy with {what} at {_where(p)}",
            placements=[p],
            details={"teacher_id": p.teacher_id, "sources": sources},
        ))
    return errors


def check_teacher_self_conflict(timetable: Timetable) -> List[Violation]:
    errors: List[Violation] = []
    for group in _grouped(timetable, lambda p: (p.teacher_id, p.weekday)):
        for a, b in _overlapping_pairs(group):
            errors.append(Violation(
                kind=ViolationKind.TEACHER_SELF_CONFLICT,
                reason=f"teacher {a.teacher_id} has two lessons at {_where(a)}",
                placements=[a, b],
                details={"teacher_id": a.teacher_id},
            ))
    return errors


def check_subject_daily_cap(timetable: Timetable, daily_cap: int = SUBJECT_DAILY_CAP) -> List[Violation]:
    errors: List[Violation] = []
    counts = Counter((p.subject_id, p.weekday) for p in timetable)
    for (subject_id, weekday), n in sorted(counts.items()):
        if n > daily_cap:
            errors.append(Violation(
                kind=ViolationKind.SUBJECT_DAILY_CAP,
                reason=f"subject {subject_id} has {n} lessons on {weekday_name(weekday) if weekday in WEEKDAYS else weekday}, limit {daily_cap}",
                placements=[p for p in timetable if p.subject_id == subject_id and p.weekday == weekday],
                details={"subject_id": subject_id, "weekday": weekday, "count": n, "limit": daily_cap},
            ))
    return errors


def validate_timetable(timetable: Timetable, context: ClassContext, constraints: TeacherConstraints, *,
                       lesson_minutes: int = LESSON_MINUTES,
                       daily_cap: int = SUBJECT_DAILY_CAP) -> List[Violation]:
    """
    Независимая проверка кандидата (из планировщика или внешнего генератора).
    Вход не изменяется; пустой список — расписание принимается.
    """
    grid = TimeGrid(context.template, lesson_minutes)
    # только внешние окна: обязательства и уроки в других классах
    model = ConstraintModel(constraints, daily_cap=daily_cap)

    errors: List[Violation] = []
    # 1) Полнота и соответствие назначениям
    errors += check_completeness(timetable, context)
    # 2) Совпадение со слотами сетки
    errors += check_slot_alignment(timetable, grid)
    # 3) Одна клетка — один урок
    errors += check_double_booking(timetable)
    # 4) Доступность преподавателей по свежим данным
    errors += check_teacher_availability(timetable, model)
    # 5) Преподаватель не ведёт два урока одновременно
    errors += check_teacher_self_conflict(timetable)
    # 6) Лимит уроков предмета в день
    errors += check_subject_daily_cap(timetable, daily_cap)

    if errors:
        log.info("timetable rejected", extra={
            "event": "timetable_rejected",
            "class_id": context.class_id,
            "kinds": dict(Counter(e.kind.value for e in errors)),
        })
    return errors
