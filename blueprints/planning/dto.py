# blueprints/planning/dto.py
"""
Неизменяемый снимок входных данных для генерации расписания класса.

Ядро (grid / scheduler / validator) работает только с этими объектами:
ни БД, ни Flask внутри нет. Загрузка из БД — в store.py.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

WEEKDAYS: Tuple[int, ...] = (0, 1, 2, 3, 4)  # Mon..Fri
WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]

# синонимы дней недели (в т.ч. как их присылает внешний генератор)
WEEKDAY_SYNONYMS: Dict[int, list[str]] = {
    0: ["mon", "monday", "segunda", "segunda-feira", "seg"],
    1: ["tue", "tuesday", "terca", "terça", "terca-feira", "terça-feira", "ter"],
    2: ["wed", "wednesday", "quarta", "quarta-feira", "qua"],
    3: ["thu", "thursday", "quinta", "quinta-feira", "qui"],
    4: ["fri", "friday", "sexta", "sexta-feira", "sex"],
}


class ClassKind(Enum):
    PARTIAL = "PARTIAL"  # один интервал
    FULL = "FULL"        # интервал + обед + второй интервал


def parse_weekday(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"bad weekday: {value!r}")
    if isinstance(value, int):
        if value in WEEKDAYS:
            return value
        raise ValueError(f"weekday out of range: {value}")
    key = str(value or "").strip().lower()
    if key.isdigit():
        return parse_weekday(int(key))
    for idx, names in WEEKDAY_SYNONYMS.items():
        if key in names:
            return idx
    raise ValueError(f"unknown weekday: {value!r}")


def weekday_name(idx: int) -> str:
    return WEEKDAY_NAMES[idx]


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(m: int) -> time:
    return time(m // 60, m % 60)


def fmt_time(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    s = str(value or "").strip()
    # "07:00" и "07:00:00" (так время отдаёт БД)
    parts = s.split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"bad time: {value!r}")
    return time(int(parts[0]), int(parts[1]))


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Полуоткрытые интервалы [start, end) в минутах."""
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True)
class TimeWindow:
    start: time
    end: time
    label: str = ""

    @property
    def start_min(self) -> int:
        return to_minutes(self.start)

    @property
    def end_min(self) -> int:
        return to_minutes(self.end)

    def overlaps(self, start_min: int, end_min: int) -> bool:
        return intervals_overlap(self.start_min, self.end_min, start_min, end_min)


@dataclass(frozen=True)
class ClassScheduleTemplate:
    class_id: int
    kind: ClassKind
    day_start: time
    day_end: time
    first_break: TimeWindow
    lunch: Optional[TimeWindow] = None
    second_break: Optional[TimeWindow] = None

    def windows(self) -> list[TimeWindow]:
        """Перерывы в порядке времени; обед и второй интервал — только у FULL."""
        out = [self.first_break]
        if self.kind is ClassKind.FULL:
            out += [w for w in (self.lunch, self.second_break) if w is not None]
        return sorted(out, key=lambda w: (w.start_min, w.end_min))


@dataclass(frozen=True)
class Assignment:
    subject_id: int
    teacher_id: int
    weekly_lessons: int


@dataclass(frozen=True)
class TeacherCommitment:
    teacher_id: int
    weekdays: Tuple[int, ...]
    start: time
    end: time
    place: str = ""


@dataclass(frozen=True)
class ExistingLessonPlacement:
    teacher_id: int
    weekday: int
    start: time
    end: time
    class_id: Optional[int] = None


@dataclass(frozen=True)
class LessonPlacement:
    subject_id: int
    teacher_id: int
    weekday: int
    start: time
    end: time
    is_generated: bool = True

    @property
    def start_min(self) -> int:
        return to_minutes(self.start)

    @property
    def end_min(self) -> int:
        return to_minutes(self.end)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "teacher_id": self.teacher_id,
            "weekday": self.weekday,
            "start": fmt_time(self.start),
            "end": fmt_time(self.end),
            "is_generated": self.is_generated,
        }


@dataclass(frozen=True)
class Timetable:
    class_id: int
    placements: Tuple[LessonPlacement, ...] = ()

    def __len__(self) -> int:
        return len(self.placements)

    def __iter__(self) -> Iterator[LessonPlacement]:
        return iter(self.placements)

    def to_dict(self) -> Dict[str, Any]:
        return {"class_id": self.class_id, "placements": [p.to_dict() for p in self.placements]}


@dataclass(frozen=True)
class ClassContext:
    template: ClassScheduleTemplate
    assignments: Tuple[Assignment, ...] = ()

    @property
    def class_id(self) -> int:
        return self.template.class_id

    @property
    def required_total(self) -> int:
        return sum(a.weekly_lessons for a in self.assignments)

    def teacher_ids(self) -> list[int]:
        return sorted({a.teacher_id for a in self.assignments})


@dataclass(frozen=True)
class TeacherConstraints:
    commitments: Tuple[TeacherCommitment, ...] = field(default_factory=tuple)
    existing: Tuple[ExistingLessonPlacement, ...] = field(default_factory=tuple)

    def summary(self) -> Dict[str, int]:
        return {"commitments": len(self.commitments), "existing": len(self.existing)}
