# blueprints/planning/grid.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import time
from typing import List, Optional

from .dto import (
    ClassKind, ClassScheduleTemplate, WEEKDAYS,
    from_minutes, to_minutes, fmt_time,
)

LESSON_MINUTES = 50


@dataclass(frozen=True)
class Slot:
    index: int
    start: time
    end: time

    @property
    def start_min(self) -> int:
        return to_minutes(self.start)

    @property
    def end_min(self) -> int:
        return to_minutes(self.end)

    def label(self) -> str:
        return f"{fmt_time(self.start)}-{fmt_time(self.end)}"


@dataclass(frozen=True)
class Cell:
    weekday: int
    slot: Slot

    @property
    def key(self) -> tuple[int, int]:
        return self.weekday, self.slot.index


def build_slots(template: ClassScheduleTemplate, lesson_minutes: int = LESSON_MINUTES) -> List[Slot]:
    """
    Идём от начала дня шагом в длительность урока.
    Слот, задевающий перерыв, не создаётся: курсор прыгает на конец перерыва.
    Хвост короче урока отбрасывается.
    """
    windows = template.windows()
    day_end = to_minutes(template.day_end)
    cursor = to_minutes(template.day_start)
    slots: List[Slot] = []
    while cursor + lesson_minutes <= day_end:
        end = cursor + lesson_minutes
        hit = next((w for w in windows if w.overlaps(cursor, end)), None)
        if hit is not None:
            cursor = hit.end_min
            continue
        slots.append(Slot(index=len(slots), start=from_minutes(cursor), end=from_minutes(end)))
        cursor = end
    return slots


def check_template(template: ClassScheduleTemplate) -> List[str]:
    """Список нарушений инвариантов шаблона (пусто — шаблон корректен)."""
    errors: List[str] = []
    start, end = to_minutes(template.day_start), to_minutes(template.day_end)
    if start >= end:
        errors.append("day_start must be before day_end")

    if template.kind is ClassKind.FULL:
        if template.lunch is None:
            errors.append("FULL class requires a lunch window")
        if template.second_break is None:
            errors.append("FULL class requires a second break window")
    else:
        if template.lunch is not None or template.second_break is not None:
            errors.append("PARTIAL class must not define lunch or second break")

    windows = template.windows()
    for w in windows:
        name = w.label or "break"
        if w.start_min >= w.end_min:
            errors.append(f"{name}: start must be before end")
        elif w.start_min < start or w.end_min > end:
            errors.append(f"{name}: must lie within the school day")

    # в порядке времени соседние окна не должны пересекаться
    for a, b in zip(windows, windows[1:]):
        if b.start_min < a.end_min:
            errors.append(f"{a.label or 'break'} overlaps {b.label or 'break'}")

    # заданный порядок: интервал → обед → второй интервал
    if template.kind is ClassKind.FULL and template.lunch and template.second_break:
        declared = [template.first_break, template.lunch, template.second_break]
        if [w.start_min for w in declared] != sorted(w.start_min for w in declared):
            errors.append("break windows must be ordered: first break, lunch, second break")
    return errors


class TimeGrid:
    """Упорядоченные слоты одного дня; сетка одинакова для всех пяти дней."""

    def __init__(self, template: ClassScheduleTemplate, lesson_minutes: int = LESSON_MINUTES):
        self.template = template
        self.lesson_minutes = lesson_minutes
        self.slots: List[Slot] = build_slots(template, lesson_minutes)
        self._by_bounds = {(s.start_min, s.end_min): s for s in self.slots}

    @property
    def slots_per_day(self) -> int:
        return len(self.slots)

    @property
    def capacity(self) -> int:
        return len(WEEKDAYS) * len(self.slots)

    def cells(self) -> List[Cell]:
        # порядок: день, затем время
        return [Cell(weekday=d, slot=s) for d in WEEKDAYS for s in self.slots]

    def slot_for(self, start: time, end: time) -> Optional[Slot]:
        return self._by_bounds.get((to_minutes(start), to_minutes(end)))
