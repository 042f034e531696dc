# blueprints/constraints/model.py
from __future__ import annotations
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import time
from typing import Any, Dict, List, Tuple

from blueprints.planning.dto import TeacherConstraints, intervals_overlap, to_minutes

SUBJECT_DAILY_CAP = 2

SOURCE_COMMITMENT = "commitment"
SOURCE_EXISTING_LESSON = "existing_lesson"
SOURCE_TIMETABLE = "timetable"


@dataclass(frozen=True)
class ExclusionWindow:
    start_min: int
    end_min: int
    source: str
    ref: Any = None


class ConstraintModel:
    """
    Окна недоступности преподавателей по (teacher_id, weekday) и счётчик
    уроков предмета в день.

    Строится из снимка TeacherConstraints; планировщик дополняет окна своими
    размещениями (block/release), чтобы не было двойной записи в одном прогоне.
    """

    def __init__(self, constraints: TeacherConstraints | None = None, daily_cap: int = SUBJECT_DAILY_CAP):
        self.daily_cap = daily_cap
        self._windows: Dict[Tuple[int, int], List[ExclusionWindow]] = defaultdict(list)
        self._subject_day: Counter = Counter()
        if constraints is not None:
            self._load(constraints)

    def _load(self, constraints: TeacherConstraints) -> None:
        for c in constraints.commitments:
            for d in c.weekdays:
                self._windows[(c.teacher_id, d)].append(ExclusionWindow(
                    to_minutes(c.start), to_minutes(c.end), SOURCE_COMMITMENT, c))
        for e in constraints.existing:
            self._windows[(e.teacher_id, e.weekday)].append(ExclusionWindow(
                to_minutes(e.start), to_minutes(e.end), SOURCE_EXISTING_LESSON, e))

    # ---------- занятость преподавателя ----------
    def conflicts(self, teacher_id: int, weekday: int, start: time, end: time) -> List[ExclusionWindow]:
        s, e = to_minutes(start), to_minutes(end)
        return [w for w in self._windows.get((teacher_id, weekday), ())
                if intervals_overlap(w.start_min, w.end_min, s, e)]

    def is_teacher_free(self, teacher_id: int, weekday: int, start: time, end: time) -> bool:
        s, e = to_minutes(start), to_minutes(end)
        for w in self._windows.get((teacher_id, weekday), ()):
            if intervals_overlap(w.start_min, w.end_min, s, e):
                return False
        return True

    def block(self, teacher_id: int, weekday: int, start: time, end: time,
              source: str = SOURCE_TIMETABLE, ref: Any = None) -> ExclusionWindow:
        w = ExclusionWindow(to_minutes(start), to_minutes(end), source, ref)
        self._windows[(teacher_id, weekday)].append(w)
        return w

    def release(self, teacher_id: int, weekday: int, window: ExclusionWindow) -> None:
        bucket = self._windows.get((teacher_id, weekday))
        if bucket and window in bucket:
            # удаляем именно этот экземпляр (равные по значению окна возможны)
            for i in range(len(bucket) - 1, -1, -1):
                if bucket[i] is window:
                    del bucket[i]
                    return
            bucket.remove(window)

    # ---------- лимит предмета в день ----------
    def subject_count(self, subject_id: int, weekday: int) -> int:
        return self._subject_day[(subject_id, weekday)]

    def can_place_subject(self, subject_id: int, weekday: int) -> bool:
        return self._subject_day[(subject_id, weekday)] < self.daily_cap

    def place_subject(self, subject_id: int, weekday: int) -> bool:
        """False — лимит достигнут, размещение отклонено."""
        if not self.can_place_subject(subject_id, weekday):
            return False
        self._subject_day[(subject_id, weekday)] += 1
        return True

    def unplace_subject(self, subject_id: int, weekday: int) -> None:
        if self._subject_day[(subject_id, weekday)] > 0:
            self._subject_day[(subject_id, weekday)] -= 1
