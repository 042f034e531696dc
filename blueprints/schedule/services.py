# blueprints/schedule/services.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

from extensions import db
from models import Lesson, SchoolClass, Subject, User
from blueprints.planning.dto import WEEKDAYS, fmt_time, parse_time, to_minutes, weekday_name
from blueprints.planning.grid import TimeGrid
from blueprints.planning.store import template_for

@dataclass
class DayItem:
    is_break: bool
    weekday: int
    start: str
    end: str
    kind: str                          # lesson | break | lunch
    label: Optional[str] = None        # "Break" / "Lunch" у разделителей
    id: Optional[int] = None           # id урока
    subject_id: Optional[int] = None
    subject: Optional[str] = None
    teacher_id: Optional[int] = None
    teacher: Optional[str] = None
    is_generated: Optional[bool] = None

def _lesson_item(les: Lesson, subj: Subject, tch: User) -> DayItem:
    return DayItem(
        is_break=False, weekday=les.weekday, kind="lesson",
        start=fmt_time(les.start_time), end=fmt_time(les.end_time),
        id=les.id, subject_id=subj.id, subject=subj.name,
        teacher_id=tch.id, teacher=tch.name, is_generated=les.is_generated,
    )

def _insert_breaks_for_day(weekday: int, windows, lessons: List[DayItem]) -> List[DayItem]:
    """Уроки дня + разделители перерывов ТОЛЬКО между первым и последним уроком."""
    if not lessons:
        return []  # ничего не показываем, если в этот день уроков нет
    lo = min(to_minutes(parse_time(x.start)) for x in lessons)
    hi = max(to_minutes(parse_time(x.end)) for x in lessons)
    result = list(lessons)
    for w in windows:
        if w.start_min < lo or w.end_min > hi:
            continue
        kind = "lunch" if w.label == "Lunch" else "break"
        result.append(DayItem(
            is_break=True, weekday=weekday, kind=kind, label=w.label or "Break",
            start=fmt_time(w.start), end=fmt_time(w.end),
        ))
    result.sort(key=lambda x: x.start)  # "HH:MM" сортируется как строка
    return result

def class_timetable(class_id: int, lesson_minutes: int = 50) -> Optional[Dict]:
    """Сохранённое расписание класса: пять колонок Пн–Пт."""
    cls = db.session.get(SchoolClass, class_id)
    if cls is None:
        return None
    template = template_for(cls)
    grid = TimeGrid(template, lesson_minutes)

    rows = (db.session.query(Lesson, Subject, User)
            .join(Subject, Subject.id == Lesson.subject_id)
            .join(User, User.id == Lesson.teacher_id)
            .filter(Lesson.class_id == class_id)
            .order_by(Lesson.weekday.asc(), Lesson.start_time.asc())
            .all())

    by_day: Dict[int, List[DayItem]] = {d: [] for d in WEEKDAYS}
    for les, subj, tch in rows:
        by_day.setdefault(les.weekday, []).append(_lesson_item(les, subj, tch))

    windows = template.windows()
    days = []
    for d in WEEKDAYS:
        items = _insert_breaks_for_day(d, windows, by_day[d])
        days.append({"weekday": d, "name": weekday_name(d), "items": [asdict(i) for i in items]})

    return {
        "entity": {"type": "class", "id": cls.id, "name": cls.name, "kind": cls.kind.value},
        "has_timetable": cls.has_timetable,
        "slots": [{"index": s.index, "start": fmt_time(s.start), "end": fmt_time(s.end)} for s in grid.slots],
        "lessons": len(rows),
        "days": days,
    }
