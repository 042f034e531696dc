# blueprints/teacher/services.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, time
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from extensions import db
from models import Lesson, SchoolClass, Subject
from blueprints.planning.dto import WEEKDAYS, fmt_time, weekday_name

@dataclass
class LessonOut:
    id: int
    weekday: int
    start: str
    end: str
    subject: str
    class_id: int
    class_name: str
    is_generated: bool
    duration_hours: float

def _duration_minutes(start: time, end: time) -> int:
    # naive times: just compute delta
    a = timedelta(hours=start.hour, minutes=start.minute)
    b = timedelta(hours=end.hour, minutes=end.minute)
    return int((b - a).total_seconds() // 60)

def aggregate_for_teacher(teacher_id: int, tz_name: str = "America/Sao_Paulo",
                          now: Optional[datetime] = None) -> Dict:
    """Недельная сетка преподавателя по всем классам."""
    now_dt = now or datetime.now(ZoneInfo(tz_name))

    q = (db.session.query(Lesson, Subject, SchoolClass)
         .join(Subject, Subject.id == Lesson.subject_id)
         .join(SchoolClass, SchoolClass.id == Lesson.class_id)
         .filter(Lesson.teacher_id == teacher_id)
         .order_by(Lesson.weekday.asc(), Lesson.start_time.asc()))

    by_day: Dict[int, List[LessonOut]] = {d: [] for d in WEEKDAYS}
    total_minutes = 0
    for les, subj, cls in q.all():
        dur = _duration_minutes(les.start_time, les.end_time)
        total_minutes += dur
        by_day.setdefault(les.weekday, []).append(LessonOut(
            id=les.id,
            weekday=les.weekday,
            start=fmt_time(les.start_time),
            end=fmt_time(les.end_time),
            subject=subj.name,
            class_id=cls.id,
            class_name=cls.name,
            is_generated=les.is_generated,
            duration_hours=round(dur / 60.0, 2),
        ))

    today = now_dt.weekday()  # 0=Mon .. 6=Sun
    days = [{
        "weekday": d,
        "name": weekday_name(d),
        "is_today": d == today,
        "lessons": [asdict(x) for x in by_day[d]],
    } for d in WEEKDAYS]

    return {
        "today": {"weekday": today, "is_school_day": today in WEEKDAYS, "tz": tz_name},
        "counts": {
            "work_days": sum(1 for d in WEEKDAYS if by_day[d]),
            "lessons": sum(len(v) for v in by_day.values()),
            "hours": round(total_minutes / 60.0, 2),
        },
        "days": days,
    }
