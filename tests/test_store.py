from datetime import time

import pytest
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import AuditLog, ClassAssignment, Lesson, SchoolClass
from blueprints.planning.dto import ClassKind, LessonPlacement, Timetable
from blueprints.planning.services import generate_timetable
from blueprints.planning.store import (
    clear_timetable, load_class_context, load_teacher_constraints,
    save_timetable, timetable_from_db,
)

def _generate(class_id):
    ctx = load_class_context(class_id)
    cons = load_teacher_constraints(ctx.teacher_ids(), exclude_class_id=class_id)
    result = generate_timetable(ctx, cons)
    assert result.ok, result.error_dict()
    return result.timetable

def test_load_class_context(school):
    ctx = load_class_context(school["class_id"])
    assert ctx.class_id == school["class_id"]
    assert ctx.template.kind is ClassKind.PARTIAL
    assert ctx.template.lunch is None
    assert ctx.required_total == 25
    assert ctx.teacher_ids() == sorted(school["teachers"].values())

def test_load_class_context_missing(app):
    assert load_class_context(12345) is None

def test_load_teacher_constraints_reads_commitments(school):
    bruno = school["teachers"]["bruno"]
    cons = load_teacher_constraints([bruno])
    assert len(cons.commitments) == 1
    c = cons.commitments[0]
    assert (c.teacher_id, c.weekdays, c.start, c.end) == (bruno, (2,), time(7, 0), time(8, 40))
    assert load_teacher_constraints([]).summary() == {"commitments": 0, "existing": 0}

def test_save_then_clear_round_trip(school):
    cid = school["class_id"]
    tt = _generate(cid)

    assert save_timetable(cid, tt, user_id=school["director"]) == 25
    cls = db.session.get(SchoolClass, cid)
    assert cls.has_timetable is True
    assert Lesson.query.filter_by(class_id=cid).count() == 25
    assert timetable_from_db(cid).placements == tt.placements

    assert clear_timetable(cid, user_id=school["director"]) == 25
    assert Lesson.query.filter_by(class_id=cid).count() == 0
    assert db.session.get(SchoolClass, cid).has_timetable is False

    actions = [a.action for a in AuditLog.query.order_by(AuditLog.id).all()]
    assert actions == ["timetable_saved", "timetable_cleared"]

def test_save_replaces_previous_timetable(school):
    cid = school["class_id"]
    tt = _generate(cid)
    save_timetable(cid, tt)
    save_timetable(cid, tt)
    assert Lesson.query.filter_by(class_id=cid).count() == 25
    last = AuditLog.query.order_by(AuditLog.id.desc()).first()
    assert last.payload == {"lessons": 25, "replaced": 25}

def test_failed_save_keeps_previous_timetable(school):
    cid = school["class_id"]
    tt = _generate(cid)
    save_timetable(cid, tt)

    p = tt.placements[0]
    broken = Timetable(cid, (p, LessonPlacement(p.subject_id, p.teacher_id, p.weekday, p.start, p.end)))
    with pytest.raises(IntegrityError):
        save_timetable(cid, broken)

    assert Lesson.query.filter_by(class_id=cid).count() == 25
    assert db.session.get(SchoolClass, cid).has_timetable is True
    assert AuditLog.query.count() == 1

def test_save_unknown_class_raises(app):
    with pytest.raises(LookupError):
        save_timetable(999, Timetable(999, ()))

def test_lessons_of_other_classes_become_constraints(school):
    cid = school["class_id"]
    save_timetable(cid, _generate(cid))

    # второй класс с тем же преподавателем
    other = SchoolClass(name="6B", kind=ClassKind.PARTIAL,
                        day_start=time(7, 0), day_end=time(12, 0),
                        break_start=time(9, 0), break_end=time(9, 20))
    db.session.add(other)
    db.session.flush()
    db.session.add(ClassAssignment(class_id=other.id, subject_id=school["subjects"]["Math"],
                                   teacher_id=school["teachers"]["ana"], weekly_lessons=25))
    db.session.commit()

    ana = school["teachers"]["ana"]
    cons = load_teacher_constraints([ana], exclude_class_id=other.id)
    assert len(cons.existing) == 10
    assert {e.class_id for e in cons.existing} == {cid}
    # свой класс исключается
    assert load_teacher_constraints([ana], exclude_class_id=cid).existing == ()
