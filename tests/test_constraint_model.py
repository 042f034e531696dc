from datetime import time

from blueprints.planning.dto import ExistingLessonPlacement, TeacherCommitment, TeacherConstraints
from blueprints.constraints.model import (
    ConstraintModel, SOURCE_COMMITMENT, SOURCE_EXISTING_LESSON, SOURCE_TIMETABLE,
)

T = 7

def _model(**kw):
    return ConstraintModel(TeacherConstraints(
        commitments=(TeacherCommitment(T, (0, 2), time(8, 0), time(9, 0), "Clinic"),),
        existing=(ExistingLessonPlacement(T, 1, time(10, 0), time(10, 50), class_id=99),),
    ), **kw)

def test_half_open_intervals_touching_do_not_conflict():
    m = _model()
    assert m.is_teacher_free(T, 0, time(7, 10), time(8, 0))
    assert m.is_teacher_free(T, 0, time(9, 0), time(9, 50))

def test_overlap_with_commitment_blocks_teacher():
    m = _model()
    assert not m.is_teacher_free(T, 0, time(8, 50), time(9, 40))
    assert not m.is_teacher_free(T, 2, time(7, 30), time(8, 20))
    # вторник и другие преподаватели не затронуты
    assert m.is_teacher_free(T, 1, time(8, 0), time(8, 50))
    assert m.is_teacher_free(T + 1, 0, time(8, 0), time(8, 50))

def test_existing_lesson_in_other_class_blocks_teacher():
    m = _model()
    hits = m.conflicts(T, 1, time(10, 10), time(11, 0))
    assert [h.source for h in hits] == [SOURCE_EXISTING_LESSON]
    assert hits[0].ref.class_id == 99

def test_conflicts_report_source():
    m = _model()
    hits = m.conflicts(T, 0, time(8, 10), time(9, 0))
    assert [h.source for h in hits] == [SOURCE_COMMITMENT]
    assert hits[0].ref.place == "Clinic"

def test_block_and_release_own_placements():
    m = ConstraintModel()
    w = m.block(T, 3, time(7, 0), time(7, 50))
    assert w.source == SOURCE_TIMETABLE
    assert not m.is_teacher_free(T, 3, time(7, 0), time(7, 50))
    m.release(T, 3, w)
    assert m.is_teacher_free(T, 3, time(7, 0), time(7, 50))

def test_release_removes_only_given_window():
    m = ConstraintModel()
    a = m.block(T, 3, time(7, 0), time(7, 50))
    b = m.block(T, 3, time(7, 0), time(7, 50))
    m.release(T, 3, a)
    assert m.conflicts(T, 3, time(7, 0), time(7, 50))[0] is b

def test_subject_daily_cap_rejects_third_lesson():
    m = ConstraintModel()
    assert m.place_subject(5, 0)
    assert m.place_subject(5, 0)
    assert m.subject_count(5, 0) == 2
    assert not m.can_place_subject(5, 0)
    assert m.place_subject(5, 0) is False
    assert m.subject_count(5, 0) == 2
    # другой день и другой предмет — свои счётчики
    assert m.place_subject(5, 1)
    assert m.place_subject(6, 0)

def test_unplace_frees_cap():
    m = ConstraintModel()
    m.place_subject(5, 4)
    m.place_subject(5, 4)
    m.unplace_subject(5, 4)
    assert m.can_place_subject(5, 4)
    m.unplace_subject(5, 4)
    m.unplace_subject(5, 4)
    assert m.subject_count(5, 4) == 0

def test_custom_daily_cap():
    m = ConstraintModel(daily_cap=1)
    assert m.place_subject(1, 0)
    assert not m.place_subject(1, 0)
