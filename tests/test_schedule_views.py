from datetime import datetime

from blueprints.planning.services import generate_timetable
from blueprints.planning.store import load_class_context, load_teacher_constraints, save_timetable
from blueprints.teacher.services import aggregate_for_teacher

def _save(school):
    cid = school["class_id"]
    ctx = load_class_context(cid)
    result = generate_timetable(ctx, load_teacher_constraints(ctx.teacher_ids(), exclude_class_id=cid))
    save_timetable(cid, result.timetable, user_id=school["director"])

# ---------- расписание класса ----------
def test_class_timetable_with_break_dividers(client, school, login):
    _save(school)
    login("bruno@example.com")
    r = client.get(f"/api/v1/classes/{school['class_id']}/timetable")
    assert r.status_code == 200
    js = r.get_json()
    assert js["entity"] == {"type": "class", "id": school["class_id"], "name": "6A", "kind": "PARTIAL"}
    assert js["has_timetable"] is True
    assert js["lessons"] == 25
    assert len(js["slots"]) == 5
    assert [d["weekday"] for d in js["days"]] == [0, 1, 2, 3, 4]

    monday = js["days"][0]["items"]
    assert [i["start"] for i in monday] == ["07:00", "07:50", "09:00", "09:20", "10:10", "11:00"]
    brk = monday[2]
    assert brk["is_break"] is True and brk["kind"] == "break" and brk["label"] == "Break"
    assert brk["end"] == "09:20"
    assert monday[0]["subject"] == "Math" and monday[0]["teacher"] == "Ana"

def test_class_without_timetable_has_empty_days(client, school, login):
    login("diretor@example.com")
    js = client.get(f"/api/v1/classes/{school['class_id']}/timetable").get_json()
    assert js["has_timetable"] is False
    assert all(d["items"] == [] for d in js["days"])

def test_class_timetable_errors(client, school, login):
    assert client.get(f"/api/v1/classes/{school['class_id']}/timetable").status_code == 401
    login("diretor@example.com")
    r = client.get("/api/v1/classes/999/timetable")
    assert r.status_code == 404
    assert r.get_json()["errors"][0]["code"] == "NOT_FOUND"

# ---------- агенда преподавателя ----------
def test_teacher_agenda(client, school, login):
    _save(school)
    login("ana@example.com")
    r = client.get("/api/v1/teacher/me/agenda")
    assert r.status_code == 200
    js = r.get_json()
    assert js["teacher"] == {"id": school["teachers"]["ana"], "name": "Ana"}
    assert js["counts"]["lessons"] == 10
    assert js["counts"]["hours"] == 8.33
    days_with_lessons = [d for d in js["days"] if d["lessons"]]
    assert js["counts"]["work_days"] == len(days_with_lessons) == 3
    assert {les["class_name"] for d in days_with_lessons for les in d["lessons"]} == {"6A"}
    first = days_with_lessons[0]["lessons"][0]
    assert (first["start"], first["end"]) == ("07:00", "07:50")

def test_agenda_is_teacher_only(client, school, login):
    login("diretor@example.com")
    assert client.get("/api/v1/teacher/me/agenda").status_code == 403

def test_agenda_marks_today(school):
    # 2024-03-06 — среда
    out = aggregate_for_teacher(school["teachers"]["carla"], now=datetime(2024, 3, 6, 10, 0))
    assert out["today"]["weekday"] == 2 and out["today"]["is_school_day"] is True
    assert [d["is_today"] for d in out["days"]] == [False, False, True, False, False]
    assert out["counts"] == {"work_days": 0, "lessons": 0, "hours": 0}

    sunday = aggregate_for_teacher(school["teachers"]["carla"], now=datetime(2024, 3, 10, 10, 0))
    assert sunday["today"]["is_school_day"] is False

# ---------- дашборд ----------
def test_dashboard_summary(client, school, login):
    _save(school)
    login("diretor@example.com")
    r = client.get("/api/v1/admin/dashboard/summary")
    assert r.status_code == 200
    js = r.get_json()
    assert js["counters"] == {"teachers": 3, "classes": 1, "subjects": 6}
    assert js["classes"] == [{"id": school["class_id"], "name": "6A", "kind": "PARTIAL",
                              "has_timetable": True, "required_lessons": 25, "saved_lessons": 25}]
    assert js["audit"][0]["action"] == "timetable_saved"
    assert js["audit"][0]["payload"] == {"lessons": 25, "replaced": 0}

def test_dashboard_is_manager_only(client, school, login):
    login("ana@example.com")
    assert client.get("/api/v1/admin/dashboard/summary").status_code == 403
