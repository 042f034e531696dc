from models import Lesson
from blueprints.planning.services import generate_timetable
from blueprints.planning.store import load_class_context, load_teacher_constraints

URL = "/api/v1/admin/constraints/check"

def _placements(class_id):
    ctx = load_class_context(class_id)
    result = generate_timetable(ctx, load_teacher_constraints(ctx.teacher_ids(), exclude_class_id=class_id))
    return [p.to_dict() for p in result.timetable]

def test_valid_candidate_passes(client, school, login):
    token = login("diretor@example.com")
    cid = school["class_id"]
    r = client.post(URL, json={"class_id": cid, "placements": _placements(cid)},
                    headers={"X-CSRF-Token": token})
    assert r.status_code == 200
    assert r.get_json() == {"ok": True, "errors": []}

def test_invalid_candidate_lists_violations(client, school, login):
    token = login("diretor@example.com")
    cid = school["class_id"]
    placements = _placements(cid)

    # урок Bruno в среду 07:00 попадает на обязательство
    bruno = school["teachers"]["bruno"]
    i = next(k for k, p in enumerate(placements) if p["teacher_id"] != bruno and p["weekday"] == 2
             and p["start"] == "07:00")
    placements[i] = {**placements[i], "teacher_id": bruno}

    r = client.post(URL, json={"class_id": cid, "placements": placements},
                    headers={"X-CSRF-Token": token})
    assert r.status_code == 409
    js = r.get_json()
    assert js["ok"] is False
    codes = {e["code"] for e in js["errors"]}
    assert {"COMPLETENESS", "TEACHER_AVAILABILITY"} <= codes
    for e in js["errors"]:
        assert set(e) == {"code", "reason", "placements", "details"}

def test_empty_candidate_is_incomplete(client, school, login):
    token = login("diretor@example.com")
    r = client.post(URL, json={"class_id": school["class_id"], "placements": []},
                    headers={"X-CSRF-Token": token})
    assert r.status_code == 409
    first = r.get_json()["errors"][0]
    assert first["code"] == "COMPLETENESS"
    assert first["details"] == {"placed": 0, "required": 25}

def test_check_does_not_write(client, school, login):
    token = login("diretor@example.com")
    cid = school["class_id"]
    client.post(URL, json={"class_id": cid, "placements": _placements(cid)}, headers={"X-CSRF-Token": token})
    assert Lesson.query.count() == 0

def test_bad_payloads(client, school, login):
    token = login("diretor@example.com")
    bad = {"class_id": school["class_id"],
           "placements": [{"subject_id": 1, "teacher_id": 1, "weekday": "Saturday", "start": "07:00", "end": "07:50"}]}
    r = client.post(URL, json=bad, headers={"X-CSRF-Token": token})
    assert r.status_code == 400
    assert r.get_json()["errors"][0]["code"] == "BAD_REQUEST"

    reversed_times = {"class_id": school["class_id"],
                      "placements": [{"subject_id": 1, "teacher_id": 1, "weekday": 0, "start": "08:00", "end": "07:10"}]}
    assert client.post(URL, json=reversed_times, headers={"X-CSRF-Token": token}).status_code == 400

    r = client.post(URL, data="{not json", content_type="application/json", headers={"X-CSRF-Token": token})
    assert r.status_code == 400

    r = client.post(URL, json={"class_id": 999, "placements": []}, headers={"X-CSRF-Token": token})
    assert r.status_code == 404

def test_teacher_cannot_check(client, school, login):
    token = login("carla@example.com")
    r = client.post(URL, json={"class_id": school["class_id"], "placements": []}, headers={"X-CSRF-Token": token})
    assert r.status_code == 403
    assert r.get_json() == {"error": "forbidden"}
