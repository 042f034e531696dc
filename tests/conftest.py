# tests/conftest.py
from __future__ import annotations
from datetime import time

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import (
    User, StaffRole, UserStatus, Subject, SchoolClass, ClassAssignment, Commitment,
)
from blueprints.planning.dto import ClassKind

# предмет -> (преподаватель, уроков в неделю); сумма = 25 слотов класса
SUBJECTS = [
    ("Math", "ana", 6),
    ("Portuguese", "bruno", 5),
    ("Science", "ana", 4),
    ("History", "carla", 4),
    ("Geography", "carla", 3),
    ("English", "bruno", 3),
]

@pytest.fixture()
def app():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(app):
    return app.test_client()

def _csrf(client) -> str:
    r = client.get("/api/v1/csrf")
    assert r.status_code == 200
    return r.get_json()["csrf"]

@pytest.fixture()
def csrf(client):
    return lambda: _csrf(client)

@pytest.fixture()
def login(client):
    """Логин и свежий CSRF-токен для дальнейших POST."""
    def _login(email: str, password: str = "pass") -> str:
        r = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.get_json()
        return _csrf(client)
    return _login

def make_user(email: str, name: str, role: StaffRole, status: UserStatus = UserStatus.APPROVED) -> User:
    u = User(email=email, name=name, role=role, status=status,
             password_hash=generate_password_hash("pass"))
    db.session.add(u)
    return u

@pytest.fixture()
def school(app):
    """Директор, три преподавателя, шесть предметов, PARTIAL-класс на 25 уроков."""
    director = make_user("diretor@example.com", "Diretor", StaffRole.DIRECTOR)
    teachers = {
        "ana": make_user("ana@example.com", "Ana", StaffRole.TEACHER),
        "bruno": make_user("bruno@example.com", "Bruno", StaffRole.TEACHER),
        "carla": make_user("carla@example.com", "Carla", StaffRole.TEACHER),
    }
    subjects = {}
    for name, _, _ in SUBJECTS:
        subjects[name] = Subject(name=name)
        db.session.add(subjects[name])

    cls = SchoolClass(name="6A", kind=ClassKind.PARTIAL,
                      day_start=time(7, 0), day_end=time(12, 0),
                      break_start=time(9, 0), break_end=time(9, 20))
    db.session.add(cls)
    db.session.flush()

    for name, who, weekly in SUBJECTS:
        db.session.add(ClassAssignment(class_id=cls.id, subject_id=subjects[name].id,
                                       teacher_id=teachers[who].id, weekly_lessons=weekly))
    # у Bruno по средам первые два урока заняты
    db.session.add(Commitment(teacher_id=teachers["bruno"].id, place="Outra escola", weekdays=[2],
                              start_time=time(7, 0), end_time=time(8, 40)))
    db.session.commit()

    return {
        "director": director.id,
        "teachers": {k: v.id for k, v in teachers.items()},
        "subjects": {k: v.id for k, v in subjects.items()},
        "class_id": cls.id,
    }
