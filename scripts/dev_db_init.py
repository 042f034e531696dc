# scripts/dev_db_init.py
from datetime import time
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import (
    User, StaffRole, UserStatus, Subject, SchoolClass, ClassAssignment, Commitment,
)
from blueprints.planning.dto import ClassKind

TEACHERS = [
    ("ana@example.com", "Ana Souza"),
    ("bruno@example.com", "Bruno Lima"),
    ("carla@example.com", "Carla Mendes"),
]
# предмет -> (email преподавателя, уроков в неделю); сумма = 25 слотов класса
SUBJECTS = {
    "Matemática": ("ana@example.com", 6),
    "Português": ("bruno@example.com", 5),
    "Ciências": ("ana@example.com", 4),
    "História": ("carla@example.com", 4),
    "Geografia": ("carla@example.com", 3),
    "Inglês": ("bruno@example.com", 3),
}

def _user(email: str, name: str, role: StaffRole) -> User:
    u = User.query.filter_by(email=email).first()
    if not u:
        u = User(email=email, name=name, role=role, status=UserStatus.APPROVED,
                 password_hash=generate_password_hash("pass"))
        db.session.add(u)
    return u

def seed_minimal():
    # Директор для входа
    _user("diretor@example.com", "Diretor", StaffRole.DIRECTOR)
    teachers = {email: _user(email, name, StaffRole.TEACHER) for email, name in TEACHERS}

    subjects = {}
    for name in SUBJECTS:
        s = Subject.query.filter_by(name=name).first()
        if not s:
            s = Subject(name=name)
            db.session.add(s)
        subjects[name] = s

    cls = SchoolClass.query.filter_by(name="6º Ano A").first()
    if not cls:
        # 07:00–12:00, интервал 09:00–09:20 → 5 уроков в день
        cls = SchoolClass(name="6º Ano A", kind=ClassKind.PARTIAL,
                          day_start=time(7, 0), day_end=time(12, 0),
                          break_start=time(9, 0), break_end=time(9, 20))
        db.session.add(cls)

    db.session.flush()

    for name, (email, weekly) in SUBJECTS.items():
        exists = ClassAssignment.query.filter_by(class_id=cls.id, subject_id=subjects[name].id).first()
        if not exists:
            db.session.add(ClassAssignment(class_id=cls.id, subject_id=subjects[name].id,
                                           teacher_id=teachers[email].id, weekly_lessons=weekly))

    bruno = teachers["bruno@example.com"]
    if not Commitment.query.filter_by(teacher_id=bruno.id).first():
        # среда, первые два урока заняты
        db.session.add(Commitment(teacher_id=bruno.id, place="Escola Estadual", weekdays=[2],
                                  start_time=time(7, 0), end_time=time(8, 40)))

    db.session.commit()

if __name__ == "__main__":
    app = create_app("dev")
    with app.app_context():
        db.create_all()
        seed_minimal()
        print("DB initialized and seeded")
