from __future__ import annotations
from flask import Blueprint, jsonify
from sqlalchemy import func, select

from extensions import db
from models import AuditLog, ClassAssignment, Lesson, SchoolClass, StaffRole, Subject, User
from blueprints.auth.routes import manager_required

api_bp = Blueprint("admin_api", __name__)

# ---------- API (summary для дашборда) ----------
@api_bp.get("/admin/dashboard/summary")
@manager_required
def dashboard_summary():
    teachers = db.session.scalar(select(func.count(User.id)).where(User.role == StaffRole.TEACHER))
    classes = db.session.scalar(select(func.count(SchoolClass.id)))
    subjects = db.session.scalar(select(func.count(Subject.id)))

    # сколько уроков нужно и сколько сохранено по каждому классу
    required = dict(db.session.execute(
        select(ClassAssignment.class_id, func.sum(ClassAssignment.weekly_lessons))
        .group_by(ClassAssignment.class_id)
    ).all())
    saved = dict(db.session.execute(
        select(Lesson.class_id, func.count(Lesson.id)).group_by(Lesson.class_id)
    ).all())

    items = db.session.scalars(select(SchoolClass).order_by(SchoolClass.name)).all()
    audit = db.session.scalars(select(AuditLog).order_by(AuditLog.id.desc()).limit(10)).all()

    return jsonify({
        "ok": True,
        "counters": {"teachers": teachers, "classes": classes, "subjects": subjects},
        "classes": [{"id": c.id, "name": c.name, "kind": c.kind.value,
                     "has_timetable": c.has_timetable,
                     "required_lessons": int(required.get(c.id) or 0),
                     "saved_lessons": int(saved.get(c.id) or 0)} for c in items],
        "audit": [{"id": a.id, "user_id": a.user_id, "action": a.action, "entity": a.entity,
                   "entity_id": a.entity_id, "payload": a.payload,
                   "created_at": a.created_at.isoformat()} for a in audit],
    })
