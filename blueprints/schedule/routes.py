# blueprints/schedule/routes.py
from __future__ import annotations
from flask import Blueprint, jsonify, current_app

from blueprints.auth.routes import staff_required
from blueprints.schedule import services as svc

api_bp = Blueprint("schedule_api", __name__)

# ---------- API ----------
@api_bp.get("/classes/<int:class_id>/timetable")
@staff_required
def api_class_timetable(class_id: int):
    data = svc.class_timetable(class_id, current_app.config.get("TIMETABLE_LESSON_MINUTES", 50))
    if data is None:
        return jsonify({"ok": False, "errors": [{"code": "NOT_FOUND", "details": {"class_id": class_id}}]}), 404
    return jsonify({"ok": True, **data})
