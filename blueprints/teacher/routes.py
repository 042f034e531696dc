# blueprints/teacher/routes.py
from __future__ import annotations
from functools import wraps

from flask import Blueprint, abort, current_app, jsonify
from flask_login import login_required, current_user

from models import StaffRole
from . import services as svc

api_bp = Blueprint("teacher_api", __name__)

# --- строгая защита: только TEACHER ---
def teacher_only_required(fn):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if current_user.role != StaffRole.TEACHER:
            abort(403)
        return fn(*args, **kwargs)
    return wrapper

# ---------- API ----------
@api_bp.get("/teacher/me/agenda")
@teacher_only_required
def api_me_agenda():
    out = svc.aggregate_for_teacher(current_user.id, current_app.config.get("SCHOOL_TZ", "America/Sao_Paulo"))
    return jsonify({"ok": True, "teacher": {"id": current_user.id, "name": current_user.name}, **out})
