# blueprints/constraints/routes.py
from flask import Blueprint, request, jsonify, current_app
from pydantic import ValidationError
from werkzeug.exceptions import BadRequest

from blueprints.auth.routes import manager_required
from blueprints.planning.dto import Timetable
from blueprints.planning.schemas import CheckIn
from blueprints.planning.store import load_class_context, load_teacher_constraints
from .services import validate_timetable

api_bp = Blueprint("constraints_api", __name__)

@api_bp.post("/constraints/check")
@manager_required
def constraints_check():
    """Проверка кандидата из любого источника; ничего не сохраняет."""
    try:
        data = CheckIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        details = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
        return jsonify({"ok": False, "errors": [{"code": "BAD_REQUEST", "details": details}]}), 400

    ctx = load_class_context(data.class_id)
    if ctx is None:
        return jsonify({"ok": False, "errors": [{"code": "NOT_FOUND", "details": {"class_id": data.class_id}}]}), 404

    constraints = load_teacher_constraints(ctx.teacher_ids(), exclude_class_id=ctx.class_id)
    timetable = Timetable(ctx.class_id, tuple(data.to_placements()))
    violations = validate_timetable(
        timetable, ctx, constraints,
        lesson_minutes=current_app.config.get("TIMETABLE_LESSON_MINUTES", 50),
        daily_cap=current_app.config.get("TIMETABLE_SUBJECT_DAILY_CAP", 2),
    )

    if not violations:
        return jsonify({"ok": True, "errors": []}), 200
    # ВСЕ бизнес-ошибки — 409
    return jsonify({"ok": False, "errors": [v.to_dict() for v in violations]}), 409

@api_bp.app_errorhandler(BadRequest)
def handle_bad_request(err):
    # битый JSON и прочие 400 — в том же формате, что и остальное API
    return jsonify({"ok": False, "errors": [{"code": "BAD_REQUEST", "details": getattr(err, "description", None)}]}), 400
