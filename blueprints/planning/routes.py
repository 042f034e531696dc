# blueprints/planning/routes.py
from __future__ import annotations
from typing import Any, Dict

from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from pydantic import ValidationError

from extensions import db
from models import SchoolClass
from blueprints.auth.routes import manager_required
from blueprints.constraints.services import validate_timetable
from .dto import ClassContext, Timetable
from .errors import PartialFailure, PlanResult, ValidationFailed
from .schemas import ClassIn, CommitIn, ProposeIn
from .services import BacktrackingStrategy, ProposalStrategy, generate_timetable, preview_store
from .store import clear_timetable, load_class_context, load_teacher_constraints, save_timetable

api_bp = Blueprint("planning_api", __name__)

# ---------- helpers ----------
def bad_request(details: Any):
    return jsonify({"ok": False, "errors": [{"code": "BAD_REQUEST", "details": details}]}), 400

def not_found(details: Any = None):
    return jsonify({"ok": False, "errors": [{"code": "NOT_FOUND", "details": details}]}), 404

def conflict(result_error: Dict[str, Any], **extra):
    # ВСЕ бизнес-ошибки — 409
    return jsonify({"ok": False, **extra, "errors": [result_error]}), 409

def validation_details(e: ValidationError) -> list:
    return [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]

def core_settings() -> Dict[str, int]:
    cfg = current_app.config
    return {
        "lesson_minutes": cfg.get("TIMETABLE_LESSON_MINUTES", 50),
        "daily_cap": cfg.get("TIMETABLE_SUBJECT_DAILY_CAP", 2),
    }

def default_strategy() -> BacktrackingStrategy:
    cfg = current_app.config
    return BacktrackingStrategy(
        budget_per_unit=cfg.get("TIMETABLE_BACKTRACK_BUDGET_PER_UNIT", 200),
        min_budget=cfg.get("TIMETABLE_BACKTRACK_MIN_BUDGET", 1000),
    )

def fresh_constraints(ctx: ClassContext):
    # свежий снимок: обязательства + уроки в других классах
    return load_teacher_constraints(ctx.teacher_ids(), exclude_class_id=ctx.class_id)

def preview_view(pid: str, pp: Dict[str, Any]) -> Dict[str, Any]:
    tt: Timetable = pp["timetable"]
    return {
        "preview_id": pid,
        "class_id": pp["class_id"],
        "source": pp["source"],
        "complete": pp["complete"],
        "placements": [p.to_dict() for p in tt],
    }

def save_preview(ctx: ClassContext, timetable: Timetable, *, source: str, complete: bool) -> str:
    return preview_store.save({
        "class_id": ctx.class_id,
        "timetable": timetable,
        "source": source,
        "complete": complete,
    })

def respond_with_result(ctx: ClassContext, result: PlanResult, source: str):
    if result.ok:
        pid = save_preview(ctx, result.timetable, source=source, complete=True)
        body = preview_view(pid, preview_store.get(pid))
        return jsonify({"ok": True, **body, "backtracks": result.backtracks}), 200

    if isinstance(result.error, PartialFailure):
        # частичный результат тоже кладём в предпросмотр, чтобы его можно было посмотреть
        partial = Timetable(ctx.class_id, tuple(result.error.placed))
        pid = save_preview(ctx, partial, source=source, complete=False)
        return conflict(result.error_dict(), preview_id=pid)
    return conflict(result.error_dict())

# ---------- API ----------
@api_bp.post("/admin/planning/generate")
@manager_required
def generate():
    try:
        data = ClassIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(validation_details(e))

    ctx = load_class_context(data.class_id)
    if ctx is None:
        return not_found({"class_id": data.class_id})

    result = generate_timetable(ctx, fresh_constraints(ctx), strategy=default_strategy(), **core_settings())
    return respond_with_result(ctx, result, source="scheduler")

@api_bp.post("/admin/planning/propose")
@manager_required
def propose():
    """Внешнее предложение: не доверяем, прогоняем через валидатор."""
    try:
        data = ProposeIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(validation_details(e))

    ctx = load_class_context(data.class_id)
    if ctx is None:
        return not_found({"class_id": data.class_id})

    placements = [p.model_copy(update={"is_generated": True}).to_placement() for p in data.placements]
    result = generate_timetable(ctx, fresh_constraints(ctx), strategy=ProposalStrategy(placements), **core_settings())
    return respond_with_result(ctx, result, source="proposal")

@api_bp.get("/admin/planning/preview")
@manager_required
def planning_preview():
    pid = request.args.get("id")
    if not pid:
        return bad_request({"field": "id"})

    pp = preview_store.get(pid)
    if not pp:
        return not_found({"preview_id": pid})
    return jsonify({"ok": True, **preview_view(pid, pp)})

@api_bp.post("/admin/planning/commit")
@manager_required
def planning_commit():
    try:
        data = CommitIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(validation_details(e))

    pp = preview_store.get(data.preview_id)
    if not pp:
        return not_found({"preview_id": data.preview_id})

    ctx = load_class_context(pp["class_id"])
    if ctx is None:
        return not_found({"class_id": pp["class_id"]})

    # перепроверка перед записью: данные могли измениться после генерации
    timetable: Timetable = pp["timetable"]
    violations = validate_timetable(timetable, ctx, fresh_constraints(ctx), **core_settings())
    if violations:
        return conflict(PlanResult(error=ValidationFailed(violations)).error_dict())

    committed = save_timetable(ctx.class_id, timetable, user_id=current_user.id)
    preview_store.delete(data.preview_id)
    return jsonify({"ok": True, "class_id": ctx.class_id, "committed": committed}), 200

@api_bp.post("/admin/planning/clear")
@manager_required
def planning_clear():
    try:
        data = ClassIn.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return bad_request(validation_details(e))

    if db.session.get(SchoolClass, data.class_id) is None:
        return not_found({"class_id": data.class_id})

    deleted = clear_timetable(data.class_id, user_id=current_user.id)
    return jsonify({"ok": True, "class_id": data.class_id, "deleted": deleted}), 200
