# blueprints/auth/routes.py
from __future__ import annotations
import logging
import time
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, request, jsonify, current_app, abort
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import CSRFError
from werkzeug.security import check_password_hash

from extensions import db, login_manager, csrf
from models import User, UserStatus

api_bp = Blueprint("auth_api", __name__)
log = logging.getLogger(__name__)

# ---- безопасные значения по умолчанию
DEFAULT_RL_MAX = 5
DEFAULT_RL_WIN = 300  # 5 минут

@login_manager.user_loader
def load_user(uid: str) -> Optional[User]:
    try:
        return db.session.get(User, int(uid))
    except (TypeError, ValueError):
        return None

def user_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "status": user.status.value,
        "is_manager": user.is_manager,
    }

# ---------- rate limit ----------
def _rl_key(email: str) -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "0.0.0.0").split(",")[0].strip()
    return f"{ip}|{(email or '').lower()}"

def _rl_check_and_hit(email: str) -> bool:
    now = time.time()
    win = current_app.config.get("AUTH_RL_WINDOW", DEFAULT_RL_WIN)
    mx = current_app.config.get("AUTH_RL_MAX", DEFAULT_RL_MAX)
    # ключ: ip|email -> [timestamps], своё хранилище у каждого приложения
    attempts: dict[str, list[float]] = current_app.extensions.setdefault("auth_login_attempts", {})
    bucket = attempts.setdefault(_rl_key(email), [])
    # purge старых
    cutoff = now - win
    while bucket and bucket[0] < cutoff:
        bucket.pop(0)
    if len(bucket) >= mx:
        return False
    bucket.append(now)
    return True

# ---------- декораторы ролей ----------
def manager_required(fn: Callable):
    """Директор, зам. директора или супервайзер."""
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if not current_user.is_manager:
            abort(403)
        return fn(*args, **kwargs)
    return wrapper

def staff_required(fn: Callable):
    # любой одобренный сотрудник; неодобренные не проходят login_required (is_active)
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        return fn(*args, **kwargs)
    return wrapper

# ---------- обработчики 401/403/400 ----------
@login_manager.unauthorized_handler
def _unauth():
    return jsonify({"error": "unauthorized"}), 401

@api_bp.app_errorhandler(403)
def _forbidden(e):
    return jsonify({"error": "forbidden"}), 403

@api_bp.app_errorhandler(CSRFError)
def _csrf_error(e):
    return jsonify({"ok": False, "errors": [{"code": "BAD_REQUEST", "details": e.description}]}), 400

# ---------- API ----------
@api_bp.post("/auth/login")
@csrf.exempt
def api_login():
    payload = request.get_json(silent=True) or request.form or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return jsonify({"error": "missing_credentials"}), 400

    # rate limit
    if not _rl_check_and_hit(email):
        log.warning("login rate limited", extra={"event": "login_rate_limited"})
        return jsonify({"error": "too_many_attempts"}), 429

    user: Optional[User] = User.query.filter_by(email=email).first()
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
        return jsonify({"error": "invalid_credentials"}), 401

    # входят только одобренные
    if user.status != UserStatus.APPROVED:
        return jsonify({"error": "inactive", "status": user.status.value}), 403

    login_user(user, remember=True)
    log.info("user logged in", extra={"event": "login", "user_id": user.id})
    return jsonify({"ok": True, "user": user_dict(user)})

@api_bp.post("/auth/logout")
@login_required
def api_logout():
    logout_user()
    return jsonify({"ok": True})

@api_bp.get("/auth/me")
@login_required
def api_me():
    return jsonify({"ok": True, "user": user_dict(current_user)})
