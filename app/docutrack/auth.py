from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

from flask import Blueprint, current_app, g, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from app.docutrack.audit import record_event
from app.docutrack.db import db_session
from app.docutrack.models import Role, User
from app.docutrack.security import bearer_token, issue_token, verify_token
from app.docutrack.utils import fail, json_body, ok

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds

# Role values sent by the signup form -> role keys
ROLE_ALIASES = {
    "user": "client",
    "client": "client",
    "processing-staff": "staff",
    "staff": "staff",
    "deputy-director": "director",
    "director": "director",
}

_SIGNUP_REQUIRED = ("firstName", "lastName", "email", "password", "confirmPassword", "role")


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def validate_signup(payload: dict[str, Any]) -> str | None:
    """Returns an error message, or None when the signup payload is acceptable."""
    required = list(_SIGNUP_REQUIRED)
    role = ROLE_ALIASES.get(str(payload.get("role") or "").strip().lower())
    # Organization/department only matter for staff-side roles.
    if role != "client":
        required += ["organization", "department"]
    if any(not str(payload.get(f) or "").strip() for f in required):
        return "Missing required fields"
    if "@" not in str(payload.get("email")):
        return "Invalid email address"
    if payload.get("password") != payload.get("confirmPassword"):
        return "Passwords do not match"
    if role is None:
        return "Unknown role"
    return None


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "organization": user.organization,
        "department": user.department,
        "roles": user.role_keys,
    }


def load_current_user() -> None:
    """
    Loads g.current_user from the bearer token.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    if request.path.startswith(("/health", "/healthz")):
        return

    token = bearer_token(request)
    if not token:
        return
    user_id = verify_token(token)
    if user_id is None:
        return

    try:
        s = db_session()
        user = s.get(User, user_id)
    except SQLAlchemyError as e:
        current_app.logger.error("load_current_user DB error (treating as anonymous): %s", e)
        return
    if user and user.is_active:
        g.current_user = user


@bp.post("/register")
def register():
    payload = json_body()
    error = validate_signup(payload)
    if error:
        return fail(error, 400)

    email = str(payload["email"]).strip().lower()
    role_key = ROLE_ALIASES[str(payload["role"]).strip().lower()]
    if role_key == "director" and not current_app.config.get("ALLOW_DIRECTOR_SIGNUP"):
        current_app.logger.warning("Rejected self-service director signup for %s", email)
        return fail("Director accounts are provisioned by an administrator.", 403)

    s = db_session()
    if s.query(User).filter(User.email == email).one_or_none():
        return fail("An account with this email already exists.", 409)

    role = s.query(Role).filter(Role.key == role_key).one_or_none()
    if not role:
        current_app.logger.error("Role %r missing; run scripts/init_db.py", role_key)
        return fail("Roles are not initialized.", 503)

    user = User(
        email=email,
        password_hash=generate_password_hash(str(payload["password"])),
        first_name=str(payload["firstName"]).strip(),
        last_name=str(payload["lastName"]).strip(),
        organization=str(payload.get("organization") or "").strip() or None,
        department=str(payload.get("department") or "").strip() or None,
        is_active=True,
    )
    user.roles.append(role)
    s.add(user)
    s.flush()
    record_event(s, actor=user, action="auth.register", entity_type="User", entity_id=str(user.id), metadata={"role": role_key})
    s.commit()
    current_app.logger.info("Registered user %s as %s", email, role_key)
    return ok(serialize_user(user), 201, message="Account created.")


@bp.post("/login")
def login():
    payload = json_body()
    email = str(payload.get("email") or "").strip().lower()
    password = str(payload.get("password") or "")
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        return fail("Too many login attempts. Please wait 5 minutes.", 429)

    _record_attempt(ip)

    try:
        s = db_session()
        user = s.query(User).filter(User.email == email).one_or_none()
        if not user or not user.is_active or not check_password_hash(user.password_hash, password):
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=email,
                reason="Invalid credentials",
                metadata={"email": email},
            )
            s.commit()
            return fail("Invalid credentials.", 401)

        _login_attempts[ip].clear()
        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        s.commit()
        return ok({"token": issue_token(user.id), "user": serialize_user(user)})
    except Exception:
        current_app.logger.exception("Login crashed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        raise


@bp.get("/me")
def me():
    user = getattr(g, "current_user", None)
    if not user:
        return fail("Unauthorized.", 401)
    return ok(serialize_user(user))
