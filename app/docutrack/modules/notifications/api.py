from __future__ import annotations

from datetime import datetime

from flask import Blueprint, abort, current_app, g, request

from app.docutrack.audit import record_event
from app.docutrack.db import db_session
from app.docutrack.models import User
from app.docutrack.modules.documents.repository import SqlAlchemyDocumentRepository
from app.docutrack.modules.documents.service import serialize_document
from app.docutrack.modules.notifications.models import Notification
from app.docutrack.modules.notifications.service import (
    check_deadlines,
    get_notifications,
    get_unread_count,
    mark_as_read,
    serialize_notification,
)
from app.docutrack.rbac import require_permission, user_has_role
from app.docutrack.utils import ok

bp = Blueprint("notifications", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _target_user_id() -> str:
    """?userId= defaults to the caller; only directors may read someone else's inbox."""
    u = _current_user()
    requested = (request.args.get("userId") or "").strip().lower()
    if not requested or requested == u.email:
        return u.email
    if not user_has_role(u, "director"):
        abort(403)
    return requested


@bp.get("")
@require_permission("notifications.view")
def list_notifications():
    s = db_session()
    return ok([serialize_notification(n) for n in get_notifications(s, _target_user_id())])


@bp.get("/unread-count")
@require_permission("notifications.view")
def unread_count():
    s = db_session()
    return ok({"count": get_unread_count(s, _target_user_id())})


@bp.post("/<int:notification_id>/read")
@require_permission("notifications.view")
def read_notification(notification_id: int):
    s = db_session()
    u = _current_user()
    n = s.get(Notification, notification_id)
    if not n or (n.to_user != u.email and not user_has_role(u, "director")):
        abort(404)
    mark_as_read(s, notification_id)
    record_event(s, actor=u, action="notification.read", entity_type="Notification", entity_id=str(notification_id))
    s.commit()
    return ok(serialize_notification(n))


@bp.post("/deadline-check")
@require_permission("docs.edit")
def deadline_check():
    s = db_session()
    u = _current_user()
    cfg = current_app.config
    documents = SqlAlchemyDocumentRepository(s).list()
    upcoming, sent = check_deadlines(
        s,
        documents,
        u.email,
        datetime.utcnow().date(),
        window=int(cfg.get("DEADLINE_WARNING_DAYS") or 3),
        remind_within=int(cfg.get("DEADLINE_REMINDER_DAYS") or 1),
    )
    s.commit()
    return ok(
        {
            "upcoming": [serialize_document(d, include_versions=False) for d in upcoming],
            "remindersSent": len(sent),
        }
    )
