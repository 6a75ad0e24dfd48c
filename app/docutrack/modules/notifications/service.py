from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from app.docutrack.modules.notifications.models import Notification

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.docutrack.modules.documents.models import Document
    from app.docutrack.modules.documents.service import LifecycleEvent

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = (
    "document_processed",
    "document_edited",
    "document_approved",
    "document_rejected",
    "document_assigned",
    "deadline_reminder",
)

SYSTEM_SENDER = "system@docutrack.local"


def send_notification(
    s: "Session",
    *,
    type: str,
    title: str,
    message: str,
    document_id: str | None,
    document_name: str | None,
    from_user: str,
    to_user: str,
) -> Notification:
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type!r}")
    n = Notification(
        type=type,
        title=title,
        message=message,
        document_id=document_id,
        document_name=document_name,
        from_user=from_user,
        to_user=(to_user or "").strip().lower(),
        created_at=datetime.utcnow(),
        read=False,
    )
    s.add(n)
    return n


def recipients_for_role(s: "Session", role_key: str) -> list[str]:
    from app.docutrack.models import Role

    role = s.query(Role).filter(Role.key == role_key).one_or_none()
    if not role:
        return []
    return sorted(u.email for u in role.users if u.is_active)


def dispatch_event(s: "Session", event: "LifecycleEvent") -> list[Notification]:
    """Fan a lifecycle event out to its recipient user or every active user of its role."""
    if event.to_user:
        recipients = [event.to_user]
    elif event.to_role:
        recipients = recipients_for_role(s, event.to_role)
    else:
        recipients = []
    if not recipients:
        logger.warning("No recipients for %s on document %s", event.type, event.document_id)

    out = []
    for to_user in recipients:
        out.append(
            send_notification(
                s,
                type=event.type,
                title=event.title,
                message=event.message,
                document_id=event.document_id,
                document_name=event.document_name,
                from_user=event.from_user,
                to_user=to_user,
            )
        )
    return out


def get_notifications(s: "Session", user_id: str) -> list[Notification]:
    """Newest first."""
    return (
        s.query(Notification)
        .filter(Notification.to_user == (user_id or "").strip().lower())
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )


def mark_as_read(s: "Session", notification_id: int) -> bool:
    n = s.get(Notification, notification_id)
    if not n:
        return False
    n.read = True
    return True


def get_unread_count(s: "Session", user_id: str) -> int:
    return (
        s.query(Notification)
        .filter(Notification.to_user == (user_id or "").strip().lower(), Notification.read.is_(False))
        .count()
    )


def serialize_notification(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "documentId": n.document_id,
        "documentName": n.document_name,
        "fromUser": n.from_user,
        "toUser": n.to_user,
        "timestamp": n.created_at.isoformat(),
        "read": n.read,
    }


def days_until(deadline: date, today: date) -> int:
    # due today is 0, overdue is negative
    return (deadline - today).days


def upcoming_deadlines(documents: list["Document"], today: date, window: int = 3) -> list["Document"]:
    """Open documents due within `window` days (not overdue)."""
    return [
        d
        for d in documents
        if d.status != "completed" and 0 <= days_until(d.deadline, today) <= window
    ]


def send_deadline_reminder(s: "Session", document: "Document", to_user: str) -> Notification:
    return send_notification(
        s,
        type="deadline_reminder",
        title="Document Deadline Approaching",
        message=(
            f"Reminder: {document.name} is due on {document.deadline.isoformat()}. "
            "Please ensure timely completion."
        ),
        document_id=document.id,
        document_name=document.name,
        from_user=SYSTEM_SENDER,
        to_user=to_user,
    )


def check_deadlines(
    s: "Session",
    documents: list["Document"],
    to_user: str,
    today: date,
    *,
    window: int = 3,
    remind_within: int = 1,
) -> tuple[list["Document"], list[Notification]]:
    """
    Returns (upcoming documents, reminders sent). Only the shared queue and
    documents assigned to `to_user` count. Reminders go out for documents due
    within `remind_within` days; one per document per day per recipient.
    """
    to_user = (to_user or "").strip().lower()
    mine = [d for d in documents if d.assigned_to in (None, to_user)]
    upcoming = upcoming_deadlines(mine, today, window)
    sent: list[Notification] = []
    for d in upcoming:
        if days_until(d.deadline, today) > remind_within:
            continue
        if _reminded_today(s, d.id, to_user, today):
            continue
        sent.append(send_deadline_reminder(s, d, to_user))
    if sent:
        logger.info("Sent %s deadline reminder(s) to %s", len(sent), to_user)
    return upcoming, sent


def _reminded_today(s: "Session", document_id: str, to_user: str, today: date) -> bool:
    start = datetime(today.year, today.month, today.day)
    return (
        s.query(Notification)
        .filter(
            Notification.type == "deadline_reminder",
            Notification.document_id == document_id,
            Notification.to_user == (to_user or "").strip().lower(),
            Notification.created_at >= start,
        )
        .first()
        is not None
    )
