from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import TYPE_CHECKING, Any

from flask import abort, g

from app.docutrack.models import Permission, Role, User

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

PERMISSIONS = {
    "docs.view": "Docs: view",
    "docs.upload": "Docs: upload",
    "docs.edit": "Docs: edit / new version",
    "docs.review": "Docs: approve or reject",
    "docs.assign": "Docs: assign to staff",
    "docs.delete": "Docs: delete",
    "docs.download": "Docs: download",
    "notifications.view": "Notifications: view",
    "reports.view": "Reports: view",
}

ROLE_NAMES = {
    "client": "Client",
    "staff": "Processing Staff",
    "director": "Deputy Director",
}

ROLE_PERMISSIONS = {
    "client": ("docs.view", "docs.upload", "docs.download", "notifications.view"),
    "staff": ("docs.view", "docs.upload", "docs.edit", "docs.download", "notifications.view", "reports.view"),
    "director": tuple(PERMISSIONS),
}


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    for role in user.roles:
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def user_has_role(user: User | None, role_key: str) -> bool:
    return bool(user and user.is_active and any(r.key == role_key for r in user.roles))


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # No (valid) bearer token -> 401
            if not user or not user.is_active:
                abort(401)
            # Authenticated but unauthorized -> 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def ensure_roles(s: "Session") -> dict[str, Role]:
    """
    Idempotently create the permissions and the client/staff/director roles.
    Never removes grants that already exist.
    """

    def ensure_perm(key: str, name: str) -> Permission:
        p = s.query(Permission).filter(Permission.key == key).one_or_none()
        if not p:
            p = Permission(key=key, name=name)
            s.add(p)
        return p

    perms = {key: ensure_perm(key, name) for key, name in PERMISSIONS.items()}

    roles: dict[str, Role] = {}
    for key, name in ROLE_NAMES.items():
        role = s.query(Role).filter(Role.key == key).one_or_none()
        if not role:
            role = Role(key=key, name=name)
            s.add(role)
        for perm_key in ROLE_PERMISSIONS[key]:
            if perms[perm_key] not in role.permissions:
                role.permissions.append(perms[perm_key])
        roles[key] = role
    s.flush()
    return roles
