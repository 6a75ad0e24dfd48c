from __future__ import annotations

from flask import Blueprint, abort, current_app, g, request, send_file
from sqlalchemy.orm import Session

from app.docutrack.audit import record_event
from app.docutrack.db import db_session
from app.docutrack.models import User
from app.docutrack.modules.documents.models import Document
from app.docutrack.modules.documents.repository import SqlAlchemyDocumentRepository
from app.docutrack.modules.documents.service import (
    DocumentLifecycleManager,
    normalize_status,
    requires_review,
    serialize_document,
    to_download_fileobj,
)
from app.docutrack.modules.notifications.service import dispatch_event
from app.docutrack.rbac import require_permission, user_has_permission, user_has_role
from app.docutrack.storage import storage_from_config
from app.docutrack.utils import fail, json_body, ok

bp = Blueprint("documents", __name__)

_TRACKED_FIELDS = ("name", "status", "priority", "deadline")


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        # RBAC decorator should prevent this.
        raise RuntimeError("No current user")
    return u


def _manager(s: Session) -> DocumentLifecycleManager:
    cfg = current_app.config
    return DocumentLifecycleManager(
        SqlAlchemyDocumentRepository(s),
        actor=_current_user().email,
        notify=lambda event: dispatch_event(s, event),
        storage=storage_from_config(cfg),
        enforce_transitions=bool(cfg.get("ENFORCE_STATUS_TRANSITIONS", True)),
        default_deadline_days=int(cfg.get("DEFAULT_DEADLINE_DAYS") or 7),
    )


def _sees_all(user: User) -> bool:
    return user_has_permission(user, "docs.assign")


def _visible(user: User, doc: Document | None) -> bool:
    if doc is None:
        return False
    if _sees_all(user) or doc.uploaded_by == user.email:
        return True
    # Staff work the shared queue plus whatever was assigned to them; clients only see their uploads.
    return user_has_permission(user, "docs.edit") and doc.assigned_to in (None, user.email)


def _get_doc_or_404(mgr: DocumentLifecycleManager, doc_id: str) -> Document:
    d = mgr.load_document(doc_id)
    if not _visible(_current_user(), d):
        abort(404)
    return d


def _snapshot(d: Document) -> dict[str, str]:
    return {f: str(getattr(d, f)) for f in _TRACKED_FIELDS}


@bp.get("")
@require_permission("docs.view")
def list_documents():
    s = db_session()
    u = _current_user()
    docs = [d for d in _manager(s).get_all_documents() if _visible(u, d)]
    include_versions = (request.args.get("versions") or "").strip() == "1"
    return ok([serialize_document(d, include_versions=include_versions) for d in docs])


@bp.post("")
@require_permission("docs.upload")
def create_document():
    s = db_session()
    u = _current_user()
    mgr = _manager(s)

    f = request.files.get("file")
    if f is not None and f.filename:
        data = f.read()
        doc = mgr.upload_document(
            f.filename,
            data,
            request.form.to_dict(),
            content_type=(f.mimetype or "application/octet-stream").strip(),
        )
    else:
        payload = json_body()
        name = str(payload.get("name") or "").strip()
        content = payload.get("content")
        if not name or not isinstance(content, str):
            return fail("Choose a file to upload, or send a name and text content.", 400)
        doc = mgr.upload_document(name, b"", payload, text=content)

    record_event(
        s,
        actor=u,
        action="doc.upload",
        entity_type="Document",
        entity_id=doc.id,
        metadata={
            "name": doc.name,
            "type": doc.doc_type,
            "client_name": doc.client_name,
            "sha256": doc.original_sha256,
            "size_bytes": doc.original_size_bytes,
        },
    )
    s.commit()
    return ok(serialize_document(doc), 201, message="Document uploaded.")


@bp.get("/<doc_id>")
@require_permission("docs.view")
def get_document(doc_id: str):
    s = db_session()
    d = _get_doc_or_404(_manager(s), doc_id)
    return ok(serialize_document(d))


@bp.put("/<doc_id>")
@require_permission("docs.edit")
def update_document(doc_id: str):
    s = db_session()
    u = _current_user()
    mgr = _manager(s)
    d = _get_doc_or_404(mgr, doc_id)

    payload = json_body()
    payload["id"] = d.id
    if "status" in payload:
        payload["status"] = normalize_status(payload["status"])
    if requires_review(d.status, payload.get("status")) and not user_has_permission(u, "docs.review"):
        g.missing_permission = "docs.review"
        abort(403)

    before = _snapshot(d)
    if not mgr.save_document(payload):
        abort(404)
    after = _snapshot(d)
    changed = {k: {"from": before[k], "to": after[k]} for k in _TRACKED_FIELDS if before[k] != after[k]}

    record_event(
        s,
        actor=u,
        action="doc.status" if "status" in changed else "doc.save",
        entity_type="Document",
        entity_id=d.id,
        reason=str(payload.get("reason") or "").strip() or None,
        metadata={"changes": changed} if changed else None,
    )
    s.commit()
    return ok(serialize_document(d), message="Document saved.")


@bp.post("/<doc_id>/assign")
@require_permission("docs.assign")
def assign_document(doc_id: str):
    s = db_session()
    u = _current_user()
    mgr = _manager(s)
    d = _get_doc_or_404(mgr, doc_id)

    payload = json_body()
    assignee = str(payload.get("assignedTo") or "").strip().lower()
    staff = s.query(User).filter(User.email == assignee).one_or_none() if assignee else None
    if not staff or not user_has_role(staff, "staff"):
        return fail("assignedTo must be an active processing-staff member.", 400)

    previous = d.assigned_to
    if not mgr.assign_document(doc_id, assignee, payload.get("deadline")):
        abort(404)
    record_event(
        s,
        actor=u,
        action="doc.assign",
        entity_type="Document",
        entity_id=d.id,
        metadata={"assigned_to": assignee, "previous": previous, "deadline": d.deadline.isoformat()},
    )
    s.commit()
    return ok(serialize_document(d), message=f"Document assigned to {assignee}.")


@bp.delete("/<doc_id>")
@require_permission("docs.delete")
def delete_document(doc_id: str):
    s = db_session()
    u = _current_user()
    mgr = _manager(s)
    d = _get_doc_or_404(mgr, doc_id)
    name = d.name

    if not mgr.delete_document(doc_id):
        abort(404)
    record_event(s, actor=u, action="doc.delete", entity_type="Document", entity_id=doc_id, metadata={"name": name})
    s.commit()
    return ok({"id": doc_id}, message="Document deleted.")


@bp.post("/<doc_id>/versions")
@require_permission("docs.edit")
def create_version(doc_id: str):
    s = db_session()
    u = _current_user()
    mgr = _manager(s)
    d = _get_doc_or_404(mgr, doc_id)

    payload = json_body()
    content = payload.get("content")
    if not isinstance(content, str):
        return fail("content is required.", 400)

    if not mgr.create_new_version(doc_id, content, payload.get("notes")):
        abort(404)
    record_event(
        s,
        actor=u,
        action="doc.version",
        entity_type="Document",
        entity_id=d.id,
        metadata={"version": d.current_version, "notes": payload.get("notes")},
    )
    s.commit()
    return ok(serialize_document(d), 201, message=f"Version {d.current_version} created.")


@bp.get("/<doc_id>/download")
@require_permission("docs.download")
def download_document(doc_id: str):
    s = db_session()
    u = _current_user()
    mgr = _manager(s)
    d = _get_doc_or_404(mgr, doc_id)

    export = mgr.download_document(doc_id, request.args.get("format") or "txt")
    record_event(
        s,
        actor=u,
        action="doc.download",
        entity_type="Document",
        entity_id=d.id,
        metadata={"filename": export.filename, "version": d.current_version},
    )
    s.commit()

    return send_file(
        to_download_fileobj(export.data),
        mimetype=export.mimetype,
        as_attachment=True,
        download_name=export.filename,
        max_age=0,
    )


@bp.get("/<doc_id>/original")
@require_permission("docs.download")
def download_original(doc_id: str):
    s = db_session()
    u = _current_user()
    mgr = _manager(s)
    _get_doc_or_404(mgr, doc_id)

    d, fobj = mgr.get_original(doc_id)
    record_event(
        s,
        actor=u,
        action="doc.download",
        entity_type="Document",
        entity_id=d.id,
        metadata={"filename": d.original_filename, "original": True},
    )
    s.commit()

    return send_file(
        fobj,
        mimetype=d.original_content_type or "application/octet-stream",
        as_attachment=True,
        download_name=d.original_filename or "document.bin",
        max_age=0,
    )
