from __future__ import annotations

import hashlib
import io
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import PurePath
from typing import Any, BinaryIO

from werkzeug.utils import secure_filename

from app.docutrack.modules.documents.export import EXPORT_FORMATS, DocumentExport, export_document
from app.docutrack.modules.documents.extract import extract_text
from app.docutrack.modules.documents.models import Document, DocumentVersion
from app.docutrack.modules.documents.repository import DocumentRepository
from app.docutrack.storage import Storage, StorageError

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = ("pdf", "doc", "docx", "txt", "other")
PRIORITIES = ("high", "medium", "low")

STATUS_ASSIGNED = "assigned"
STATUS_IN_PROGRESS = "in-progress"
STATUS_REVIEW = "review"
STATUS_COMPLETED = "completed"
STATUSES = (STATUS_ASSIGNED, STATUS_IN_PROGRESS, STATUS_REVIEW, STATUS_COMPLETED)

ALLOWED_TRANSITIONS = frozenset(
    {
        (STATUS_ASSIGNED, STATUS_IN_PROGRESS),  # staff: start
        (STATUS_IN_PROGRESS, STATUS_REVIEW),  # staff: mark processed
        (STATUS_REVIEW, STATUS_COMPLETED),  # director: approve
        (STATUS_REVIEW, STATUS_IN_PROGRESS),  # director: reject / return for revision
    }
)

# Client dashboards only see three buckets.
CLIENT_STATUS = {
    STATUS_ASSIGNED: "pending",
    STATUS_IN_PROGRESS: "processing",
    STATUS_REVIEW: "processing",
    STATUS_COMPLETED: "completed",
}


class DocumentError(Exception):
    pass


class DocumentNotFound(DocumentError):
    def __init__(self, doc_id: str) -> None:
        super().__init__(f"Document not found: {doc_id}")
        self.doc_id = doc_id


class ValidationFailure(DocumentError):
    pass


class IllegalTransition(DocumentError):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Illegal status transition: {current} -> {requested}")
        self.current = current
        self.requested = requested


class ConcurrentModification(DocumentError):
    pass


def sanitize_upload_filename(filename: str) -> str:
    fn = secure_filename(filename or "")
    return fn or "document.bin"


def file_digest_and_bytes(file_bytes: bytes) -> tuple[str, int]:
    h = hashlib.sha256()
    h.update(file_bytes)
    return (h.hexdigest(), len(file_bytes))


def to_download_fileobj(file_bytes: bytes) -> io.BytesIO:
    bio = io.BytesIO(file_bytes)
    bio.seek(0)
    return bio


def doc_type_from_filename(filename: str) -> str:
    ext = PurePath((filename or "").strip().lower()).suffix.lstrip(".")
    return ext if ext in DOCUMENT_TYPES else "other"


def parse_date(value: Any) -> date | None:
    """Accepts a date, "YYYY-MM-DD" or a full ISO timestamp (as browsers send them)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationFailure(f"Invalid date: {value!r}")


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationFailure(f"Invalid timestamp: {value!r}")


def check_transition(current: str, requested: str, *, enforce: bool = True) -> None:
    if requested not in STATUSES:
        raise ValidationFailure(f"Invalid status. Must be one of: {', '.join(STATUSES)}")
    if current == requested or not enforce:
        return
    if (current, requested) not in ALLOWED_TRANSITIONS:
        raise IllegalTransition(current, requested)


def normalize_status(value: Any) -> str:
    return str(value or "").strip().lower()


def requires_review(current: str, requested: str) -> bool:
    """Approve (-> completed) and reject (review -> in-progress) are reviewer decisions."""
    if not requested or requested == current:
        return False
    return requested == STATUS_COMPLETED or (current == STATUS_REVIEW and requested == STATUS_IN_PROGRESS)


def client_status(status: str) -> str:
    return CLIENT_STATUS.get(status, status)


def serialize_version(v: DocumentVersion) -> dict[str, Any]:
    return {
        "version": v.version,
        "content": v.content,
        "modifiedBy": v.modified_by,
        "modifiedDate": v.modified_date.isoformat(),
        "notes": v.notes,
    }


def serialize_document(doc: Document, *, include_versions: bool = True) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": doc.id,
        "name": doc.name,
        "type": doc.doc_type,
        "content": doc.content,
        "clientName": doc.client_name,
        "department": doc.department,
        "uploadedBy": doc.uploaded_by,
        "status": doc.status,
        "clientStatus": client_status(doc.status),
        "priority": doc.priority,
        "assignedDate": doc.assigned_date.isoformat(),
        "deadline": doc.deadline.isoformat(),
        "currentVersion": doc.current_version,
        "lastModified": doc.last_modified.isoformat(),
        "assignedTo": doc.assigned_to,
        "hasOriginal": bool(doc.original_storage_key),
    }
    if include_versions:
        out["versions"] = [serialize_version(v) for v in doc.versions]
    return out


@dataclass(frozen=True)
class LifecycleEvent:
    """Something the opposite role should hear about. Exactly one of to_user/to_role is set."""

    type: str
    document_id: str
    document_name: str
    from_user: str
    title: str
    message: str
    to_user: str | None = None
    to_role: str | None = None


def transition_event(doc: Document, old: str, new: str, actor: str) -> LifecycleEvent | None:
    base = {"document_id": doc.id, "document_name": doc.name, "from_user": actor}
    if (old, new) == (STATUS_ASSIGNED, STATUS_IN_PROGRESS):
        return LifecycleEvent(
            type="document_edited",
            title="Document Being Processed",
            message=f"{doc.name} is now being processed by {actor}",
            to_role="director",
            **base,
        )
    if new == STATUS_REVIEW:
        return LifecycleEvent(
            type="document_processed",
            title="Document Ready for Review",
            message=f"{doc.name} has been processed and is ready for your review and validation.",
            to_role="director",
            **base,
        )
    if new == STATUS_COMPLETED:
        return LifecycleEvent(
            type="document_approved",
            title="Document Approved",
            message=f"{doc.name} has been approved by the Deputy Director.",
            to_user=doc.uploaded_by,
            **base,
        )
    if (old, new) == (STATUS_REVIEW, STATUS_IN_PROGRESS):
        return LifecycleEvent(
            type="document_rejected",
            title="Document Rejected",
            message=f"{doc.name} has been rejected by the Deputy Director and returned for revision.",
            to_user=doc.uploaded_by,
            **base,
        )
    return None


Notifier = Callable[[LifecycleEvent], None]


class DocumentLifecycleManager:
    """
    Owns Document/DocumentVersion mutation: status transitions, version append,
    upload, delete and export. Persistence goes through the injected repository;
    committing is the caller's job.

    Not-found is reported through return values (None/False). Validation problems,
    illegal transitions and stale writes raise before anything is touched.
    """

    def __init__(
        self,
        repo: DocumentRepository,
        *,
        actor: str,
        notify: Notifier | None = None,
        storage: Storage | None = None,
        enforce_transitions: bool = True,
        default_deadline_days: int = 7,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.repo = repo
        self.actor = actor
        self.notify = notify
        self.storage = storage
        self.enforce_transitions = enforce_transitions
        self.default_deadline_days = default_deadline_days
        self._clock = clock

    def _touch(self, doc: Document) -> datetime:
        now = self._clock()
        # lastModified must move forward even on coarse clocks.
        if doc.last_modified is not None and now <= doc.last_modified:
            now = doc.last_modified + timedelta(microseconds=1)
        doc.last_modified = now
        return now

    def _emit(self, event: LifecycleEvent | None) -> None:
        if event is not None and self.notify is not None:
            self.notify(event)

    def load_document(self, doc_id: str | None) -> Document | None:
        if not doc_id:
            return None
        return self.repo.get(str(doc_id))

    def get_all_documents(self) -> list[Document]:
        return self.repo.list()

    def _validate_changes(self, doc: Document, payload: dict[str, Any]) -> dict[str, Any]:
        expected = payload.get("lastModified")
        if expected is not None and parse_timestamp(expected) != doc.last_modified:
            raise ConcurrentModification(
                f"Document {doc.id} was modified by someone else (last modified {doc.last_modified.isoformat()})."
            )

        content = payload.get("content")
        if content is not None and content != doc.content:
            raise ValidationFailure("Content changes must be saved as a new version.")

        changes: dict[str, Any] = {}
        if "name" in payload:
            name = str(payload.get("name") or "").strip()
            if not name:
                raise ValidationFailure("Name is required.")
            if name != doc.name:
                changes["name"] = name
        if "priority" in payload:
            priority = str(payload.get("priority") or "").strip().lower()
            if priority not in PRIORITIES:
                raise ValidationFailure(f"Invalid priority. Must be one of: {', '.join(PRIORITIES)}")
            if priority != doc.priority:
                changes["priority"] = priority
        if "deadline" in payload:
            deadline = parse_date(payload.get("deadline"))
            if deadline is None:
                raise ValidationFailure("Deadline is required.")
            if deadline < doc.assigned_date:
                raise ValidationFailure("Deadline cannot be before the assigned date.")
            if deadline != doc.deadline:
                changes["deadline"] = deadline
        if "status" in payload:
            status = normalize_status(payload.get("status"))
            check_transition(doc.status, status, enforce=self.enforce_transitions)
            if status != doc.status:
                changes["status"] = status
        return changes

    def save_document(self, payload: dict[str, Any]) -> bool:
        """
        Overwrite the writable fields (name, status, priority, deadline) of the
        stored document matching payload["id"]. Does not create a version.
        """
        doc = self.load_document(payload.get("id"))
        if doc is None:
            logger.info("save_document: no document with id=%s", payload.get("id"))
            return False

        changes = self._validate_changes(doc, payload)
        old_status = doc.status
        for attr, value in changes.items():
            setattr(doc, attr, value)
        self._touch(doc)
        logger.info("Saved document %s (%s) by %s", doc.id, ", ".join(sorted(changes)) or "no changes", self.actor)

        if "status" in changes:
            self._emit(transition_event(doc, old_status, doc.status, self.actor))
        return True

    def create_new_version(self, doc_id: str, content: str, notes: str | None = None) -> bool:
        doc = self.load_document(doc_id)
        if doc is None:
            logger.info("create_new_version: no document with id=%s", doc_id)
            return False
        if not isinstance(content, str):
            raise ValidationFailure("Version content must be text.")

        now = self._touch(doc)
        new_version = doc.current_version + 1
        doc.versions.append(
            DocumentVersion(
                version=new_version,
                content=content,
                modified_by=self.actor,
                modified_date=now,
                notes=str(notes or "").strip() or None,
            )
        )
        doc.current_version = new_version
        # Reopens completed documents too.
        doc.status = STATUS_IN_PROGRESS
        logger.info("Document %s now at version %s (by %s)", doc.id, new_version, self.actor)

        self._emit(
            LifecycleEvent(
                type="document_edited",
                document_id=doc.id,
                document_name=doc.name,
                from_user=self.actor,
                title="Document Edited",
                message=f"{doc.name} was updated to version {new_version} by {self.actor}.",
                to_role="director",
            )
        )
        return True

    def assign_document(self, doc_id: str, staff_member: str, deadline: Any) -> bool:
        """
        Hand a document to one processing-staff member with a deadline.
        The caller checks that `staff_member` really is staff.
        """
        doc = self.load_document(doc_id)
        if doc is None:
            logger.info("assign_document: no document with id=%s", doc_id)
            return False
        assignee = str(staff_member or "").strip().lower()
        if not assignee:
            raise ValidationFailure("A staff member is required.")
        due = parse_date(deadline)
        if due is None:
            raise ValidationFailure("Please set a deadline before assigning the document.")
        if due < doc.assigned_date:
            raise ValidationFailure("Deadline cannot be before the assigned date.")

        doc.assigned_to = assignee
        doc.deadline = due
        self._touch(doc)
        logger.info("Assigned document %s to %s (due %s) by %s", doc.id, assignee, due.isoformat(), self.actor)

        self._emit(
            LifecycleEvent(
                type="document_assigned",
                document_id=doc.id,
                document_name=doc.name,
                from_user=self.actor,
                title="New Document Assigned with Deadline",
                message=f"A new document has been assigned to you. Deadline: {due.isoformat()}",
                to_user=assignee,
            )
        )
        return True

    def upload_document(
        self,
        filename: str,
        data: bytes,
        metadata: dict[str, Any] | None = None,
        *,
        content_type: str | None = None,
        text: str | None = None,
    ) -> Document:
        """
        Create a document from an uploaded file. `text` skips extraction
        (used when a client posts content directly instead of a file).
        """
        metadata = metadata or {}
        name = str(filename or "").strip()
        if not name:
            raise ValidationFailure("A file name is required.")

        priority = str(metadata.get("priority") or "medium").strip().lower()
        if priority not in PRIORITIES:
            raise ValidationFailure(f"Invalid priority. Must be one of: {', '.join(PRIORITIES)}")

        now = self._clock()
        today = now.date()
        deadline = parse_date(metadata.get("deadline")) or today + timedelta(days=self.default_deadline_days)
        if deadline < today:
            raise ValidationFailure("Deadline cannot be before the assigned date.")

        doc_type = doc_type_from_filename(name)
        data = data or b""
        content = text if text is not None else extract_text(data, doc_type)

        doc_id = uuid.uuid4().hex
        sha256, size_bytes = file_digest_and_bytes(data)
        storage_key = None
        if self.storage is not None and data:
            storage_key = f"documents/{doc_id}/original/{sanitize_upload_filename(name)}"
            self.storage.put_bytes(storage_key, data, content_type=content_type)

        doc = Document(
            id=doc_id,
            name=name,
            doc_type=doc_type,
            client_name=str(metadata.get("clientName") or "").strip() or "Unknown Client",
            department=str(metadata.get("department") or "").strip() or "General",
            uploaded_by=self.actor,
            status=STATUS_ASSIGNED,
            priority=priority,
            assigned_date=today,
            deadline=deadline,
            current_version=1,
            created_at=now,
            last_modified=now,
            original_filename=name if data else None,
            original_content_type=content_type if data else None,
            original_sha256=sha256 if data else None,
            original_size_bytes=size_bytes if data else None,
            original_storage_key=storage_key,
            versions=[
                DocumentVersion(
                    version=1,
                    content=content,
                    modified_by=self.actor,
                    modified_date=now,
                    notes="Initial upload",
                )
            ],
        )
        self.repo.add(doc)
        logger.info("Uploaded document %s (%s, %s bytes) by %s", doc.id, doc.name, size_bytes, self.actor)

        self._emit(
            LifecycleEvent(
                type="document_assigned",
                document_id=doc.id,
                document_name=doc.name,
                from_user=self.actor,
                title="New Document Assigned",
                message=f"{doc.name} from {doc.client_name} is ready for processing. Deadline: {doc.deadline.isoformat()}",
                to_role="staff",
            )
        )
        return doc

    def delete_document(self, doc_id: str) -> bool:
        doc = self.load_document(doc_id)
        if doc is None:
            logger.info("delete_document: no document with id=%s", doc_id)
            return False
        storage_key = doc.original_storage_key
        self.repo.delete(doc)
        logger.info("Deleted document %s by %s", doc_id, self.actor)
        if storage_key and self.storage is not None:
            try:
                self.storage.delete(storage_key)
            except StorageError as e:
                logger.warning("Document %s deleted but original upload %s was not removed: %s", doc_id, storage_key, e)
        return True

    def download_document(self, doc_id: str, fmt: str = "txt") -> DocumentExport:
        doc = self.load_document(doc_id)
        if doc is None:
            raise DocumentNotFound(doc_id)
        fmt = (fmt or "txt").strip().lower()
        if fmt not in EXPORT_FORMATS:
            raise ValidationFailure(f"Unsupported format. Must be one of: {', '.join(EXPORT_FORMATS)}")
        return export_document(doc, fmt)

    def get_original(self, doc_id: str) -> tuple[Document, BinaryIO]:
        doc = self.load_document(doc_id)
        if doc is None or not doc.original_storage_key or self.storage is None:
            raise DocumentNotFound(doc_id)
        return doc, self.storage.open(doc.original_storage_key)
