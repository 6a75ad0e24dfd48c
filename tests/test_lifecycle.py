"""
Unit tests for DocumentLifecycleManager against the in-memory repository.

No Flask app or database: the manager only needs a repository, a clock and
(optionally) a notifier and storage.
"""

from datetime import date, datetime, timedelta

import pytest

from app.docutrack.models import Base  # noqa: F401  (configures mappers)
from app.docutrack.modules.documents.repository import InMemoryDocumentRepository
from app.docutrack.modules.documents.service import (
    ConcurrentModification,
    DocumentLifecycleManager,
    DocumentNotFound,
    IllegalTransition,
    ValidationFailure,
    check_transition,
    client_status,
    doc_type_from_filename,
    parse_date,
)
from app.docutrack.storage import LocalStorage


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


START = datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture()
def clock():
    return FakeClock(START)


@pytest.fixture()
def events():
    return []


@pytest.fixture()
def repo():
    return InMemoryDocumentRepository()


def _manager(repo, clock, events, *, actor="staff@example.com", **kwargs):
    return DocumentLifecycleManager(repo, actor=actor, notify=events.append, clock=clock, **kwargs)


@pytest.fixture()
def mgr(repo, clock, events):
    return _manager(repo, clock, events)


@pytest.fixture()
def doc(repo, clock, events):
    client = _manager(repo, clock, events, actor="client@example.com")
    d = client.upload_document("contract.txt", b"Original terms", {"clientName": "Acme", "department": "Legal"})
    events.clear()
    clock.advance(minutes=5)
    return d


class TestUpload:
    def test_defaults(self, mgr, repo, events):
        d = mgr.upload_document("notes.txt", b"hello\nworld")
        assert len(repo) == 1
        assert d.status == "assigned"
        assert d.priority == "medium"
        assert d.client_name == "Unknown Client"
        assert d.department == "General"
        assert d.doc_type == "txt"
        assert d.assigned_date == START.date()
        assert d.deadline == START.date() + timedelta(days=7)
        assert d.current_version == 1
        assert d.content == "hello\nworld"
        assert [v.notes for v in d.versions] == ["Initial upload"]
        assert d.last_modified == START

        assert len(events) == 1
        assert events[0].type == "document_assigned"
        assert events[0].to_role == "staff"
        assert events[0].document_id == d.id

    def test_configured_default_deadline(self, repo, clock, events):
        mgr = _manager(repo, clock, events, default_deadline_days=3)
        d = mgr.upload_document("a.txt", b"x")
        assert d.deadline == date(2026, 3, 5)

    def test_metadata_is_applied(self, mgr):
        d = mgr.upload_document(
            "scan.pdf",
            b"",
            {"clientName": "Globex", "department": "Finance", "priority": "HIGH", "deadline": "2026-03-20"},
            text="typed in",
        )
        assert d.client_name == "Globex"
        assert d.department == "Finance"
        assert d.priority == "high"
        assert d.deadline == date(2026, 3, 20)
        assert d.doc_type == "pdf"
        assert d.content == "typed in"
        assert d.original_storage_key is None

    def test_invalid_priority_is_rejected(self, mgr, repo, events):
        with pytest.raises(ValidationFailure):
            mgr.upload_document("a.txt", b"x", {"priority": "urgent"})
        assert len(repo) == 0
        assert events == []

    def test_deadline_in_the_past_is_rejected(self, mgr, repo):
        with pytest.raises(ValidationFailure):
            mgr.upload_document("a.txt", b"x", {"deadline": "2026-03-01"})
        assert len(repo) == 0

    def test_blank_filename_is_rejected(self, mgr):
        with pytest.raises(ValidationFailure):
            mgr.upload_document("   ", b"x")

    def test_ids_are_unique(self, mgr):
        a = mgr.upload_document("a.txt", b"x")
        b = mgr.upload_document("a.txt", b"x")
        assert a.id != b.id

    def test_original_bytes_go_to_storage(self, repo, clock, events, tmp_path):
        storage = LocalStorage(root=tmp_path)
        mgr = _manager(repo, clock, events, storage=storage)
        d = mgr.upload_document("Q1 report.txt", b"numbers")
        assert d.original_storage_key == f"documents/{d.id}/original/Q1_report.txt"
        assert d.original_size_bytes == 7
        assert len(d.original_sha256) == 64

        found, fobj = mgr.get_original(d.id)
        with fobj:
            assert fobj.read() == b"numbers"
        assert found is d

        assert mgr.delete_document(d.id) is True
        assert not storage.exists(d.original_storage_key)


class TestSaveDocument:
    def test_missing_or_unknown_id_returns_false(self, mgr, doc):
        assert mgr.save_document({"status": "in-progress"}) is False
        assert mgr.save_document({"id": "does-not-exist", "status": "in-progress"}) is False
        assert doc.status == "assigned"

    def test_full_happy_path_emits_events(self, repo, clock, events, doc):
        staff = _manager(repo, clock, events)
        director = _manager(repo, clock, events, actor="director@example.com")

        assert staff.save_document({"id": doc.id, "status": "in-progress"}) is True
        assert staff.save_document({"id": doc.id, "status": "review"}) is True
        assert director.save_document({"id": doc.id, "status": "completed"}) is True

        assert doc.status == "completed"
        assert [e.type for e in events] == ["document_edited", "document_processed", "document_approved"]
        assert events[0].to_role == "director"
        assert events[1].to_role == "director"
        assert events[2].to_user == "client@example.com"
        assert events[2].from_user == "director@example.com"

    def test_reject_returns_to_in_progress_and_tells_uploader(self, mgr, events, doc):
        mgr.save_document({"id": doc.id, "status": "in-progress"})
        mgr.save_document({"id": doc.id, "status": "review"})
        events.clear()

        mgr.save_document({"id": doc.id, "status": "in-progress"})
        assert doc.status == "in-progress"
        assert [e.type for e in events] == ["document_rejected"]
        assert events[0].to_user == "client@example.com"

    def test_save_does_not_create_a_version(self, mgr, doc):
        mgr.save_document({"id": doc.id, "name": "Contract v1.txt", "priority": "low"})
        assert doc.name == "Contract v1.txt"
        assert doc.priority == "low"
        assert doc.current_version == 1
        assert len(doc.versions) == 1

    def test_illegal_transition_leaves_document_untouched(self, mgr, events, doc):
        before = doc.last_modified
        with pytest.raises(IllegalTransition) as exc:
            mgr.save_document({"id": doc.id, "status": "completed", "priority": "high"})
        assert exc.value.current == "assigned"
        assert exc.value.requested == "completed"
        assert doc.status == "assigned"
        assert doc.priority == "medium"
        assert doc.last_modified == before
        assert events == []

    def test_permissive_mode_allows_any_known_status(self, repo, clock, events, doc):
        mgr = _manager(repo, clock, events, enforce_transitions=False)
        assert mgr.save_document({"id": doc.id, "status": "completed"}) is True
        assert doc.status == "completed"
        assert [e.type for e in events] == ["document_approved"]

        with pytest.raises(ValidationFailure):
            mgr.save_document({"id": doc.id, "status": "archived"})

    def test_same_status_is_not_a_transition(self, mgr, events, doc):
        assert mgr.save_document({"id": doc.id, "status": "assigned"}) is True
        assert events == []

    def test_stale_last_modified_is_rejected(self, mgr, clock, doc):
        seen = doc.last_modified.isoformat()
        mgr.save_document({"id": doc.id, "lastModified": seen, "status": "in-progress"})

        with pytest.raises(ConcurrentModification):
            mgr.save_document({"id": doc.id, "lastModified": seen, "status": "review"})
        assert doc.status == "in-progress"

    def test_current_last_modified_is_accepted(self, mgr, doc):
        assert mgr.save_document({"id": doc.id, "lastModified": doc.last_modified.isoformat(), "priority": "high"})
        assert doc.priority == "high"

    def test_content_changes_must_go_through_versions(self, mgr, doc):
        with pytest.raises(ValidationFailure):
            mgr.save_document({"id": doc.id, "content": "rewritten"})
        assert doc.content == "Original terms"
        # Echoing the unchanged content back is fine.
        assert mgr.save_document({"id": doc.id, "content": "Original terms"}) is True

    def test_deadline_cannot_precede_assigned_date(self, mgr, doc):
        with pytest.raises(ValidationFailure):
            mgr.save_document({"id": doc.id, "deadline": "2026-02-01"})
        mgr.save_document({"id": doc.id, "deadline": "2026-03-02"})
        assert doc.deadline == date(2026, 3, 2)

    def test_blank_name_is_rejected(self, mgr, doc):
        with pytest.raises(ValidationFailure):
            mgr.save_document({"id": doc.id, "name": "  "})

    def test_last_modified_strictly_increases_on_a_frozen_clock(self, mgr, doc):
        stamps = [doc.last_modified]
        for _ in range(3):
            mgr.save_document({"id": doc.id, "priority": "high"})
            stamps.append(doc.last_modified)
        assert stamps == sorted(set(stamps))


class TestVersions:
    def test_new_version_appends_and_reopens(self, mgr, events, doc):
        assert mgr.create_new_version(doc.id, "Amended terms", "clause 4") is True
        assert doc.current_version == 2
        assert doc.content == "Amended terms"
        assert [v.version for v in doc.versions] == [1, 2]
        assert doc.versions[0].content == "Original terms"
        assert doc.versions[1].notes == "clause 4"
        assert doc.versions[1].modified_by == "staff@example.com"
        assert doc.status == "in-progress"
        assert [e.type for e in events] == ["document_edited"]
        assert events[0].to_role == "director"

    def test_new_version_reopens_completed_documents(self, repo, clock, events, doc):
        mgr = _manager(repo, clock, events, enforce_transitions=False)
        mgr.save_document({"id": doc.id, "status": "completed"})
        mgr.create_new_version(doc.id, "post-approval fix")
        assert doc.status == "in-progress"
        assert doc.current_version == 2

    def test_unknown_document_returns_false(self, mgr):
        assert mgr.create_new_version("missing", "text") is False

    def test_non_text_content_is_rejected(self, mgr, doc):
        with pytest.raises(ValidationFailure):
            mgr.create_new_version(doc.id, None)
        assert doc.current_version == 1


class TestDeleteAndDownload:
    def test_delete_then_delete_again(self, mgr, repo, doc):
        assert mgr.delete_document(doc.id) is True
        assert mgr.load_document(doc.id) is None
        assert len(repo) == 0
        assert mgr.delete_document(doc.id) is False

    def test_download_text(self, mgr, doc):
        export = mgr.download_document(doc.id, "TXT")
        assert export.filename == "contract.txt"
        assert export.mimetype.startswith("text/plain")
        text = export.data.decode("utf-8")
        assert "Original terms" in text
        assert "Client: Acme" in text

    def test_download_unknown_document(self, mgr):
        with pytest.raises(DocumentNotFound):
            mgr.download_document("missing")

    def test_download_unsupported_format(self, mgr, doc):
        with pytest.raises(ValidationFailure):
            mgr.download_document(doc.id, "rtf")

    def test_get_original_without_upload_bytes(self, mgr, doc):
        with pytest.raises(DocumentNotFound):
            mgr.get_original(doc.id)

    def test_list_keeps_upload_order(self, mgr, doc):
        second = mgr.upload_document("b.txt", b"b")
        assert [d.id for d in mgr.get_all_documents()] == [doc.id, second.id]

    def test_load_document_with_blank_id(self, mgr):
        assert mgr.load_document(None) is None
        assert mgr.load_document("") is None


class TestAssign:
    def test_assign_sets_deadline_and_tells_only_the_assignee(self, repo, clock, events, doc):
        director = _manager(repo, clock, events, actor="director@example.com")
        before = doc.last_modified

        assert director.assign_document(doc.id, " Staff@Example.com ", "2026-03-20") is True
        assert doc.assigned_to == "staff@example.com"
        assert doc.deadline == date(2026, 3, 20)
        assert doc.last_modified > before
        assert doc.status == "assigned"

        assert len(events) == 1
        event = events[0]
        assert event.type == "document_assigned"
        assert event.to_user == "staff@example.com"
        assert event.to_role is None
        assert event.from_user == "director@example.com"
        assert event.message.endswith("Deadline: 2026-03-20")

    def test_deadline_is_required(self, mgr, events, doc):
        with pytest.raises(ValidationFailure):
            mgr.assign_document(doc.id, "staff@example.com", None)
        with pytest.raises(ValidationFailure):
            mgr.assign_document(doc.id, "staff@example.com", "2026-02-01")
        with pytest.raises(ValidationFailure):
            mgr.assign_document(doc.id, "  ", "2026-03-20")
        assert doc.assigned_to is None
        assert events == []

    def test_unknown_document_returns_false(self, mgr, events):
        assert mgr.assign_document("does-not-exist", "staff@example.com", "2026-03-20") is False
        assert events == []


class TestHelpers:
    def test_check_transition(self):
        check_transition("assigned", "in-progress")
        check_transition("review", "in-progress")
        with pytest.raises(IllegalTransition):
            check_transition("completed", "assigned")
        check_transition("completed", "assigned", enforce=False)
        with pytest.raises(ValidationFailure):
            check_transition("assigned", "done", enforce=False)

    def test_client_status_buckets(self):
        assert client_status("assigned") == "pending"
        assert client_status("in-progress") == "processing"
        assert client_status("review") == "processing"
        assert client_status("completed") == "completed"

    def test_doc_type_from_filename(self):
        assert doc_type_from_filename("A.PDF") == "pdf"
        assert doc_type_from_filename("memo.docx") == "docx"
        assert doc_type_from_filename("image.png") == "other"
        assert doc_type_from_filename("README") == "other"

    def test_parse_date(self):
        assert parse_date("2026-03-20") == date(2026, 3, 20)
        assert parse_date("2026-03-20T10:00:00Z") == date(2026, 3, 20)
        assert parse_date("") is None
        with pytest.raises(ValidationFailure):
            parse_date("next tuesday")
