from datetime import date, datetime

from app.docutrack.modules.documents.models import Document, DocumentVersion
from app.docutrack.modules.reports.service import (
    RECENT_LIMIT,
    build_analytics_report,
    build_processing_report,
    render_report,
)

TODAY = date(2026, 3, 10)


def _doc(doc_id, *, department, doc_type, status, assigned, modified, deadline=date(2026, 3, 31),
         worked_by="staff@example.com", assigned_to=None):
    return Document(
        id=doc_id,
        name=f"{doc_id}.{doc_type}",
        doc_type=doc_type,
        client_name="Acme",
        department=department,
        uploaded_by="client@example.com",
        status=status,
        priority="medium",
        assigned_date=assigned,
        deadline=deadline,
        current_version=1,
        last_modified=modified,
        assigned_to=assigned_to,
        versions=[DocumentVersion(version=1, content="", modified_by=worked_by, modified_date=modified)],
    )


def _documents():
    return [
        _doc("a", department="Finance", doc_type="pdf", status="completed",
             assigned=date(2026, 2, 10), modified=datetime(2026, 2, 14, 12, 0)),
        _doc("b", department="Finance", doc_type="pdf", status="completed",
             assigned=date(2026, 3, 1), modified=datetime(2026, 3, 3, 12, 0)),
        _doc("c", department="HR", doc_type="txt", status="review",
             assigned=date(2026, 3, 5), modified=datetime(2026, 3, 9, 8, 0), deadline=date(2026, 3, 8)),
        _doc("d", department="HR", doc_type="docx", status="assigned",
             assigned=date(2026, 3, 9), modified=datetime(2026, 3, 9, 7, 0)),
    ]


def test_analytics_report():
    report = build_analytics_report(_documents(), TODAY)
    assert report["generatedOn"] == "2026-03-10"
    assert report["totalDocuments"] == 4
    assert report["completedDocuments"] == 2
    assert report["pendingDocuments"] == 2
    assert report["overdueDocuments"] == 1
    assert report["departmentStats"] == [
        {"department": "Finance", "total": 2, "completed": 2, "pending": 0},
        {"department": "HR", "total": 2, "completed": 0, "pending": 2},
    ]
    assert report["processingTimes"] == [{"documentType": "pdf", "averageTime": 3.0}]
    assert report["monthlyStats"] == [
        {"month": "2026-03", "processed": 2, "completed": 1},
        {"month": "2026-02", "processed": 1, "completed": 1},
    ]


def test_analytics_report_with_no_documents():
    report = build_analytics_report([], TODAY)
    assert report["totalDocuments"] == 0
    assert report["processingTimes"] == []
    assert report["monthlyStats"] == []


def test_processing_report():
    report = build_processing_report(_documents(), "staff@example.com", TODAY)
    assert report["staffMember"] == "staff@example.com"
    assert report["documentsProcessed"] == 3
    assert report["documentsCompleted"] == 2
    assert report["documentsPending"] == 2
    assert report["averageProcessingTime"] == 3.0
    assert [r["name"] for r in report["recentDocuments"]] == ["c.txt", "d.docx", "b.pdf", "a.pdf"]
    assert report["recentDocuments"][0]["processingTime"] == "4 days"


def test_processing_report_only_counts_the_staff_members_own_work():
    docs = _documents() + [
        _doc("e", department="Ops", doc_type="txt", status="completed", worked_by="other@example.com",
             assigned=date(2026, 3, 1), modified=datetime(2026, 3, 2, 9, 0)),
        _doc("f", department="Ops", doc_type="txt", status="assigned", worked_by="client@example.com",
             assigned_to="other@example.com", assigned=date(2026, 3, 9), modified=datetime(2026, 3, 9, 9, 0)),
        _doc("g", department="Ops", doc_type="txt", status="assigned", worked_by="client@example.com",
             assigned_to="staff@example.com", assigned=date(2026, 3, 9), modified=datetime(2026, 3, 9, 10, 0)),
    ]

    mine = build_processing_report(docs, "Staff@Example.com", TODAY)
    assert mine["documentsProcessed"] == 3
    assert mine["documentsPending"] == 3
    assert {r["name"] for r in mine["recentDocuments"]} == {"a.pdf", "b.pdf", "c.txt", "d.docx", "g.txt"}

    theirs = build_processing_report(docs, "other@example.com", TODAY)
    assert theirs["documentsProcessed"] == 1
    assert theirs["documentsCompleted"] == 1
    assert theirs["documentsPending"] == 1
    assert theirs["averageProcessingTime"] == 1.0
    assert [r["name"] for r in theirs["recentDocuments"]] == ["f.txt", "e.txt"]

    assert build_processing_report(docs, "nobody@example.com", TODAY)["recentDocuments"] == []


def test_processing_report_limits_recent_documents():
    docs = [
        _doc(f"n{i}", department="Ops", doc_type="txt", status="in-progress",
             assigned=date(2026, 3, 1), modified=datetime(2026, 3, 1, 8, i))
        for i in range(RECENT_LIMIT + 2)
    ]
    report = build_processing_report(docs, "staff@example.com", TODAY)
    assert len(report["recentDocuments"]) == RECENT_LIMIT
    assert report["recentDocuments"][0]["name"] == f"n{RECENT_LIMIT + 1}.txt"


def test_render_report_formats():
    report = build_analytics_report(_documents(), TODAY)
    text = render_report("analytics", report, "txt").decode("utf-8")
    assert text.startswith("DocuTrack Pro - Analytics Report")
    assert "Finance: Total=2, Completed=2, Pending=0" in text
    assert render_report("analytics", report, "pdf").startswith(b"%PDF")


def test_reports_api(client, auth):
    staff_h = auth("staff")
    client.post("/documents", json={"name": "memo.txt", "content": "m", "department": "HR"}, headers=auth("client"))

    r = client.get("/reports", headers=staff_h)
    assert r.status_code == 200
    assert r.json["data"]["totalDocuments"] == 1
    assert r.json["data"]["departmentStats"][0]["department"] == "HR"

    r = client.get("/reports?type=processing", headers=staff_h)
    assert r.json["data"]["staffMember"] == "staff@example.com"

    r = client.get("/reports?type=processing&format=txt", headers=staff_h)
    assert r.status_code == 200
    assert b"Processing Staff Report" in r.data
    assert "processing-report-" in r.headers["Content-Disposition"]

    r = client.get("/reports?format=pdf", headers=auth("director"))
    assert r.status_code == 200
    assert r.data.startswith(b"%PDF")

    assert client.get("/reports?type=sales", headers=staff_h).status_code == 400
    assert client.get("/reports?format=xlsx", headers=staff_h).status_code == 400
    assert client.get("/reports", headers=auth("client")).status_code == 403
