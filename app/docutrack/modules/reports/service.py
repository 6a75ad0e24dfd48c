"""
Analytics and processing reports, computed from the live document set.
"""
from __future__ import annotations

from collections import OrderedDict, defaultdict
from datetime import date
from typing import TYPE_CHECKING, Any

from app.docutrack.modules.documents.export import Section, render_pdf, render_text

if TYPE_CHECKING:
    from app.docutrack.modules.documents.models import Document

REPORT_TYPES = ("analytics", "processing")
REPORT_FORMATS = ("json", "pdf", "txt")

RECENT_LIMIT = 10


def _is_completed(d: "Document") -> bool:
    return d.status == "completed"


def _is_overdue(d: "Document", today: date) -> bool:
    return not _is_completed(d) and d.deadline < today


def _processing_days(d: "Document") -> int:
    return max((d.last_modified.date() - d.assigned_date).days, 0)


def _average(values: list[int]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0


def build_analytics_report(documents: list["Document"], today: date) -> dict[str, Any]:
    completed = [d for d in documents if _is_completed(d)]

    by_dept: dict[str, dict[str, int]] = defaultdict(lambda: {"total": 0, "completed": 0, "pending": 0})
    for d in documents:
        row = by_dept[d.department]
        row["total"] += 1
        row["completed" if _is_completed(d) else "pending"] += 1

    by_type: dict[str, list[int]] = defaultdict(list)
    for d in completed:
        by_type[d.doc_type].append(_processing_days(d))

    by_month: dict[str, dict[str, int]] = OrderedDict()
    for d in sorted(documents, key=lambda x: x.assigned_date, reverse=True):
        key = d.assigned_date.strftime("%Y-%m")
        row = by_month.setdefault(key, {"processed": 0, "completed": 0})
        if d.status != "assigned":
            row["processed"] += 1
        if _is_completed(d):
            row["completed"] += 1

    return {
        "generatedOn": today.isoformat(),
        "totalDocuments": len(documents),
        "completedDocuments": len(completed),
        "pendingDocuments": len(documents) - len(completed),
        "overdueDocuments": sum(1 for d in documents if _is_overdue(d, today)),
        "departmentStats": [{"department": k, **v} for k, v in sorted(by_dept.items())],
        "processingTimes": [
            {"documentType": k, "averageTime": _average(v)} for k, v in sorted(by_type.items())
        ],
        "monthlyStats": [{"month": k, **v} for k, v in by_month.items()],
    }


def _worked_on(d: "Document", staff_member: str) -> bool:
    return d.assigned_to == staff_member or any(v.modified_by == staff_member for v in d.versions)


def build_processing_report(documents: list["Document"], staff_member: str, today: date) -> dict[str, Any]:
    """Only documents assigned to `staff_member` or carrying a version they wrote."""
    staff_member = (staff_member or "").strip().lower()
    documents = [d for d in documents if _worked_on(d, staff_member)]
    processed = [d for d in documents if d.status != "assigned"]
    completed = [d for d in documents if _is_completed(d)]
    recent = sorted(documents, key=lambda d: d.last_modified, reverse=True)[:RECENT_LIMIT]
    return {
        "staffMember": staff_member,
        "reportDate": today.isoformat(),
        "documentsProcessed": len(processed),
        "documentsCompleted": len(completed),
        "documentsPending": len(documents) - len(completed),
        "averageProcessingTime": _average([_processing_days(d) for d in completed]),
        "recentDocuments": [
            {
                "name": d.name,
                "client": d.client_name,
                "status": d.status,
                "processingTime": f"{_processing_days(d)} days",
            }
            for d in recent
        ],
    }


def report_sections(report_type: str, report: dict[str, Any]) -> list[Section]:
    if report_type == "analytics":
        return [
            (
                "Summary Statistics",
                [
                    f"Generated on: {report['generatedOn']}",
                    f"Total Documents: {report['totalDocuments']}",
                    f"Completed Documents: {report['completedDocuments']}",
                    f"Pending Documents: {report['pendingDocuments']}",
                    f"Overdue Documents: {report['overdueDocuments']}",
                ],
            ),
            (
                "Department Statistics",
                [
                    f"{r['department']}: Total={r['total']}, Completed={r['completed']}, Pending={r['pending']}"
                    for r in report["departmentStats"]
                ],
            ),
            (
                "Processing Times by Document Type",
                [f"{r['documentType']}: {r['averageTime']} days average" for r in report["processingTimes"]],
            ),
            (
                "Monthly Statistics",
                [f"{r['month']}: Processed={r['processed']}, Completed={r['completed']}" for r in report["monthlyStats"]],
            ),
        ]
    return [
        (
            "Performance Summary",
            [
                f"Staff Member: {report['staffMember']}",
                f"Report Date: {report['reportDate']}",
                f"Documents Processed: {report['documentsProcessed']}",
                f"Documents Completed: {report['documentsCompleted']}",
                f"Documents Pending: {report['documentsPending']}",
                f"Average Processing Time: {report['averageProcessingTime']} days",
            ],
        ),
        (
            "Recent Documents",
            [
                f"{r['name']} - Client: {r['client']} - Status: {r['status']} - Time: {r['processingTime']}"
                for r in report["recentDocuments"]
            ],
        ),
    ]


def report_title(report_type: str) -> str:
    return "Analytics Report" if report_type == "analytics" else "Processing Staff Report"


def render_report(report_type: str, report: dict[str, Any], fmt: str) -> bytes:
    title = report_title(report_type)
    sections = report_sections(report_type, report)
    if fmt == "pdf":
        return render_pdf(title, sections)
    return render_text(title, sections).encode("utf-8")
