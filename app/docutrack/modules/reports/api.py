from __future__ import annotations

from datetime import datetime

from flask import Blueprint, g, request, send_file

from app.docutrack.db import db_session
from app.docutrack.modules.documents.repository import SqlAlchemyDocumentRepository
from app.docutrack.modules.documents.service import to_download_fileobj
from app.docutrack.modules.reports.service import (
    REPORT_FORMATS,
    REPORT_TYPES,
    build_analytics_report,
    build_processing_report,
    render_report,
)
from app.docutrack.rbac import require_permission
from app.docutrack.utils import fail, ok

bp = Blueprint("reports", __name__)

_MIMETYPES = {"pdf": "application/pdf", "txt": "text/plain; charset=utf-8"}


@bp.get("")
@require_permission("reports.view")
def get_report():
    report_type = (request.args.get("type") or "analytics").strip().lower()
    fmt = (request.args.get("format") or "json").strip().lower()
    if report_type not in REPORT_TYPES:
        return fail(f"Unknown report type. Must be one of: {', '.join(REPORT_TYPES)}", 400)
    if fmt not in REPORT_FORMATS:
        return fail(f"Unknown report format. Must be one of: {', '.join(REPORT_FORMATS)}", 400)

    s = db_session()
    documents = SqlAlchemyDocumentRepository(s).list()
    today = datetime.utcnow().date()
    if report_type == "analytics":
        report = build_analytics_report(documents, today)
    else:
        report = build_processing_report(documents, g.current_user.email, today)

    if fmt == "json":
        return ok(report)
    return send_file(
        to_download_fileobj(render_report(report_type, report, fmt)),
        mimetype=_MIMETYPES[fmt],
        as_attachment=True,
        download_name=f"{report_type}-report-{today.isoformat()}.{fmt}",
        max_age=0,
    )
