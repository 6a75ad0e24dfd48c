"""
Document and report rendering (txt / pdf / docx).

Everything is rendered from (title, sections) where a section is a heading
plus plain-text lines, so documents and reports share one code path.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import PurePath
from xml.sax.saxutils import escape

from werkzeug.utils import secure_filename

from app.docutrack.modules.documents.models import Document

Section = tuple[str, list[str]]

EXPORT_FORMATS: dict[str, str] = {
    "txt": "text/plain; charset=utf-8",
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

# XML 1.0 rejects these; both reportlab and python-docx build XML.
_XML_INVALID = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


@dataclass(frozen=True)
class DocumentExport:
    filename: str
    mimetype: str
    data: bytes


def _clean(text: str) -> str:
    return _XML_INVALID.sub("", text or "")


def render_text(title: str, sections: list[Section]) -> str:
    out = [f"DocuTrack Pro - {title}", ""]
    for heading, lines in sections:
        out.append(heading.upper())
        out.extend(lines)
        out.append("")
    return "\n".join(out).rstrip() + "\n"


def render_pdf(title: str, sections: list[Section]) -> bytes:
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import getSampleStyleSheet
    from reportlab.lib.units import inch
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

    buf = BytesIO()
    pdf = SimpleDocTemplate(buf, pagesize=A4, title=_clean(title), author="DocuTrack Pro")
    styles = getSampleStyleSheet()

    story = [Paragraph(escape(_clean(f"DocuTrack Pro - {title}")), styles["Title"]), Spacer(1, 0.2 * inch)]
    for heading, lines in sections:
        story.append(Paragraph(escape(_clean(heading)), styles["Heading2"]))
        for line in lines:
            if line.strip():
                story.append(Paragraph(escape(_clean(line)), styles["BodyText"]))
            else:
                story.append(Spacer(1, 0.1 * inch))
        story.append(Spacer(1, 0.1 * inch))

    pdf.build(story)
    return buf.getvalue()


def render_docx(title: str, sections: list[Section]) -> bytes:
    from docx import Document as WordDocument

    word = WordDocument()
    word.core_properties.title = _clean(title)
    word.add_heading(_clean(f"DocuTrack Pro - {title}"), 0)
    for heading, lines in sections:
        word.add_heading(_clean(heading), 1)
        for line in lines:
            word.add_paragraph(_clean(line))

    buf = BytesIO()
    word.save(buf)
    return buf.getvalue()


RENDERERS = {
    "txt": lambda title, sections: render_text(title, sections).encode("utf-8"),
    "pdf": render_pdf,
    "docx": render_docx,
}


def document_sections(doc: Document) -> list[Section]:
    details = [
        f"Client: {doc.client_name}",
        f"Department: {doc.department}",
        f"Status: {doc.status}",
        f"Priority: {doc.priority}",
        f"Version: {doc.current_version}",
        f"Assigned: {doc.assigned_date.isoformat()}",
        f"Deadline: {doc.deadline.isoformat()}",
        f"Uploaded by: {doc.uploaded_by}",
    ]
    return [("Details", details), ("Content", doc.content.splitlines() or [""])]


def export_filename(name: str, fmt: str) -> str:
    stem = secure_filename(PurePath(name or "").stem) or "document"
    return f"{stem}.{fmt}"


def export_document(doc: Document, fmt: str) -> DocumentExport:
    """Render the current version of `doc`. Caller validates `fmt` against EXPORT_FORMATS."""
    data = RENDERERS[fmt](doc.name, document_sections(doc))
    return DocumentExport(filename=export_filename(doc.name, fmt), mimetype=EXPORT_FORMATS[fmt], data=data)
