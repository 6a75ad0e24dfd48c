"""Text extraction for uploaded files."""
from __future__ import annotations

import logging
from io import BytesIO

logger = logging.getLogger(__name__)


def decode_text(data: bytes) -> str:
    # Lossy on purpose: binary formats we cannot parse still produce some text.
    return (data or b"").decode("utf-8-sig", errors="replace")


def _extract_pdf_text(pdf_bytes: bytes) -> str:
    import pdfplumber

    text = []
    try:
        with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text() or ""
                text.append(page_text)
    except Exception as e:
        logger.warning("PDF text extraction failed: %s", e)
        return ""
    return "\n".join(text).strip()


def _extract_docx_text(docx_bytes: bytes) -> str:
    from docx import Document as WordDocument

    try:
        word = WordDocument(BytesIO(docx_bytes))
    except Exception as e:
        logger.warning("DOCX text extraction failed: %s", e)
        return ""
    paragraphs = [p.text for p in word.paragraphs]
    for table in word.tables:
        for row in table.rows:
            paragraphs.append("\t".join(cell.text.strip() for cell in row.cells))
    return "\n".join(paragraphs).strip()


def extract_text(data: bytes, doc_type: str) -> str:
    """
    Best-effort text for a document's first version.
    pdf/docx are parsed; everything else (and parse failures) falls back to a UTF-8 decode.
    """
    if not data:
        return ""
    text = ""
    if doc_type == "pdf":
        text = _extract_pdf_text(data)
    elif doc_type == "docx":
        text = _extract_docx_text(data)
    if text:
        return text
    return decode_text(data)
