from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from app.docutrack.modules.documents.models import Document

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


class DocumentRepository:
    """Persistence seam for the lifecycle manager. Keyed by document id."""

    def get(self, doc_id: str) -> Document | None:
        raise NotImplementedError

    def add(self, doc: Document) -> None:
        raise NotImplementedError

    def delete(self, doc: Document) -> None:
        raise NotImplementedError

    def list(self) -> list[Document]:
        raise NotImplementedError


class InMemoryDocumentRepository(DocumentRepository):
    """
    Dict-backed repository for local mocking and unit tests.
    Holds transient Document objects; listing follows insertion order.
    """

    def __init__(self, documents: Iterable[Document] = ()) -> None:
        self._docs: dict[str, Document] = {d.id: d for d in documents}

    def get(self, doc_id: str) -> Document | None:
        return self._docs.get(doc_id)

    def add(self, doc: Document) -> None:
        if doc.id in self._docs:
            raise ValueError(f"Duplicate document id: {doc.id}")
        self._docs[doc.id] = doc

    def delete(self, doc: Document) -> None:
        self._docs.pop(doc.id, None)

    def list(self) -> list[Document]:
        return list(self._docs.values())

    def __len__(self) -> int:
        return len(self._docs)


class SqlAlchemyDocumentRepository(DocumentRepository):
    """Session-bound repository. Flushes, never commits (the caller owns the transaction)."""

    def __init__(self, s: "Session") -> None:
        self.s = s

    def get(self, doc_id: str) -> Document | None:
        return self.s.get(Document, doc_id)

    def add(self, doc: Document) -> None:
        self.s.add(doc)
        self.s.flush()

    def delete(self, doc: Document) -> None:
        self.s.delete(doc)
        self.s.flush()

    def list(self) -> list[Document]:
        return self.s.query(Document).order_by(Document.created_at.asc(), Document.id.asc()).all()
