from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.docutrack.models import Base


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_status", "status"),
        Index("idx_documents_uploaded_by", "uploaded_by"),
        Index("idx_documents_assigned_to", "assigned_to"),
    )

    # uuid4 hex, assigned by the lifecycle manager (works without a DB session too)
    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    doc_type: Mapped[str] = mapped_column(String(16), nullable=False, default="other")

    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String(320), nullable=False)
    # staff member the director handed it to; None while it sits in the shared queue
    assigned_to: Mapped[str | None] = mapped_column(String(320), nullable=True)

    # assigned -> in-progress -> review -> completed
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="assigned")
    priority: Mapped[str] = mapped_column(String(8), nullable=False, default="medium")

    assigned_date: Mapped[date] = mapped_column(Date, nullable=False)
    deadline: Mapped[date] = mapped_column(Date, nullable=False)

    current_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    last_modified: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    # Original upload bytes (kept in Storage, not in the DB)
    original_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    original_content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    original_sha256: Mapped[str | None] = mapped_column(String(64), nullable=True)
    original_size_bytes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    original_storage_key: Mapped[str | None] = mapped_column(String(512), nullable=True)

    versions: Mapped[list["DocumentVersion"]] = relationship(
        "DocumentVersion",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DocumentVersion.version",
    )

    @property
    def current(self) -> "DocumentVersion | None":
        for v in self.versions:
            if v.version == self.current_version:
                return v
        return None

    @property
    def content(self) -> str:
        v = self.current
        return v.content if v else ""


class DocumentVersion(Base):
    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version", name="uq_document_version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    document_id: Mapped[str] = mapped_column(ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    modified_by: Mapped[str] = mapped_column(String(320), nullable=False)
    modified_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    notes: Mapped[str | None] = mapped_column(String(512), nullable=True)

    document: Mapped[Document] = relationship(
        "Document",
        back_populates="versions",
        lazy="selectin",
    )
