from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.docutrack.models import Base


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_to_user", "to_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # document_processed / document_edited / document_approved /
    # document_rejected / document_assigned / deadline_reminder
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # No FK: notifications outlive deleted documents.
    document_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    document_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    from_user: Mapped[str] = mapped_column(String(320), nullable=False)
    to_user: Mapped[str] = mapped_column(String(320), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
