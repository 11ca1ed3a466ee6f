"""Document model: an uploaded PDF and its OCR text."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base

STATUS_UPLOADED = "uploaded"
STATUS_EXTRACTED = "extracted"


def status_for_text(extracted_text: str) -> str:
    """A document counts as extracted exactly when it holds some text."""
    return STATUS_EXTRACTED if extracted_text else STATUS_UPLOADED


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default="application/pdf")
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    extracted_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        Enum(STATUS_UPLOADED, STATUS_EXTRACTED, name="document_status"),
        default=STATUS_UPLOADED,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )

    # Relationships
    summary_versions = relationship(
        "SummaryVersion",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
