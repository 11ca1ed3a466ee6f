"""SQLAlchemy models package."""

from app.models.document import Document
from app.models.summary_version import SummaryVersion

__all__ = ["Document", "SummaryVersion"]
