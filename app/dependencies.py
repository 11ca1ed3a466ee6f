"""FastAPI dependencies wiring services to request handlers.

Tests override these through ``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services.document_service import DocumentService
from app.services.pdf_service import PDFService, pdf_service
from app.services.rate_governor import RateGovernor, rate_governor
from app.services.storage_service import BaseStorageService, storage_service
from app.services.summarization_service import SummarizationService, summarization_service


def get_storage() -> BaseStorageService:
    return storage_service


def get_pdf_service() -> PDFService:
    return pdf_service


def get_rate_governor() -> RateGovernor:
    return rate_governor


def get_summarization_service() -> SummarizationService:
    return summarization_service


def get_document_service(
    db: AsyncSession = Depends(get_db),
    storage: BaseStorageService = Depends(get_storage),
    pdf: PDFService = Depends(get_pdf_service),
    summarizer: SummarizationService = Depends(get_summarization_service),
) -> DocumentService:
    """Build a request-scoped document pipeline."""
    return DocumentService(db=db, storage=storage, pdf=pdf, summarizer=summarizer)
