"""Document pipeline: upload, OCR extraction and summary orchestration.

Extraction is a best-effort side effect everywhere in this module: an
``ExtractionFailed`` never aborts the surrounding operation, it is
reported back in the result's ``extraction_error`` field instead.
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    DocumentNotFound,
    EmptySourceText,
    ExtractionFailed,
    StorageError,
    SummaryNotFound,
)
from app.core.logging import logger
from app.models.document import Document, status_for_text
from app.models.summary_version import SummaryVersion
from app.schemas import SummaryOptions
from app.services.pdf_service import PDFService
from app.services.storage_service import BaseStorageService, build_object_path
from app.services.summarization_service import SummarizationService


@dataclass
class UploadResult:
    document: Document
    extraction_error: Optional[str] = None


@dataclass
class ExtractionResult:
    document_id: uuid.UUID
    extracted_text: str
    extraction_error: Optional[str] = None


@dataclass
class DocumentDetail:
    document: Document
    viewer_url: str
    current_summary: Optional[SummaryVersion] = None


class DocumentService:
    """Coordinates blob storage, OCR, the database and summary generation."""

    def __init__(
        self,
        db: AsyncSession,
        storage: BaseStorageService,
        pdf: PDFService,
        summarizer: SummarizationService,
    ):
        self.db = db
        self.storage = storage
        self.pdf = pdf
        self.summarizer = summarizer

    async def _extract_best_effort(self, content: bytes, file_label: str):
        """Run OCR off the event loop; return (text, error message or None)."""
        try:
            text = await run_in_threadpool(self.pdf.extract_text, content)
            return text, None
        except ExtractionFailed as e:
            logger.warning(f"PDF extraction failed for {file_label}: {e.message}")
            return "", e.message

    async def _get_document(self, document_id: uuid.UUID) -> Optional[Document]:
        try:
            result = await self.db.execute(select(Document).where(Document.id == document_id))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch document: {e}") from e
        return result.scalar_one_or_none()

    # ─── Documents ───────────────────────────────────────────────────────

    async def list_documents(self) -> List[Document]:
        try:
            result = await self.db.execute(select(Document).order_by(Document.created_at.desc()))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list documents: {e}") from e
        return list(result.scalars().all())

    async def upload(self, file_name: str, mime_type: str, content: bytes) -> UploadResult:
        """Store the blob, OCR it, then persist the metadata row.

        Only a failed row insert rolls the blob back.
        """
        object_path = build_object_path(file_name)
        await self.storage.upload(object_path, content, mime_type)

        extracted_text, extraction_error = await self._extract_best_effort(content, file_name)

        document = Document(
            file_name=file_name,
            mime_type=mime_type,
            size_bytes=len(content),
            storage_path=object_path,
            extracted_text=extracted_text,
            status=status_for_text(extracted_text),
        )
        try:
            self.db.add(document)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Persisting metadata for {object_path} failed, removing blob: {e}")
            try:
                await self.storage.delete(object_path)
            except StorageError as cleanup_error:
                logger.error(f"Could not remove orphaned blob {object_path}: {cleanup_error.message}")
            raise StorageError(f"Failed to persist document metadata: {e}") from e

        await self.db.refresh(document)
        logger.info(
            f"Uploaded {file_name} ({len(content)} bytes) as {document.id}, status={document.status}"
        )
        return UploadResult(document=document, extraction_error=extraction_error)

    async def get_document(self, document_id: uuid.UUID) -> DocumentDetail:
        document = await self._get_document(document_id)
        if not document:
            raise DocumentNotFound()

        try:
            result = await self.db.execute(
                select(SummaryVersion).where(
                    SummaryVersion.document_id == document_id,
                    SummaryVersion.is_current.is_(True),
                )
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch current summary: {e}") from e

        viewer_url = await self.storage.signed_url(
            document.storage_path, settings.SIGNED_URL_TTL_SECONDS
        )
        return DocumentDetail(
            document=document,
            viewer_url=viewer_url,
            current_summary=result.scalars().first(),
        )

    async def delete_document(self, document_id: uuid.UUID) -> bool:
        """Delete summaries, the row and the blob. False if there was nothing to delete."""
        document = await self._get_document(document_id)
        if not document:
            return False

        storage_path = document.storage_path
        try:
            await self.db.execute(
                delete(SummaryVersion).where(SummaryVersion.document_id == document_id)
            )
            await self.db.delete(document)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Failed to delete document: {e}") from e

        await self.storage.delete(storage_path)
        logger.info(f"Deleted document {document_id}")
        return True

    async def extract(self, document_id: uuid.UUID) -> ExtractionResult:
        """Re-run OCR on the stored blob and save whatever came out.

        A failed OCR still updates the row (empty text, status uploaded);
        a failed row update is a hard error.
        """
        document = await self._get_document(document_id)
        if not document:
            raise DocumentNotFound()

        content = await self.storage.download(document.storage_path)
        extracted_text, extraction_error = await self._extract_best_effort(
            content, str(document_id)
        )

        try:
            document.extracted_text = extracted_text
            document.status = status_for_text(extracted_text)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Failed to update extracted text: {e}") from e

        return ExtractionResult(
            document_id=document_id,
            extracted_text=extracted_text,
            extraction_error=extraction_error,
        )

    # ─── Summaries ───────────────────────────────────────────────────────

    async def generate_summary(self, document_id: uuid.UUID, options: SummaryOptions) -> SummaryVersion:
        document = await self._get_document(document_id)
        if not document:
            raise DocumentNotFound()

        source_text = (document.extracted_text or "").strip()
        if not source_text:
            logger.info(f"Document {document_id} has no text yet, extracting before summary")
            extraction = await self.extract(document_id)
            source_text = extraction.extracted_text.strip()

        if not source_text:
            raise EmptySourceText(
                "Document text is empty after OCR extraction. Upload a clearer PDF and try again."
            )

        return await self.summarizer.generate(self.db, document_id, source_text, options)

    async def list_summary_versions(self, document_id: uuid.UUID) -> List[SummaryVersion]:
        if not await self._get_document(document_id):
            raise DocumentNotFound()

        try:
            result = await self.db.execute(
                select(SummaryVersion)
                .where(SummaryVersion.document_id == document_id)
                .order_by(SummaryVersion.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list summary versions: {e}") from e
        return list(result.scalars().all())

    async def update_summary(self, summary_id: uuid.UUID, content_markdown: str) -> SummaryVersion:
        """Replace a version's Markdown in place; currency and options stay as they were."""
        try:
            result = await self.db.execute(
                select(SummaryVersion).where(SummaryVersion.id == summary_id)
            )
            version = result.scalar_one_or_none()
            if not version:
                raise SummaryNotFound()

            version.content_markdown = content_markdown
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Failed to update summary: {e}") from e

        await self.db.refresh(version)
        return version
