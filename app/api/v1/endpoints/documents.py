"""Document endpoints (list, upload, detail, delete, re-extract)."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import DocumentNotFound, ValidationError
from app.core.logging import logger
from app.dependencies import get_document_service
from app.schemas import (
    DocumentDetailResponse,
    DocumentListItem,
    DocumentListResponse,
    DocumentResponse,
    ExtractResponse,
    SummaryListResponse,
    SummaryVersionResponse,
    UploadResponse,
)
from app.services.document_service import DocumentService

router = APIRouter()

PDF_MIME_TYPE = "application/pdf"


@router.get("", response_model=DocumentListResponse)
async def list_documents(service: DocumentService = Depends(get_document_service)):
    """List uploaded documents, newest first."""
    documents = await service.list_documents()
    return DocumentListResponse(
        documents=[DocumentListItem.model_validate(d) for d in documents]
    )


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    service: DocumentService = Depends(get_document_service),
):
    """
    Upload a PDF.

    - Stores the original file
    - OCRs every page (failures are reported, not fatal)
    - Saves the document metadata
    """
    if file.content_type != PDF_MIME_TYPE:
        raise ValidationError("Only PDF files are allowed")

    if file.size is not None and file.size > settings.MAX_UPLOAD_BYTES:
        raise ValidationError("File exceeds 20MB limit")

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError("File exceeds 20MB limit")
    if len(content) == 0:
        raise ValidationError("Empty file uploaded")

    logger.info(f"Uploading PDF: {file.filename} ({len(content)} bytes)")
    result = await service.upload(file.filename or "document.pdf", PDF_MIME_TYPE, content)

    return UploadResponse(
        document=DocumentResponse.model_validate(result.document),
        extraction_error=result.extraction_error,
        message=(
            f"Uploaded, but text extraction failed: {result.extraction_error}"
            if result.extraction_error
            else None
        ),
    )


@router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    document_id: UUID,
    service: DocumentService = Depends(get_document_service),
):
    """Document detail with a viewer URL and the current summary, if any."""
    detail = await service.get_document(document_id)
    return DocumentDetailResponse(
        document=DocumentResponse.model_validate(detail.document),
        viewer_url=detail.viewer_url,
        summary=(
            SummaryVersionResponse.model_validate(detail.current_summary)
            if detail.current_summary
            else None
        ),
    )


@router.delete("/{document_id}")
async def delete_document(
    document_id: UUID,
    service: DocumentService = Depends(get_document_service),
):
    """Delete a document together with its summaries and stored file."""
    deleted = await service.delete_document(document_id)
    if not deleted:
        raise DocumentNotFound()
    return JSONResponse({"success": True})


@router.post("/{document_id}/extract", response_model=ExtractResponse)
async def extract_document_text(
    document_id: UUID,
    service: DocumentService = Depends(get_document_service),
):
    """Re-run OCR on a stored document."""
    result = await service.extract(document_id)
    return ExtractResponse(
        document_id=result.document_id,
        extracted_text=result.extracted_text,
        extraction_error=result.extraction_error,
        message=(
            f"Extraction completed with warning: {result.extraction_error}"
            if result.extraction_error
            else None
        ),
    )


@router.get("/{document_id}/summaries", response_model=SummaryListResponse)
async def list_summaries(
    document_id: UUID,
    service: DocumentService = Depends(get_document_service),
):
    """All summary versions of a document, newest first."""
    versions = await service.list_summary_versions(document_id)
    return SummaryListResponse(
        summaries=[SummaryVersionResponse.model_validate(v) for v in versions]
    )
