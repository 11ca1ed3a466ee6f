"""Summary endpoints (generate, edit, rate-limit status)."""

from uuid import UUID

from fastapi import APIRouter, Depends

from app.dependencies import get_document_service, get_rate_governor
from app.schemas import (
    GenerateSummaryRequest,
    RateLimitStatusResponse,
    SummaryResponse,
    SummaryVersionResponse,
    UpdateSummaryRequest,
)
from app.services.document_service import DocumentService
from app.services.rate_governor import RateGovernor

router = APIRouter()


@router.post("/generate", response_model=SummaryResponse, status_code=201)
async def generate_summary(
    body: GenerateSummaryRequest,
    service: DocumentService = Depends(get_document_service),
):
    """
    Generate a new current summary version for a document.

    Runs OCR first when the document has no text yet. Subject to the
    burst and daily AI call limits.
    """
    version = await service.generate_summary(body.document_id, body.options)
    return SummaryResponse(summary=SummaryVersionResponse.model_validate(version))


@router.get("/limits", response_model=RateLimitStatusResponse)
async def get_rate_limits(governor: RateGovernor = Depends(get_rate_governor)):
    """Remaining AI call capacity."""
    return RateLimitStatusResponse(**governor.snapshot())


@router.patch("/{summary_id}", response_model=SummaryResponse)
async def update_summary(
    summary_id: UUID,
    body: UpdateSummaryRequest,
    service: DocumentService = Depends(get_document_service),
):
    """Save edited Markdown for a summary version."""
    version = await service.update_summary(summary_id, body.content_markdown)
    return SummaryResponse(summary=SummaryVersionResponse.model_validate(version))
