"""Pydantic schemas for request/response validation."""

from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


# ─── Summary options ─────────────────────────────────────────────────────────

SummaryLength = Literal["short", "medium", "long"]
SummaryTone = Literal["neutral", "professional", "simple"]


class SummaryOptions(BaseModel):
    language: str = Field(min_length=2, max_length=40)
    length: SummaryLength
    tone: SummaryTone

    @field_validator("language", mode="before")
    @classmethod
    def _strip_language(cls, value):
        return value.strip() if isinstance(value, str) else value


class GenerateSummaryRequest(BaseModel):
    document_id: UUID
    options: SummaryOptions


class UpdateSummaryRequest(BaseModel):
    content_markdown: str = Field(min_length=1)

    @field_validator("content_markdown", mode="before")
    @classmethod
    def _strip_content(cls, value):
        return value.strip() if isinstance(value, str) else value


# ─── Documents ───────────────────────────────────────────────────────────────

class DocumentListItem(BaseModel):
    id: UUID
    file_name: str
    size_bytes: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class DocumentResponse(DocumentListItem):
    extracted_text: str

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    success: bool = True
    documents: List[DocumentListItem]


class UploadResponse(BaseModel):
    success: bool = True
    document: DocumentResponse
    extraction_error: Optional[str] = None
    message: Optional[str] = None


class ExtractResponse(BaseModel):
    success: bool = True
    document_id: UUID
    extracted_text: str
    extraction_error: Optional[str] = None
    message: Optional[str] = None


# ─── Summaries ───────────────────────────────────────────────────────────────

class SummaryVersionResponse(BaseModel):
    id: UUID
    document_id: UUID
    content_markdown: str
    language: str
    length: str
    tone: str
    is_current: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SummaryResponse(BaseModel):
    success: bool = True
    summary: SummaryVersionResponse


class SummaryListResponse(BaseModel):
    success: bool = True
    summaries: List[SummaryVersionResponse]


class DocumentDetailResponse(BaseModel):
    success: bool = True
    document: DocumentResponse
    viewer_url: str
    summary: Optional[SummaryVersionResponse] = None


class RateLimitStatusResponse(BaseModel):
    burst_limit: int
    burst_window_seconds: int
    burst_remaining: int
    daily_limit: int
    daily_remaining: int
