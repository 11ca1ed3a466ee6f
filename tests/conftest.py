"""Shared test fixtures.

Environment variables are set BEFORE any application imports so that
``Settings()`` initialises with test-safe values and never touches a real
database, bucket or model provider.
"""

import os
import tempfile

# ── Set test env vars before any app import ──────────────────────────
os.environ.update({
    "DATABASE_URL": "sqlite+aiosqlite://",
    "PRODUCTION": "false",
    "UPLOAD_DIR": tempfile.mkdtemp(prefix="pdf-summary-uploads-"),
    "AI_API_KEY": "test-ai-key",
    "AI_BASE_URL": "https://llm.test/v1",
    "AI_MODEL": "test-model",
})

from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Now safe to import application code
from app.core.database import Base, get_db
from app.core.exceptions import StorageError
from app.dependencies import (
    get_pdf_service,
    get_rate_governor,
    get_storage,
    get_summarization_service,
)
from app.services.document_service import DocumentService
from app.services.rate_governor import RateGovernor
from app.services.storage_service import BaseStorageService
from app.services.summarization_service import SummarizationService
import app.models  # noqa: F401


class InMemoryStorage(BaseStorageService):
    """Blob store double that records every call."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.uploads: List[str] = []
        self.deletes: List[str] = []
        self.fail_download = False
        self.fail_delete = False

    async def upload(self, rel_path, content, content_type="application/pdf"):
        if rel_path in self.objects:
            raise StorageError(f"Failed to upload PDF: {rel_path} already exists")
        self.uploads.append(rel_path)
        self.objects[rel_path] = content

    async def download(self, rel_path):
        if self.fail_download or rel_path not in self.objects:
            raise StorageError(f"Failed to download PDF for extraction: {rel_path} not found")
        return self.objects[rel_path]

    async def delete(self, rel_path):
        self.deletes.append(rel_path)
        if self.fail_delete:
            raise StorageError(f"Failed to delete PDF: {rel_path}")
        self.objects.pop(rel_path, None)

    async def signed_url(self, rel_path, ttl_seconds):
        return f"https://blobs.test/{rel_path}?ttl={ttl_seconds}"


class StubPDFService:
    """Returns queued OCR outcomes; an Exception instance is raised instead.

    The last queued outcome repeats once the queue is down to one.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or ["Extracted page text"]
        self.calls = 0

    def queue(self, *outcomes):
        self.outcomes = list(outcomes)

    def extract_text(self, content: bytes) -> str:
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
async def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def pdf() -> StubPDFService:
    return StubPDFService()


@pytest.fixture
def governor() -> RateGovernor:
    return RateGovernor(burst_limit=25, burst_window_seconds=600, daily_limit=50)


@pytest.fixture
def llm_reply() -> AsyncMock:
    """Stands in for the chat completions call; returns Markdown by default."""
    return AsyncMock(return_value="# Summary\n\n- Key point")


@pytest.fixture
def summarizer(governor, llm_reply, monkeypatch) -> SummarizationService:
    service = SummarizationService(
        governor=governor,
        api_key="test-ai-key",
        base_url="https://llm.test/v1",
        model="test-model",
    )
    monkeypatch.setattr(service, "_call_llm", llm_reply)
    return service


@pytest.fixture
def document_service(db_session, storage, pdf, summarizer) -> DocumentService:
    return DocumentService(db=db_session, storage=storage, pdf=pdf, summarizer=summarizer)


@pytest.fixture
async def test_client(db_session, storage, pdf, summarizer, governor):
    """HTTPX async client wired to the FastAPI app with all collaborators replaced."""
    from app.main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_pdf_service] = lambda: pdf
    app.dependency_overrides[get_summarization_service] = lambda: summarizer
    app.dependency_overrides[get_rate_governor] = lambda: governor

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_pdf():
    """Factory building a real PDF, one page per entry (None or "" gives a blank page).

    ``user_password`` produces an AES-256 encrypted file that needs it to open.
    """
    import fitz

    def _make(page_texts: Optional[List[str]] = None, user_password: Optional[str] = None) -> bytes:
        doc = fitz.open()
        for text in page_texts or ["Hello"]:
            page = doc.new_page(width=612, height=792)
            if text:
                page.insert_text((72, 72), text)
        if user_password:
            data = doc.tobytes(
                encryption=fitz.PDF_ENCRYPT_AES_256,
                user_pw=user_password,
                owner_pw=user_password + "-owner",
            )
        else:
            data = doc.tobytes()
        doc.close()
        return data

    return _make
