"""Markdown summary generation over an OpenAI-compatible chat completions API."""

import uuid
from typing import Optional

import httpx
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ConfigurationError,
    EmptyGenerationResult,
    GenerationError,
    StorageError,
)
from app.core.logging import logger
from app.models.summary_version import SummaryVersion
from app.schemas import SummaryOptions
from app.services.prompt_builder import build_summary_prompt
from app.services.rate_governor import RateGovernor, rate_governor

SYSTEM_PROMPT = "You write concise, high-quality markdown summaries."


class SummarizationService:
    """Generates summaries and stores them as versioned records."""

    def __init__(
        self,
        governor: RateGovernor,
        api_key: Optional[str] = None,
        base_url: str = settings.AI_BASE_URL,
        model: str = settings.AI_MODEL,
        timeout: float = settings.AI_TIMEOUT_SECONDS,
    ):
        self.governor = governor
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def _build_payload(self, prompt: str) -> dict:
        """Build the chat completion request payload."""
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }

    async def _call_llm(self, payload: dict) -> Optional[str]:
        """POST one chat completion and return the first choice's content."""
        if not self.api_key:
            raise ConfigurationError("AI_API_KEY is not set. Add it to your .env file.")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/chat/completions"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"LLM request to {url} failed: {e}")
            raise GenerationError(f"AI request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"LLM API error ({response.status_code}): {response.text}")
            raise GenerationError(
                f"AI API returned {response.status_code}: {response.text}"
            )

        choices = response.json().get("choices") or []
        if not choices:
            return None
        return (choices[0].get("message") or {}).get("content")

    async def generate_markdown(self, source_text: str, options: SummaryOptions) -> str:
        """Admit the call, prompt the model and return the trimmed Markdown.

        Raises RateLimitExceeded before any network traffic when the
        governor rejects the call. An empty answer is not retried.
        """
        self.governor.admit()

        prompt = build_summary_prompt(source_text, options)
        logger.info(
            f"Generating summary via {self.model}: {len(source_text)} chars, "
            f"language={options.language}, length={options.length}, tone={options.tone}"
        )

        content = await self._call_llm(self._build_payload(prompt))
        output = (content or "").strip()
        if not output:
            raise EmptyGenerationResult("AI returned an empty summary")

        return output

    async def generate(
        self,
        db: AsyncSession,
        document_id: uuid.UUID,
        source_text: str,
        options: SummaryOptions,
    ) -> SummaryVersion:
        """Generate a summary and store it as the document's current version.

        The previous current version is unset and the new one inserted in
        a single transaction.
        """
        content_markdown = await self.generate_markdown(source_text, options)

        try:
            await db.execute(
                update(SummaryVersion)
                .where(
                    SummaryVersion.document_id == document_id,
                    SummaryVersion.is_current.is_(True),
                )
                .values(is_current=False)
            )
            version = SummaryVersion(
                document_id=document_id,
                content_markdown=content_markdown,
                language=options.language,
                length=options.length,
                tone=options.tone,
                is_current=True,
            )
            db.add(version)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Saving summary for document {document_id} failed: {e}")
            raise StorageError(f"Failed to save generated summary: {e}") from e

        await db.refresh(version)
        logger.info(f"Summary {version.id} is now current for document {document_id}")
        return version


# Singleton instance
summarization_service = SummarizationService(
    governor=rate_governor,
    api_key=settings.AI_API_KEY,
)
