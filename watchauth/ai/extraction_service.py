"""Photo extraction through the OpenAI vision API."""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError as PydanticValidationError

from watchauth import metrics
from watchauth.ai.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    PhotoExtractionPrompt,
    extraction_schema,
)
from watchauth.api.schemas import WatchPhotoExtraction
from watchauth.config import settings
from watchauth.errors import BackendError, ValidationError

logger = logging.getLogger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper some models put around JSON."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    if text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


class PhotoExtractionService:
    """
    Turns watch photos into a ``WatchPhotoExtraction``.

    Features:
    - Lazy OpenAI client (no key needed until the first call)
    - JSON-object output with the schema in the system prompt
    - Provider and parse failures raised as BackendError
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self._client = client
        self._call_count = 0

    async def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.openai_api_key:
                raise BackendError("OpenAI API key not configured")
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.extraction_timeout_seconds,
            )
        return self._client

    def _system_prompt(self) -> str:
        return (
            f"{EXTRACTION_SYSTEM_PROMPT}\n\n"
            f"Respond with valid JSON matching this schema: {json.dumps(extraction_schema(), indent=2)}\n"
            "Return only the JSON object, no additional text."
        )

    async def extract(self, images: List[str]) -> Dict[str, Any]:
        """
        Analyze photos and return ``{"data": extraction, "usage": {...}}``.

        Raises:
            ValidationError: no images were given
            BackendError: provider unavailable or answer not parseable
        """
        if not images:
            raise ValidationError("No images provided")

        client = await self._get_client()
        prompt = PhotoExtractionPrompt(images=images)

        started = time.perf_counter()
        try:
            response = await client.chat.completions.create(
                model=settings.extraction_model,
                messages=[
                    {"role": "system", "content": self._system_prompt()},
                    {"role": "user", "content": prompt.to_content()},
                ],
                response_format={"type": "json_object"},
                temperature=settings.extraction_temperature,
                max_tokens=settings.extraction_max_tokens,
            )
        except OpenAIError as e:
            metrics.extraction_requests_total.labels(status="provider_error").inc()
            logger.error(f"Photo extraction call failed: {e}")
            raise BackendError("Analysis failed", detail=str(e)) from e
        finally:
            metrics.extraction_duration_seconds.observe(time.perf_counter() - started)

        self._call_count += 1
        content = response.choices[0].message.content if response.choices else None
        if not content:
            metrics.extraction_requests_total.labels(status="empty").inc()
            raise BackendError("No response from OpenAI")

        try:
            raw = json.loads(strip_code_fences(content))
            extraction = WatchPhotoExtraction.model_validate(raw)
        except (json.JSONDecodeError, PydanticValidationError) as e:
            metrics.extraction_requests_total.labels(status="invalid").inc()
            logger.error(f"Failed to parse extraction response: {e}\nResponse: {content[:200]}")
            raise BackendError("Invalid extraction response from provider", detail=str(e)) from e

        metrics.extraction_requests_total.labels(status="success").inc()
        identity = extraction.watch_identity
        logger.info(
            f"Extracted {identity.brand or 'unknown brand'} {identity.model_name} "
            f"from {len(images)} photo(s)"
        )

        usage = response.usage.model_dump() if response.usage is not None else None
        return {"data": extraction.model_dump(), "usage": usage}

    def get_stats(self) -> Dict[str, Any]:
        return {"call_count": self._call_count, "model": settings.extraction_model}

    async def close(self):
        if self._client:
            await self._client.close()
            self._client = None


# Global extraction service instance
extraction_service = PhotoExtractionService()
