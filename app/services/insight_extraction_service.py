# app/services/insight_extraction_service.py
"""
Insight extraction service.
Sends a call transcript to OpenAI and returns structured sales insights
(pain points, goals, people, next steps, business drivers, metrics).
"""

import asyncio
import json
from typing import Any

import openai
from openai import AsyncOpenAI

from app.config import settings
from app.features.call_insights.domain import INSIGHT_FIELDS, ExtractedInsights
from app.infrastructure.observability.logging import get_logger
from app.models.domain.errors import InsightExtractionError

logger = get_logger(__name__)

# Long transcripts are truncated to keep requests inside the model context
MAX_TRANSCRIPT_CHARS = 120_000

SYSTEM_MESSAGE = """### Role
You are a sales call analyzer. Extract actionable insights from a sales call transcript.

### Output Requirements
- Return ONLY valid JSON (no backticks, no prose)
- Every value is an array of short, specific strings; use [] when nothing applies
- Base every item on what is said in the transcript only

### JSON Schema
{
  "pain_points": ["current problems, frustrations, gaps in their process"],
  "goals": ["desired outcomes and future state"],
  "people_mentioned": ["Name (Organization, Role)"],
  "next_steps": ["agreed action items with owners or dates when stated"],
  "why_and_why_now": ["business drivers and the reason this matters now"],
  "quantifiable_metrics": ["numbers the prospect gave: costs, volumes, durations, targets"]
}
"""


class InsightExtractionService:
    """OpenAI-backed extraction of call insights. The client is created on first use."""

    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client

    def _get_client(self) -> AsyncOpenAI:
        if self.client is not None:
            return self.client

        if not settings.OPENAI_API_KEY:
            raise InsightExtractionError("OPENAI_API_KEY not configured", recoverable=False)

        self.client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
        )
        logger.info(
            "OpenAI client initialized",
            model=settings.OPENAI_MODEL,
            timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
        )
        return self.client

    def _build_user_message(self, transcript_text: str) -> str:
        transcript = transcript_text.strip()
        if len(transcript) > MAX_TRANSCRIPT_CHARS:
            transcript = transcript[:MAX_TRANSCRIPT_CHARS]
        return f"### Transcript\n{transcript}"

    async def extract(self, transcript_text: str) -> ExtractedInsights:
        """
        Extract insights from one transcript.

        Raises:
            InsightExtractionError: API failure after retries or unusable output
        """
        if not transcript_text or not transcript_text.strip():
            raise InsightExtractionError("Transcript is empty", recoverable=False)

        client = self._get_client()

        logger.info(
            "Starting transcript insight extraction",
            transcript_length=len(transcript_text),
            model=settings.OPENAI_MODEL,
        )

        raw = await self._call_openai_with_retry(
            client, SYSTEM_MESSAGE, self._build_user_message(transcript_text)
        )
        insights = self._parse_extraction_result(raw)

        logger.info(
            "Transcript insight extraction completed",
            **{f"{name}_count": len(getattr(insights, name)) for name in INSIGHT_FIELDS},
        )
        return insights

    async def _call_openai_with_retry(
        self, client: AsyncOpenAI, system_message: str, user_message: str
    ) -> str:
        """Call OpenAI API with retry logic for transient failures."""
        last_error = None
        max_retries = settings.EXTRACTION_MAX_RETRIES

        for attempt in range(max_retries):
            try:
                response = await client.chat.completions.create(
                    model=settings.OPENAI_MODEL,
                    messages=[
                        {"role": "system", "content": system_message},
                        {"role": "user", "content": user_message},
                    ],
                    max_tokens=settings.OPENAI_MAX_TOKENS,
                    temperature=settings.OPENAI_TEMPERATURE,
                    response_format={"type": "json_object"},
                )

                if not response.choices or not response.choices[0].message.content:
                    raise InsightExtractionError("Empty response from OpenAI API")

                result = response.choices[0].message.content.strip()
                logger.debug(
                    "OpenAI API call successful",
                    attempt=attempt + 1,
                    response_length=len(result),
                    usage_tokens=response.usage.total_tokens if response.usage else 0,
                )
                return result

            except openai.RateLimitError as e:
                last_error = e
                wait_time = min(2**attempt, 30)
                logger.warning(
                    "OpenAI rate limit hit, retrying",
                    attempt=attempt + 1,
                    wait_time=wait_time,
                    error=str(e),
                )
                if attempt < max_retries - 1:
                    await asyncio.sleep(wait_time)

            except openai.APITimeoutError as e:
                last_error = e
                logger.warning("OpenAI API timeout, retrying", attempt=attempt + 1, error=str(e))

            except openai.APIStatusError as e:
                last_error = e
                if 400 <= e.status_code < 500:
                    logger.error("OpenAI client error (not retrying)", error=str(e))
                    break
                logger.warning("OpenAI API error, retrying", attempt=attempt + 1, error=str(e))

            except openai.APIError as e:
                last_error = e
                logger.warning("OpenAI API error, retrying", attempt=attempt + 1, error=str(e))

            except InsightExtractionError as e:
                last_error = e
                logger.warning("OpenAI returned no content, retrying", attempt=attempt + 1)

        logger.error(
            "OpenAI API call failed after all retries",
            max_retries=max_retries,
            final_error=str(last_error),
        )
        raise InsightExtractionError(
            f"Insight extraction failed: {last_error}", recoverable=True
        ) from last_error

    def _parse_extraction_result(self, raw_result: str) -> ExtractedInsights:
        try:
            payload: Any = json.loads(raw_result)
        except json.JSONDecodeError as e:
            logger.error(
                "Failed to parse OpenAI response as JSON", error=str(e), raw_result=raw_result[:200]
            )
            raise InsightExtractionError("Extraction returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise InsightExtractionError("Extraction returned an unexpected shape")

        missing = [name for name in INSIGHT_FIELDS if name not in payload]
        if missing:
            logger.warning("Extraction result missing fields", missing=missing)

        return ExtractedInsights.from_payload(payload)


# Singleton instance for application use
insight_extraction_service = InsightExtractionService()
