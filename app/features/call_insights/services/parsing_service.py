"""
Transcript parsing state machine.

Submitting a transcript persists it, moves the call to `parsing` and queues a
`parse_transcript` task. The task runs the extraction under a deadline and
writes the outcome only if the call's parse generation is still the one the
task was queued for; a newer submission silently supersedes an older one.
"""

import asyncio
import time
from datetime import UTC, datetime
from typing import Any

from app.config import settings
from app.features.call_insights.domain import CALL_KINDS, PARSING_IN_PROGRESS, CallRecord
from app.features.call_insights.repository.call_repository import CallRepository
from app.infrastructure.observability.logging import get_logger, log_run_summary
from app.jobs.task_queue import TaskQueue, TaskQueueError, task_queue
from app.models.domain.errors import (
    CallNotFoundError,
    InsightExtractionError,
    TranscriptValidationError,
)
from app.services.insight_extraction_service import insight_extraction_service

logger = get_logger(__name__)

PARSE_TRANSCRIPT_TASK = "parse_transcript"


class TranscriptParsingService:
    def __init__(
        self,
        calls=CallRepository,
        queue: TaskQueue | None = None,
        extractor=None,
        clock=None,
        deadline_seconds: float | None = None,
    ):
        self.calls = calls
        self.queue = queue or task_queue
        self.extractor = extractor or insight_extraction_service
        self._clock = clock or (lambda: datetime.now(UTC))
        self.deadline_seconds = (
            settings.PARSING_DEADLINE_SECONDS if deadline_seconds is None else deadline_seconds
        )

    @staticmethod
    def _validate_kind(kind: str) -> None:
        if kind not in CALL_KINDS:
            raise TranscriptValidationError(
                f"Unknown call kind '{kind}'. Expected one of: {', '.join(CALL_KINDS)}"
            )

    async def submit(self, kind: str, call_id: str, transcript_text: str | None) -> CallRecord:
        """
        Persist the transcript and queue parsing. Returns the call in `parsing`.

        Raises:
            TranscriptValidationError: unknown kind or empty transcript
            CallNotFoundError: unknown call
            TaskQueueError: the task could not be queued; the call is left
                in `failed`
        """
        self._validate_kind(kind)
        if transcript_text is None or not transcript_text.strip():
            raise TranscriptValidationError("Transcript text is required")

        call = await self.calls.submit_transcript(kind, call_id, transcript_text)
        if call is None:
            raise CallNotFoundError(call_id)

        try:
            await self.queue.enqueue(
                PARSE_TRANSCRIPT_TASK,
                {"kind": kind, "call_id": call_id, "generation": call.parse_generation},
            )
        except TaskQueueError:
            # Nothing will ever run for this generation
            await self.calls.fail_parse(
                kind, call_id, call.parse_generation, "Could not queue transcript for parsing"
            )
            raise

        logger.info(
            "Transcript submitted for parsing",
            call_id=call_id,
            kind=kind,
            generation=call.parse_generation,
            transcript_length=len(transcript_text),
        )
        return call

    async def run_parse_task(self, payload: dict[str, Any]) -> str:
        """
        Handle one `parse_transcript` task. Safe to run more than once.

        Returns the outcome: "completed", "failed", "superseded" or "skipped".
        """
        started = time.perf_counter()
        kind = payload.get("kind")
        call_id = payload.get("call_id")
        generation = payload.get("generation")

        if kind not in CALL_KINDS or not call_id or generation is None:
            logger.error("Invalid parse task payload", payload=payload)
            return "skipped"

        call = await self.calls.get(kind, call_id)
        if call is None:
            logger.warning("Call disappeared before parsing", call_id=call_id, kind=kind)
            return "skipped"

        if call.parse_generation != generation or call.parsing_status != PARSING_IN_PROGRESS:
            logger.info(
                "Skipping stale parse task",
                call_id=call_id,
                task_generation=generation,
                current_generation=call.parse_generation,
                status=call.parsing_status,
            )
            return "skipped"

        try:
            insights = await asyncio.wait_for(
                self.extractor.extract(call.transcript_text or ""),
                timeout=self.deadline_seconds,
            )
        except TimeoutError:
            error = f"Transcript parsing timed out after {self.deadline_seconds:g} seconds"
            return await self._record_failure(kind, call_id, generation, error, started)
        except InsightExtractionError as e:
            return await self._record_failure(kind, call_id, generation, e.message, started)
        except Exception as e:
            logger.error(
                "Unexpected error during transcript parsing",
                call_id=call_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return await self._record_failure(
                kind, call_id, generation, f"Transcript parsing failed: {e}", started
            )

        written = await self.calls.complete_parse(kind, call_id, generation, insights, self._clock())
        outcome = "completed" if written else "superseded"
        log_run_summary(
            "transcript_parse",
            ok=True,
            duration_ms=(time.perf_counter() - started) * 1000,
            call_id=call_id,
            kind=kind,
            generation=generation,
            outcome=outcome,
        )
        return outcome

    async def _record_failure(
        self, kind: str, call_id: str, generation: int, error: str, started: float
    ) -> str:
        written = await self.calls.fail_parse(kind, call_id, generation, error)
        outcome = "failed" if written else "superseded"
        log_run_summary(
            "transcript_parse",
            ok=False,
            duration_ms=(time.perf_counter() - started) * 1000,
            call_id=call_id,
            kind=kind,
            generation=generation,
            outcome=outcome,
            error=error,
        )
        return outcome

    async def get_parsing_status(self, kind: str, call_id: str) -> CallRecord:
        self._validate_kind(kind)
        call = await self.calls.get(kind, call_id)
        if call is None:
            raise CallNotFoundError(call_id)
        return call


transcript_parsing_service = TranscriptParsingService()
