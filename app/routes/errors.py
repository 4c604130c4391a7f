"""
Translation of domain errors into HTTP responses for the route modules.
"""

from fastapi import HTTPException, status

from app.jobs.task_queue import TaskQueueError
from app.models.domain.errors import (
    ConsolidationPreconditionError,
    NotFoundError,
    PipelineError,
    TranscriptValidationError,
)
from app.services.calendar.google_client import (
    CalendarProviderError,
    ProviderAuthError,
    ProviderTransientError,
)


def http_error_for(error: Exception) -> HTTPException:
    """Map a domain error to an HTTPException. Unknown errors become a bare 500."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, TranscriptValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=error.message
        )
    if isinstance(error, ConsolidationPreconditionError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": error.message,
                "completed_calls": error.completed_calls,
                "required": error.required,
            },
        )
    if isinstance(error, ProviderAuthError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Calendar connection expired or revoked; reconnect the calendar",
        )
    if isinstance(error, ProviderTransientError | TaskQueueError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Temporarily unavailable, try again later",
        )
    if isinstance(error, CalendarProviderError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=error.message)
    if isinstance(error, PipelineError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
    )
