# app/models/domain/errors.py
"""
Domain errors shared across features. Routes map these onto HTTP responses.
"""


class PipelineError(Exception):
    """Base class for domain errors with a user-facing message."""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class NotFoundError(PipelineError):
    entity = "Resource"

    def __init__(self, entity_id: str):
        super().__init__(f"{self.entity} {entity_id} not found")
        self.entity_id = entity_id


class OpportunityNotFoundError(NotFoundError):
    entity = "Opportunity"


class AccountNotFoundError(NotFoundError):
    entity = "Account"


class OrganizationNotFoundError(NotFoundError):
    entity = "Organization"


class UserNotFoundError(NotFoundError):
    entity = "User"


class CallNotFoundError(NotFoundError):
    entity = "Call"


class TranscriptValidationError(PipelineError):
    """Transcript text missing, empty or of an unknown call kind."""


class ConsolidationPreconditionError(PipelineError):
    """Fewer than the required number of parsed calls for consolidation."""

    def __init__(self, opportunity_id: str, completed_calls: int, required: int):
        super().__init__(
            f"Consolidation requires at least {required} parsed calls; "
            f"opportunity {opportunity_id} has {completed_calls}"
        )
        self.opportunity_id = opportunity_id
        self.completed_calls = completed_calls
        self.required = required


class InsightExtractionError(PipelineError):
    """The extraction collaborator failed or returned unusable output."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message, recoverable=recoverable)
