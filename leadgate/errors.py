"""
Typed intake failures. Guards raise these; the API layer maps them to
429 (rate limits), 404 (missing lead) or 422 (everything else).
"""
from typing import Optional

SCOPE_GLOBAL_USER = "global-user"
SCOPE_CLIENT_LEADS = "client-leads"
SCOPE_CLIENT_QUIZZES = "client-quizzes"
SCOPE_TEST_LEAD = "test-lead"


class IntakeError(Exception):
    """Base class for every per-request lead failure."""

    status_code = 422
    field: Optional[str] = None

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if field is not None:
            self.field = field

    def to_dict(self) -> dict:
        if self.field:
            return {"errors": {self.field: [self.message]}}
        return {"message": self.message}


class RateLimitExceeded(IntakeError):
    status_code = 429

    def __init__(self, scope: str, limit: int, window_minutes: int, message: Optional[str] = None):
        self.scope = scope
        self.limit = limit
        self.window_minutes = window_minutes
        super().__init__(
            message or f"Rate limit reached for {scope} ({limit} in {window_minutes} minutes)"
        )

    @property
    def retry_after_seconds(self) -> int:
        return self.window_minutes * 60

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "scope": self.scope,
            "limit": self.limit,
            "window_minutes": self.window_minutes,
        }


class ValidationFailed(IntakeError):
    """A referenced user or quiz is missing or blocked."""


class PhoneNotVerified(IntakeError):
    field = "phone"

    def __init__(self, message: str = "Phone was not verified"):
        super().__init__(message)


class PhoneVerificationProviderError(IntakeError):
    field = "phone"

    def __init__(self, message: str = "Failed to verify phone number"):
        super().__init__(message)


class LeadNotFound(IntakeError):
    status_code = 404

    def __init__(self, lead_id: int):
        self.lead_id = lead_id
        super().__init__(f"Lead {lead_id} not found")
