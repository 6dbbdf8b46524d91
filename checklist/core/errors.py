"""
Domain errors raised by the checklist services.

Routes never build HTTP errors for these themselves; the handlers registered
in checklist.main translate them:

    ValidationError     -> 400 with a field-keyed "errors" body
    AuthorizationError  -> 403
    NotFoundError       -> 404 (also used for resources outside the actor's organizations)
    InvitationExpiredError -> 410
    PersistenceError    -> 500 with an opaque message
"""
from typing import Dict, Optional


class ChecklistError(Exception):
    """Base class for all checklist domain errors."""

    status_code: int = 500
    default_message: str = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ChecklistError):
    """User-correctable payload problem, keyed by field id when applicable."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors: Dict[str, str] = dict(errors or {})


class AuthorizationError(ChecklistError):
    """Role, ownership or overlay denial."""

    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFoundError(ChecklistError):
    """Resource absent or outside the actor's visibility."""

    status_code = 404

    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(f"{resource} not found")


class PersistenceError(ChecklistError):
    """Infrastructure failure; the cause is logged, never returned to clients."""

    status_code = 500
    default_message = "Failed to access storage"


class InvitationExpiredError(ChecklistError):
    """Invitation exists but can no longer be accepted."""

    status_code = 410
    default_message = "Invitation has expired"
