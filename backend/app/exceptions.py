"""
Inkwell Backend — Custom Exception Hierarchy
=============================================

What:  Defines application-specific exceptions for the note access and
       lifecycle rules.
Why:   Services raise these instead of HTTP errors so the business logic stays
       transport-agnostic; global handlers in main.py map them to status codes.
How:   Each exception class carries a user-safe message and an optional
       context dict that is logged but never returned to the client.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    InkwellError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── InvalidStateError        → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error

Security Note:
    PermissionDeniedError always carries the same message regardless of whether
    the denial came from team membership or from the direct-share list. The
    deciding rule goes into `context` (logs only), so a caller cannot probe
    team membership by comparing error messages.
"""

from typing import Any, Dict, Iterable, Optional


class InkwellError(Exception):
    """
    Base exception for all Inkwell application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(InkwellError):
    """
    Raised when client input fails business validation.

    HTTP: 400 Bad Request

    Multiple field problems are reported together: `errors` keeps the
    individual messages and `message` joins them with ", " so a form can show
    a single line ("Title is required, Tag cannot be more than 50 characters").
    """

    error_code = "validation_error"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        errors: Optional[Iterable[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.errors = list(errors or [])
        if message is None:
            message = ", ".join(self.errors) if self.errors else "Validation failed"
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(InkwellError):
    """
    Raised when the request carries no usable caller identity.

    HTTP: 401 Unauthorized

    Identity is asserted by the upstream gateway through the X-User-ID header;
    this service never checks credentials itself.
    """

    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(InkwellError):
    """
    Raised when the caller's effective role does not allow the operation.

    HTTP: 403 Forbidden

    No mutation has been performed when this is raised.
    """

    error_code = "permission_denied"

    def __init__(
        self,
        action: str = "access",
        resource: str = "note",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"You don't have permission to {action} this {resource}"
        ctx = context or {}
        ctx["action"] = action
        super().__init__(message=message, context=ctx)
        self.action = action


class NotFoundError(InkwellError):
    """
    Raised when a requested resource does not exist.

    HTTP: 404 Not Found

    Also raised when a note vanished between load and write, for example when
    the trash sweeper purged it while a user was restoring it.
    """

    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class InvalidStateError(InkwellError):
    """
    Raised when a lifecycle transition is not allowed from the note's state.

    HTTP: 409 Conflict

    Example: restoring a note that is not in the trash.
    """

    error_code = "invalid_state"

    def __init__(
        self,
        message: str = "The note is not in a state that allows this operation",
        current_state: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if current_state:
            ctx["current_state"] = current_state
        super().__init__(message=message, context=ctx)
        self.current_state = current_state


class DatabaseError(InkwellError):
    """
    Raised when database operations fail unexpectedly.

    HTTP: 500 Internal Server Error

    The message returned to the client is always generic; the original error
    type is kept in `context` for the server log. No retry is attempted here.
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(InkwellError):
    """
    Raised when a caller exceeds the request rate limit.

    HTTP: 429 Too Many Requests
    """

    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
