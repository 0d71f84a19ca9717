"""
Inkwell Backend — Shared Response Schemas
==========================================

Error and health payloads used by every router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.
    Why:   Clients need a consistent structure to parse errors programmatically.

    Fields:
        error: Machine-readable error code (e.g., "permission_denied", "invalid_state")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "invalid_state",
            "message": "Note is not in trash",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    Returned by GET /health for monitoring and load balancer checks.

    The trash sweeper is reported separately from the database: a stopped
    sweeper degrades retention but does not stop the API.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    trash_sweeper: str = Field(description="Background sweeper: running, stopped, disabled")
    uptime_seconds: float = Field(description="Seconds since service started")
