"""
Fabtrack Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Services raise these instead of building HTTP responses; the global
       exception handlers registered in main.py turn them into the JSON
       shapes the frontend expects.
How:   Each exception class carries a message and an optional context dict.
Who:   Raised by the database layer and services; caught by global handlers.

Exception Hierarchy:
    FabtrackError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── NotFoundError            → 404 Not Found
    ├── InternalError            → 500 Internal Server Error
    ├── CodeGenerationError      → QR encoding failed (create turns it into a 400)
    ├── ConfigurationError       → startup failure (missing settings)
    └── DatabaseConnectionError  → startup failure (store unreachable)

Response shapes:
    400  {"message": ..., "missingFields": [...]}   full update
    400  {"message": ..., "error": "..."}           create
    404  {"message": "Form not found"}
    500  {"message": ..., "error": "..."}
"""

from typing import Any, Dict, List, Optional


class FabtrackError(Exception):
    """
    Base exception for all Fabtrack application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, not returned to the client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(FabtrackError):
    """
    Raised when client input fails validation.

    HTTP:    400 Bad Request

    Two flavours share this class:
        - full update with absent keys: `missing_fields` lists them
        - failed create: `error` carries the underlying reason
    """

    def __init__(
        self,
        message: str = "Validation failed",
        missing_fields: Optional[List[str]] = None,
        error: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.missing_fields = missing_fields
        self.error = error

    def to_body(self) -> Dict[str, Any]:
        """JSON body for the 400 response."""
        body: Dict[str, Any] = {"message": self.message}
        if self.missing_fields is not None:
            body["missingFields"] = self.missing_fields
        if self.error is not None:
            body["error"] = self.error
        return body


class NotFoundError(FabtrackError):
    """
    Raised when an id does not resolve to a stored form.

    HTTP:    404 Not Found

    Ids that are not valid UUIDs also end up here: a malformed id can never
    match a row, so it is reported the same way as an unknown one.
    """

    def __init__(
        self,
        resource: str = "Form",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)


class InternalError(FabtrackError):
    """
    Raised when the store fails while serving a request.

    HTTP:    500 Internal Server Error

    Unlike the message, `error` is the text of the underlying exception.
    """

    def __init__(
        self,
        message: str = "An internal error occurred",
        error: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.error = error or "Unknown error"


class CodeGenerationError(FabtrackError):
    """Raised when a URL cannot be encoded into a QR symbol (e.g. too long)."""

    def __init__(
        self,
        message: str = "Could not generate QR code",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(FabtrackError):
    """Raised at startup when a required setting (e.g. DATABASE_URL) is missing."""


class DatabaseConnectionError(FabtrackError, ConnectionError):
    """
    Raised when the database cannot be reached.

    Also a builtin ConnectionError, so callers that only know about the
    standard library can still catch it.
    """

    def __init__(
        self,
        message: str = "Could not connect to the database",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
