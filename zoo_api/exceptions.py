"""
Zoo Registry API: Custom Exception Hierarchy
=============================================

What:  Defines application-specific exceptions for every failure kind the
       core operations can report.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by the store, the services and the auth dependency; caught by
       the global handlers.

Exception Hierarchy:
    ZooApiError (base)
    ├── ValidationError   → 400 Bad Request (missing/invalid input, broken references)
    ├── AuthError         → 401 Unauthorized (token or credential problems)
    ├── NotFoundError     → 404 Not Found
    ├── ConflictError     → 409 Conflict (uniqueness violation)
    └── StoreError        → 500 Internal Server Error (store unreachable or failed)

Security Note:
    `context` is logged server-side. Only ValidationError and ConflictError
    echo it back to the client, so nothing secret (hashes, tokens, signing
    keys, raw driver messages) may ever be placed in their context.
"""

from typing import Any, Dict, Optional


class ZooApiError(Exception):
    """
    Base exception for all Zoo Registry application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ZooApiError):
    """
    Raised when client input fails validation.

    When:    Missing required fields, blank values, malformed identifiers,
             candidate animal ids that do not resolve, wrong current password,
             zoo deletion refused by the `reject` policy.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Username and password are required",
            "details": {"field": "password"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(ZooApiError):
    """
    Raised when a request cannot be authenticated.

    When:    Missing/malformed Authorization header, bad signature, expired
             token, or a credential mismatch at login.
    HTTP:    401 Unauthorized (with `WWW-Authenticate: Bearer`)

    Login failures always use the same message whether the username exists
    or not, so the response cannot be used to enumerate accounts.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ZooApiError):
    """
    Raised when a requested resource does not exist.

    When:    GET/PUT/DELETE on an unknown zoo, animal or user; a zoo reference
             that does not resolve; a token whose user has been deleted.
    HTTP:    404 Not Found

    The store returns None for missing documents; services convert that
    None into NotFoundError so HTTP concerns stay out of the store.
    """

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
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(ZooApiError):
    """
    Raised when a write would violate a uniqueness constraint.

    When:    Registering a username that already exists.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class StoreError(ZooApiError):
    """
    Raised when the document store fails for reasons outside the caller's input.

    When:    Connection refused or lost, retry policy exhausted, unexpected
             SQLAlchemy/driver error.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        The driver error type is kept in `context` and logged server-side only.
    """

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
