"""
core/exceptions.py
------------------
Application exception hierarchy.

Services raise these; main.py maps each one to an HTTP outcome:
  ValidationError        → 422 with field messages
  AuthorizationDenied    → flash message + redirect back
  NotFoundError          → 404
  AuthenticationFailure  → 401 with a generic credentials message
  AuthenticationRequired → redirect to /login
"""

from typing import Any


class ClientDeskError(Exception):
    """Base class for every error raised by the application layer."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ClientDeskError):
    """Malformed or conflicting input, reported against a single field."""

    def __init__(self, message: str, field: str = "__all__"):
        self.field = field
        super().__init__(message, "VALIDATION_ERROR", {"field": field})


class AuthorizationDenied(ClientDeskError):
    """The acting user may not perform the requested action."""

    def __init__(self, message: str = "This action is unauthorized."):
        super().__init__(message, "AUTHORIZATION_DENIED")


class NotFoundError(ClientDeskError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} not found",
            "NOT_FOUND",
            {"resource": resource, "id": resource_id},
        )


class AuthenticationFailure(ClientDeskError):
    """Bad credentials. The message never reveals whether the email exists."""

    def __init__(self, message: str = "Invalid email or password."):
        super().__init__(message, "AUTHENTICATION_FAILED")


class AuthenticationRequired(ClientDeskError):
    def __init__(self, intended_path: str | None = None):
        self.intended_path = intended_path
        super().__init__("Authentication required", "AUTHENTICATION_REQUIRED")
