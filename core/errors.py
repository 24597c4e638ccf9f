"""
Error taxonomy shared by services and the API layer.

Messages are short and safe to show to end users; provider-level detail
goes to the logs (and to `detail` on admin-only surfaces).
"""

from __future__ import annotations


class PortalError(Exception):
    status_code = 500
    message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class FormValidationError(PortalError):
    status_code = 422
    message = "Please fix the highlighted errors before proceeding."

    def __init__(self, errors: dict[str, str], message: str | None = None):
        super().__init__(message)
        self.errors = errors


class AuthenticationError(PortalError):
    status_code = 401
    message = "Please sign in to continue."


class AuthorizationError(PortalError):
    status_code = 403
    message = "You don't have admin privileges."


class NotFoundError(PortalError):
    status_code = 404
    message = "Not found."


class InvalidTransitionError(PortalError):
    status_code = 409
    message = "This application can no longer be changed."


class PersistenceError(PortalError):
    status_code = 503
    message = "Failed to save application. Please try again."


class UploadError(PortalError):
    status_code = 400
    message = "Upload failed."


class NotificationError(PortalError):
    status_code = 502
    message = "Failed to send notification email."


class RateLimitedError(PortalError):
    status_code = 429
    message = "Too many requests. Please try again shortly."


class GatewayError(PortalError):
    status_code = 502
    message = "Failed to get AI response."
