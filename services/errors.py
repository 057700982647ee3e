"""
Errors raised by the workflow services.
Each carries the HTTP status the API layer renders it with (see main.py).
"""
from __future__ import annotations


class PortalError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Bad input shape or missing required package fields."""

    status_code = 400

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class NotAuthenticatedError(PortalError):
    status_code = 401


class PermissionDeniedError(PortalError):
    status_code = 403


class NotFoundError(PortalError):
    status_code = 404


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id: str):
        super().__init__(f"Application {application_id} not found")
        self.application_id = application_id


class ReviewTokenNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Review link is invalid")


class InvalidTransitionError(PortalError):
    """Status precondition violated. A caller bug, not retryable."""

    status_code = 409

    def __init__(self, message: str, current_status: str | None = None):
        super().__init__(message)
        self.current_status = current_status


class AlreadyClaimedError(PortalError):
    status_code = 409


class AlreadyInQueueError(PortalError):
    status_code = 409


class TokenConsumedError(PortalError):
    status_code = 409

    def __init__(self):
        super().__init__("This review link has already been used")


class TokenExpiredError(PortalError):
    status_code = 410

    def __init__(self):
        super().__init__("This review link has expired")


class PaymentError(PortalError):
    status_code = 402
