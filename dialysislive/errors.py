"""
This module defines the exception types raised by the DialysisLive client.

API failures are translated into a small hierarchy so that pages can react to the
cases they recognise (an expired session, a subscription limit, a feature that is
not part of the current plan) and fall back to a generic message for the rest.
"""
# dialysislive/errors.py

from typing import Optional

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
NETWORK_ERROR_MESSAGE = "Unable to reach DialysisLive. Check your connection and try again."

LIMIT_CODE = "SUB_001"
FEATURE_CODE = "SUB_002"


class DialysisLiveError(Exception):
    """Base class for every error raised by the client."""


class ApiError(DialysisLiveError):
    """Raised when the API rejects a request or cannot be reached.

    Attributes:
        message (str): The message reported by the server, or a generic one.
        status (int): The HTTP status code, if a response was received.
        code (str): The machine-readable error code from the envelope, if any.
        details (dict): Extra error details from the envelope.
    """
    def __init__(self, message, status=None, code=None, details=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details or {}


class NetworkError(ApiError):
    """Raised when the request never produced an HTTP response."""


class SessionExpiredError(ApiError):
    """Raised when the access token is missing and cannot be refreshed."""


class SubscriptionError(ApiError):
    """Raised for any `SUB_*` error returned by the API."""

    @property
    def plan(self) -> Optional[str]:
        return self.details.get("plan")


class SubscriptionLimitError(SubscriptionError):
    """Raised when the user's plan does not allow creating more of a resource."""

    @property
    def resource(self) -> Optional[str]:
        return self.details.get("resource")

    @property
    def current(self) -> Optional[int]:
        return self.details.get("current")

    @property
    def limit(self) -> Optional[int]:
        return self.details.get("limit")


class FeatureRestrictedError(SubscriptionError):
    """Raised when a feature is not included in the user's plan."""

    @property
    def feature(self) -> Optional[str]:
        return self.details.get("feature")


class ValidationError(DialysisLiveError):
    """Raised when form input fails client-side validation.

    Attributes:
        errors (list): Human-readable messages, one per failed check.
    """
    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class SubmissionInProgressError(DialysisLiveError):
    """Raised when a form is submitted again before its request has finished."""


def _extract_message(status, body):
    error = body.get("error") if isinstance(body.get("error"), dict) else {}
    return body.get("message") or error.get("message") or f"Request failed: {status}"


def error_from_response(status: Optional[int], body: dict) -> ApiError:
    """Maps an API error envelope to the matching exception.

    Args:
        status: The HTTP status code of the response.
        body: The decoded JSON body. It may be empty.

    Returns:
        ApiError: An instance of the most specific matching exception class.
    """
    body = body if isinstance(body, dict) else {}
    error = body.get("error") if isinstance(body.get("error"), dict) else {}
    code = error.get("code") or body.get("code")
    details = error.get("details") or {}
    message = _extract_message(status, body)

    if isinstance(code, str) and code.startswith("SUB_"):
        if code == LIMIT_CODE or (code != FEATURE_CODE and "limit" in details):
            return SubscriptionLimitError(message, status, code, details)
        if code == FEATURE_CODE or "feature" in details:
            return FeatureRestrictedError(message, status, code, details)
        return SubscriptionError(message, status, code, details)
    return ApiError(message, status, code, details)


def is_subscription_error(status, body) -> bool:
    """Returns True if the body carries a `SUB_*` error code."""
    if not isinstance(body, dict):
        return False
    error = body.get("error") if isinstance(body.get("error"), dict) else {}
    code = error.get("code") or body.get("code")
    return isinstance(code, str) and code.startswith("SUB_")


def user_message(exc: Exception, fallback: str = GENERIC_ERROR_MESSAGE) -> str:
    """Returns the text a page should display for a failed action."""
    if isinstance(exc, NetworkError):
        return NETWORK_ERROR_MESSAGE
    if isinstance(exc, (SubscriptionError, SessionExpiredError, ValidationError)):
        return str(exc)
    if isinstance(exc, ApiError) and exc.message and not exc.message.startswith("Request failed"):
        return exc.message
    return fallback
