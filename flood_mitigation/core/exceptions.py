"""
Custom exceptions for the Flood Mitigation Monitor.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class AppException(Exception):
    """Base exception for the Flood Mitigation Monitor."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AppException):
    """Data validation exception."""

    pass


class ConfigurationException(AppException):
    """Configuration exception."""

    pass


class ServiceUnavailableException(AppException):
    """A background component (simulator, consumer) is not running."""

    pass


class NotificationException(AppException):
    """Outbound notification could not be delivered."""

    pass


class UnauthorizedCredentialException(NotificationException):
    """The notification provider rejected our credentials."""

    pass


class RecipientUnreachableException(NotificationException):
    """The recipient does not exist or refuses messages."""

    pass


class RateLimitException(NotificationException):
    """Rate limit exceeded exception."""

    pass


# HTTP Exception mappings
def create_http_exception(exc: AppException) -> HTTPException:
    """Convert custom exceptions to HTTP exceptions."""

    if isinstance(exc, ValidationException):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.message,
            headers={"X-Error-Details": str(exc.details)},
        )

    elif isinstance(exc, ConfigurationException):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=exc.message,
            headers={"X-Error-Details": str(exc.details)},
        )

    elif isinstance(exc, ServiceUnavailableException):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=exc.message,
            headers={"X-Error-Details": str(exc.details)},
        )

    elif isinstance(exc, RecipientUnreachableException):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
            headers={"X-Error-Details": str(exc.details)},
        )

    elif isinstance(exc, RateLimitException):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=exc.message,
            headers={"X-Error-Details": str(exc.details)},
        )

    elif isinstance(exc, NotificationException):
        # Includes UnauthorizedCredentialException (upstream rejected our token)
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=exc.message or "Notification delivery failed",
            headers={"X-Error-Details": str(exc.details)},
        )

    else:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=exc.message,
            headers={"X-Error-Details": str(exc.details)},
        )
