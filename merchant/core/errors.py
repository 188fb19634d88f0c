"""Domain exceptions and their HTTP mapping."""

from fastapi import status


class MerchantError(Exception):
    """Base class for errors raised by the service layer.

    Each subclass carries the HTTP status the API renders it with.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class UnauthorizedError(MerchantError):
    """Missing or malformed credential."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(MerchantError):
    """Credential present but invalid, expired, or for the wrong tenant."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(MerchantError):
    """Entity absent or owned by another tenant."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(MerchantError):
    """Missing or malformed input fields."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotPersistedError(MerchantError):
    """A write did not reach the database."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamError(MerchantError):
    """An external service (image host) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY


class NotificationError(MerchantError):
    """An email could not be sent. Never surfaced to API callers."""


class DeliveryError(NotificationError):
    """The mail server refused or could not be reached. Worth retrying."""
