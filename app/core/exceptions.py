# app/core/exceptions.py
from typing import Any, List, Optional
from fastapi import status


class StorefrontError(Exception):
    """Base class for errors surfaced to API clients and the payment gateway."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    # Whether the caller (end user or gateway redelivery) is expected to retry
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ConfigurationError(StorefrontError):
    """Gateway credentials or the public base URL are not configured."""


class RequestValidationError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST


class MissingFieldError(RequestValidationError):
    def __init__(self, fields: List[str]):
        super().__init__("Missing mandatory IPN data", details={"missing": fields})
        self.fields = fields


class TransactionMismatchError(RequestValidationError):
    """Validated transaction disagrees with the notification or the stored order."""


class GatewayError(StorefrontError):
    retryable = True

    def __init__(self, message: str, reason: str):
        super().__init__(message, details=reason)
        self.reason = reason


class ValidationAPIError(StorefrontError):
    retryable = True


class OrderNotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
