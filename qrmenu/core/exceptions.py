"""
Application Exceptions

Every failure the ordering front reports to a user is a QrMenuError carrying
the HTTP status the API answers with and a message fit for a notification.
Collaborator failures (network, HTTP errors, bad JSON) are translated into
these types at the client boundary so route handlers never see httpx errors.
"""

from typing import Optional


class QrMenuError(Exception):
    """Base class for user-visible failures."""

    status_code: int = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(QrMenuError):
    """A form field is missing or malformed."""


class NotFoundError(QrMenuError):
    status_code = 404


class PermissionDeniedError(QrMenuError):
    """The logged-in role may not use this dashboard feature."""

    status_code = 403


class MissingSelectionError(QrMenuError):
    """An item's category requires an option the customer has not chosen."""

    status_code = 422

    def __init__(self, item_name: str, option: str):
        if option == "spiciness":
            message = f"Silakan pilih tingkat kepedasan untuk {item_name}!"
        else:
            message = f"Silakan pilih dingin/tidak dingin untuk {item_name}!"
        super().__init__(message)
        self.item_name = item_name
        self.option = option


class EmptyCartError(QrMenuError):
    def __init__(self, message: str = "Keranjang belanja kosong! Silakan pilih item terlebih dahulu."):
        super().__init__(message)


class PayloadValidationError(QrMenuError):
    """An order payload failed the pre-submission sanity check."""

    def __init__(self, path: str, value: object):
        super().__init__(f"Boolean value found in order data at {path}: {value}")
        self.path = path


class InsufficientCashError(QrMenuError):
    def __init__(self, received: int, total: int):
        super().__init__("Uang yang diterima kurang dari total pembayaran!")
        self.received = received
        self.total = total


class BackendError(QrMenuError):
    """The restaurant REST API failed or answered with an error."""

    status_code = 502


class AuthenticationError(BackendError):
    """The REST API rejected the bearer token (401/403)."""

    status_code = 401


class MalformedResponseError(BackendError):
    """The REST API answered with something that is not the expected JSON."""


class PaymentError(QrMenuError):
    """The payment widget reported an error or was closed."""

    status_code = 402


class RequestSupersededError(Exception):
    """A poll was overtaken by a newer one; its result must be dropped."""
