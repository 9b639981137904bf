from typing import Optional


class AppException(Exception):
    """Base application exception."""

    pass


class PaymentProviderError(AppException):
    """
    A call to the payment processor failed.

    Keeps the processor's message, HTTP status and error code so callers can
    classify tolerable failures and the API can surface them for diagnostics.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class RemoteDataError(AppException):
    """The payment processor returned data we cannot act on."""

    pass
