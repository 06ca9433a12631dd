"""Errors raised by the Acumatica gateway."""


class AcumaticaError(Exception):
    """Base error for Acumatica REST calls."""

    def __init__(self, status: int, message: str, retryable: bool = False):
        super().__init__(message)
        self.status = status
        self.message = message
        self.retryable = retryable

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class AuthError(AcumaticaError):
    """Login failed or the session was rejected."""


class RequestTimeoutError(AcumaticaError):
    """Request did not complete within the configured timeout."""

    def __init__(self, message: str = "Request timed out"):
        super().__init__(0, message, retryable=True)


class RateLimitedError(AcumaticaError):
    """Server kept answering 429 after all retries."""

    def __init__(self, message: str = "Rate limited by Acumatica"):
        super().__init__(429, message)


class ServerError(AcumaticaError):
    """5xx response after all retries."""


class ApiError(AcumaticaError):
    """Any other non-2xx response, or a transport failure (status 0)."""
