"""Acumatica REST gateway: login, retrying client and error handling."""

from .auth import AuthManager, AuthSession, Credentials, SessionCache
from .client import AcumaticaClient
from .error_parser import extract_inner_message, humanize_error
from .errors import (
    AcumaticaError,
    ApiError,
    AuthError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)

__all__ = [
    "AcumaticaClient",
    "AuthManager",
    "AuthSession",
    "Credentials",
    "SessionCache",
    "AcumaticaError",
    "ApiError",
    "AuthError",
    "RateLimitedError",
    "RequestTimeoutError",
    "ServerError",
    "humanize_error",
    "extract_inner_message",
]
