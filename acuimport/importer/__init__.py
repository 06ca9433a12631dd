"""Batched, cancellable import of mapped rows into Acumatica."""

from .errors import (
    ConnectionNotFoundError,
    CredentialsError,
    ImportPipelineError,
    SessionConflictError,
    SessionNotFoundError,
    SessionNotRunningError,
    UnknownEntityTypeError,
)
from .events import ImportEvent

__all__ = [
    "ImportEvent",
    "ImportPipelineError",
    "ConnectionNotFoundError",
    "CredentialsError",
    "SessionConflictError",
    "SessionNotFoundError",
    "SessionNotRunningError",
    "UnknownEntityTypeError",
]
