"""Errors raised by the import pipeline before or outside a run."""
from typing import Optional


class ImportPipelineError(Exception):
    """Base error for import pipeline preconditions."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConnectionNotFoundError(ImportPipelineError):
    def __init__(self, connection_id: str):
        super().__init__(f"Connection not found: {connection_id}")
        self.connection_id = connection_id


class CredentialsError(ImportPipelineError):
    """Stored credentials could not be decoded."""


class SessionConflictError(ImportPipelineError):
    """Another import is already running on the connection."""

    def __init__(self, session_id: str, message: Optional[str] = None):
        super().__init__(message or "An import is already running on this connection")
        self.session_id = session_id


class SessionNotFoundError(ImportPipelineError):
    def __init__(self, session_id: str):
        super().__init__(f"Import session not found: {session_id}")
        self.session_id = session_id


class SessionNotRunningError(ImportPipelineError):
    def __init__(self, session_id: str, status: str):
        super().__init__(f"Import session {session_id} is not running (status: {status})")
        self.session_id = session_id
        self.status = status


class UnknownEntityTypeError(ImportPipelineError):
    def __init__(self, entity_type: str):
        super().__init__(f"Unknown entity type: {entity_type}")
        self.entity_type = entity_type
