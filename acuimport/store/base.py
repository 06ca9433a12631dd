"""Abstract persistence contract for the import pipeline."""
from abc import ABC, abstractmethod
from typing import List, Optional

from acuimport.store.models import Connection, ImportRowLog, ImportSession, MappingTemplate


class ImportStore(ABC):
    """Abstract base class for stores."""

    # Connections

    @abstractmethod
    def save_connection(self, connection: Connection) -> Connection:
        """Insert or replace a connection."""
        pass

    @abstractmethod
    def get_connection(self, connection_id: str, user_id: Optional[str] = None) -> Optional[Connection]:
        """Connection by id, optionally restricted to its owner."""
        pass

    @abstractmethod
    def list_connections(self, user_id: str) -> List[Connection]:
        pass

    @abstractmethod
    def delete_connection(self, connection_id: str) -> bool:
        pass

    # Sessions

    @abstractmethod
    def create_session(self, session: ImportSession) -> ImportSession:
        pass

    @abstractmethod
    def create_session_if_idle(self, session: ImportSession) -> ImportSession:
        """
        Create the session unless another one is running on its connection.

        The check and the insert are atomic.

        Raises:
            SessionConflictError: a session is already running on the connection
        """
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[ImportSession]:
        pass

    @abstractmethod
    def update_session(self, session: ImportSession) -> ImportSession:
        pass

    @abstractmethod
    def update_running_session(self, session: ImportSession) -> Optional[ImportSession]:
        """Update the session only if the stored copy is still running; None otherwise."""
        pass

    @abstractmethod
    def get_running_session(self, connection_id: str) -> Optional[ImportSession]:
        """The running session on a connection, if any."""
        pass

    @abstractmethod
    def list_sessions(self, user_id: str) -> List[ImportSession]:
        """Sessions of a user, newest first."""
        pass

    # Row logs

    @abstractmethod
    def add_row_logs(self, logs: List[ImportRowLog]):
        """Append a batch of row logs."""
        pass

    @abstractmethod
    def list_row_logs(self, session_id: str) -> List[ImportRowLog]:
        """Row logs of a session ordered by row number."""
        pass

    # Templates

    @abstractmethod
    def list_templates(self, user_id: str, entity_type: Optional[str] = None) -> List[MappingTemplate]:
        pass

    @abstractmethod
    def save_template(self, template: MappingTemplate) -> MappingTemplate:
        """Insert, or replace the template with the same (user, entity type, name)."""
        pass

    @abstractmethod
    def delete_template(self, template_id: str, user_id: Optional[str] = None) -> bool:
        pass

    def close(self):
        """Release resources."""
        pass
