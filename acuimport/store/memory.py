"""In-memory store."""
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from acuimport.importer.errors import SessionConflictError
from acuimport.store.base import ImportStore
from acuimport.store.models import (
    Connection,
    ImportRowLog,
    ImportSession,
    MappingTemplate,
    SessionStatus,
    utcnow,
)


class InMemoryStore(ImportStore):
    """Thread-safe store kept in dictionaries.

    Records are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._connections: Dict[str, Connection] = {}
        self._sessions: Dict[str, ImportSession] = {}
        self._row_logs: Dict[str, List[ImportRowLog]] = {}
        self._templates: Dict[str, MappingTemplate] = {}

    def save_connection(self, connection: Connection) -> Connection:
        with self._lock:
            self._connections[connection.id] = replace(connection)
            return replace(connection)

    def get_connection(self, connection_id: str, user_id: Optional[str] = None) -> Optional[Connection]:
        with self._lock:
            connection = self._connections.get(connection_id)
            if connection is None or (user_id is not None and connection.user_id != user_id):
                return None
            return replace(connection)

    def list_connections(self, user_id: str) -> List[Connection]:
        with self._lock:
            return [replace(c) for c in self._connections.values() if c.user_id == user_id]

    def delete_connection(self, connection_id: str) -> bool:
        with self._lock:
            return self._connections.pop(connection_id, None) is not None

    def create_session(self, session: ImportSession) -> ImportSession:
        with self._lock:
            self._sessions[session.id] = replace(session)
            return replace(session)

    def create_session_if_idle(self, session: ImportSession) -> ImportSession:
        with self._lock:
            running = self.get_running_session(session.connection_id)
            if running is not None:
                raise SessionConflictError(running.id)
            return self.create_session(session)

    def get_session(self, session_id: str) -> Optional[ImportSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            return replace(session) if session else None

    def update_session(self, session: ImportSession) -> ImportSession:
        with self._lock:
            self._sessions[session.id] = replace(session)
            return replace(session)

    def update_running_session(self, session: ImportSession) -> Optional[ImportSession]:
        with self._lock:
            current = self._sessions.get(session.id)
            if current is None or current.status != SessionStatus.RUNNING:
                return None
            return self.update_session(session)

    def get_running_session(self, connection_id: str) -> Optional[ImportSession]:
        with self._lock:
            for session in self._sessions.values():
                if session.connection_id == connection_id and session.status == SessionStatus.RUNNING:
                    return replace(session)
            return None

    def list_sessions(self, user_id: str) -> List[ImportSession]:
        with self._lock:
            sessions = [replace(s) for s in self._sessions.values() if s.user_id == user_id]
        return sorted(sessions, key=lambda s: s.started_at, reverse=True)

    def add_row_logs(self, logs: List[ImportRowLog]):
        with self._lock:
            for log in logs:
                self._row_logs.setdefault(log.session_id, []).append(replace(log))

    def list_row_logs(self, session_id: str) -> List[ImportRowLog]:
        with self._lock:
            logs = [replace(log) for log in self._row_logs.get(session_id, [])]
        return sorted(logs, key=lambda log: log.row_number)

    def list_templates(self, user_id: str, entity_type: Optional[str] = None) -> List[MappingTemplate]:
        with self._lock:
            templates = [
                replace(t)
                for t in self._templates.values()
                if t.user_id == user_id and (entity_type is None or t.entity_type == entity_type)
            ]
        return sorted(templates, key=lambda t: t.name.lower())

    def save_template(self, template: MappingTemplate) -> MappingTemplate:
        with self._lock:
            for existing in list(self._templates.values()):
                if (
                    existing.id != template.id
                    and existing.user_id == template.user_id
                    and existing.entity_type == template.entity_type
                    and existing.name == template.name
                ):
                    # same name replaces, keeping the original id
                    del self._templates[existing.id]
                    template = replace(template, id=existing.id, created_at=existing.created_at)
            template = replace(template, updated_at=utcnow())
            self._templates[template.id] = template
            return replace(template)

    def delete_template(self, template_id: str, user_id: Optional[str] = None) -> bool:
        with self._lock:
            template = self._templates.get(template_id)
            if template is None or (user_id is not None and template.user_id != user_id):
                return False
            del self._templates[template_id]
            return True
