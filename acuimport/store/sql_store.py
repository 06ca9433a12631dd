"""Store backed by a SQL database through SQLAlchemy."""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from sqlalchemy import create_engine, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from acuimport.importer.errors import SessionConflictError
from acuimport.mapper.mapping import FieldMapping
from acuimport.store.base import ImportStore
from acuimport.store.models import (
    Connection,
    ImportRowLog,
    ImportSession,
    MappingTemplate,
    RowOperation,
    RowStatus,
    SessionStatus,
    utcnow,
)
from acuimport.store.tables import Base, ConnectionRow, ImportRowLogRow, ImportSessionRow, MappingTemplateRow

logger = logging.getLogger(__name__)

RUNNING = SessionStatus.RUNNING.value


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops the offset; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Record <-> row conversion


def _connection_row(connection: Connection) -> ConnectionRow:
    return ConnectionRow(
        id=connection.id,
        user_id=connection.user_id,
        name=connection.name,
        instance_url=connection.instance_url,
        credentials=connection.credentials,
        api_version=connection.api_version,
        is_active=connection.is_active,
        created_at=connection.created_at,
        updated_at=connection.updated_at,
    )


def _to_connection(row: ConnectionRow) -> Connection:
    return Connection(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        instance_url=row.instance_url,
        credentials=row.credentials,
        api_version=row.api_version,
        is_active=row.is_active,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _session_values(session: ImportSession) -> dict:
    return {
        "user_id": session.user_id,
        "connection_id": session.connection_id,
        "entity_type": session.entity_type,
        "mode": session.mode,
        "file_name": session.file_name,
        "total_rows": session.total_rows,
        "status": SessionStatus(session.status).value,
        "success_count": session.success_count,
        "fail_count": session.fail_count,
        "skipped_count": session.skipped_count,
        "created_count": session.created_count,
        "updated_count": session.updated_count,
        "started_at": session.started_at,
        "completed_at": session.completed_at,
        "duration_ms": session.duration_ms,
        "mapping_used": [m.to_dict() for m in session.mapping_used],
    }


def _to_session(row: ImportSessionRow) -> ImportSession:
    return ImportSession(
        id=row.id,
        user_id=row.user_id,
        connection_id=row.connection_id,
        entity_type=row.entity_type,
        mode=row.mode,
        file_name=row.file_name,
        total_rows=row.total_rows,
        status=SessionStatus(row.status),
        success_count=row.success_count,
        fail_count=row.fail_count,
        skipped_count=row.skipped_count,
        created_count=row.created_count,
        updated_count=row.updated_count,
        started_at=_aware(row.started_at),
        completed_at=_aware(row.completed_at),
        duration_ms=row.duration_ms,
        mapping_used=[FieldMapping.from_dict(m) for m in row.mapping_used or []],
    )


def _row_log_row(log: ImportRowLog) -> ImportRowLogRow:
    return ImportRowLogRow(
        session_id=log.session_id,
        row_number=log.row_number,
        key_value=log.key_value,
        status=RowStatus(log.status).value,
        operation=RowOperation(log.operation).value if log.operation else None,
        mapped_data=log.mapped_data,
        error_message=log.error_message,
        error_code=log.error_code,
        created_at=log.created_at,
    )


def _to_row_log(row: ImportRowLogRow) -> ImportRowLog:
    return ImportRowLog(
        session_id=row.session_id,
        row_number=row.row_number,
        key_value=row.key_value,
        status=RowStatus(row.status),
        mapped_data=row.mapped_data or {},
        operation=RowOperation(row.operation) if row.operation else None,
        error_message=row.error_message,
        error_code=row.error_code,
        created_at=_aware(row.created_at),
    )


def _template_row(template: MappingTemplate) -> MappingTemplateRow:
    return MappingTemplateRow(
        id=template.id,
        user_id=template.user_id,
        entity_type=template.entity_type,
        name=template.name,
        mappings=[m.to_dict() for m in template.mappings],
        ignored_columns=list(template.ignored_columns),
        created_at=template.created_at,
        updated_at=template.updated_at,
    )


def _to_template(row: MappingTemplateRow) -> MappingTemplate:
    return MappingTemplate(
        id=row.id,
        user_id=row.user_id,
        entity_type=row.entity_type,
        name=row.name,
        mappings=[FieldMapping.from_dict(m) for m in row.mappings or []],
        ignored_columns=list(row.ignored_columns or []),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class SqlStore(ImportStore):
    """Store kept in a relational database.

    Every call runs in its own short transaction, so separate processes
    sharing one database see each other's writes (a cancel issued from
    another shell reaches the running import at its next batch boundary).
    A partial unique index allows one running session per connection.
    """

    FILE_NAME = "acuimport.db"

    def __init__(self, url: str, echo: bool = False):
        """
        Initialize store and create missing tables.

        Args:
            url: SQLAlchemy database URL, e.g. ``sqlite:///data/acuimport.db``
            echo: Log every SQL statement
        """
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.url = url
        self.engine = create_engine(url, echo=echo, connect_args=connect_args)
        self._db = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)
        logger.debug(f"Opened store at {self.engine.url!r}")

    @classmethod
    def from_data_dir(cls, data_dir: str) -> "SqlStore":
        """SQLite store in ``<data_dir>/acuimport.db`` (directory created if missing)."""
        path = Path(data_dir)
        path.mkdir(parents=True, exist_ok=True)
        return cls(f"sqlite:///{path / cls.FILE_NAME}")

    # Connections

    def save_connection(self, connection: Connection) -> Connection:
        with self._db() as db:
            db.merge(_connection_row(connection))
            db.commit()
        return replace(connection)

    def get_connection(self, connection_id: str, user_id: Optional[str] = None) -> Optional[Connection]:
        with self._db() as db:
            row = db.get(ConnectionRow, connection_id)
            if row is None or (user_id is not None and row.user_id != user_id):
                return None
            return _to_connection(row)

    def list_connections(self, user_id: str) -> List[Connection]:
        with self._db() as db:
            rows = db.scalars(
                select(ConnectionRow).where(ConnectionRow.user_id == user_id).order_by(ConnectionRow.created_at)
            )
            return [_to_connection(row) for row in rows]

    def delete_connection(self, connection_id: str) -> bool:
        with self._db() as db:
            row = db.get(ConnectionRow, connection_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True

    # Sessions

    def create_session(self, session: ImportSession) -> ImportSession:
        with self._db() as db:
            db.add(ImportSessionRow(id=session.id, **_session_values(session)))
            db.commit()
        return replace(session)

    def create_session_if_idle(self, session: ImportSession) -> ImportSession:
        with self._db() as db:
            running = db.scalars(
                select(ImportSessionRow.id)
                .where(ImportSessionRow.connection_id == session.connection_id, ImportSessionRow.status == RUNNING)
                .limit(1)
            ).first()
            if running is not None:
                raise SessionConflictError(running)

            db.add(ImportSessionRow(id=session.id, **_session_values(session)))
            try:
                db.commit()
            except IntegrityError:
                # another process claimed the connection between the check and the insert
                db.rollback()
                winner = self.get_running_session(session.connection_id)
                if winner is None:
                    raise
                raise SessionConflictError(winner.id) from None
        return replace(session)

    def get_session(self, session_id: str) -> Optional[ImportSession]:
        with self._db() as db:
            row = db.get(ImportSessionRow, session_id)
            return _to_session(row) if row else None

    def update_session(self, session: ImportSession) -> ImportSession:
        with self._db() as db:
            db.merge(ImportSessionRow(id=session.id, **_session_values(session)))
            db.commit()
        return replace(session)

    def update_running_session(self, session: ImportSession) -> Optional[ImportSession]:
        with self._db() as db:
            result = db.execute(
                update(ImportSessionRow)
                .where(ImportSessionRow.id == session.id, ImportSessionRow.status == RUNNING)
                .values(**_session_values(session))
            )
            db.commit()
            if result.rowcount == 0:
                return None
        return replace(session)

    def get_running_session(self, connection_id: str) -> Optional[ImportSession]:
        with self._db() as db:
            row = db.scalars(
                select(ImportSessionRow)
                .where(ImportSessionRow.connection_id == connection_id, ImportSessionRow.status == RUNNING)
                .limit(1)
            ).first()
            return _to_session(row) if row else None

    def list_sessions(self, user_id: str) -> List[ImportSession]:
        with self._db() as db:
            rows = db.scalars(
                select(ImportSessionRow)
                .where(ImportSessionRow.user_id == user_id)
                .order_by(ImportSessionRow.started_at.desc())
            )
            return [_to_session(row) for row in rows]

    # Row logs

    def add_row_logs(self, logs: List[ImportRowLog]):
        with self._db() as db:
            db.add_all([_row_log_row(log) for log in logs])
            db.commit()

    def list_row_logs(self, session_id: str) -> List[ImportRowLog]:
        with self._db() as db:
            rows = db.scalars(
                select(ImportRowLogRow)
                .where(ImportRowLogRow.session_id == session_id)
                .order_by(ImportRowLogRow.row_number, ImportRowLogRow.id)
            )
            return [_to_row_log(row) for row in rows]

    # Templates

    def list_templates(self, user_id: str, entity_type: Optional[str] = None) -> List[MappingTemplate]:
        query = select(MappingTemplateRow).where(MappingTemplateRow.user_id == user_id)
        if entity_type is not None:
            query = query.where(MappingTemplateRow.entity_type == entity_type)
        with self._db() as db:
            rows = db.scalars(query.order_by(func.lower(MappingTemplateRow.name)))
            return [_to_template(row) for row in rows]

    def save_template(self, template: MappingTemplate) -> MappingTemplate:
        with self._db() as db:
            existing = db.scalars(
                select(MappingTemplateRow).where(
                    MappingTemplateRow.user_id == template.user_id,
                    MappingTemplateRow.entity_type == template.entity_type,
                    MappingTemplateRow.name == template.name,
                )
            ).first()
            if existing is not None and existing.id != template.id:
                # same name replaces, keeping the original id
                template = replace(template, id=existing.id, created_at=_aware(existing.created_at))
            template = replace(template, updated_at=utcnow())
            db.merge(_template_row(template))
            db.commit()
        return replace(template)

    def delete_template(self, template_id: str, user_id: Optional[str] = None) -> bool:
        with self._db() as db:
            row = db.get(MappingTemplateRow, template_id)
            if row is None or (user_id is not None and row.user_id != user_id):
                return False
            db.delete(row)
            db.commit()
            return True

    def close(self):
        self.engine.dispose()
