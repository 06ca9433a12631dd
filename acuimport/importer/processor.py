"""Pushes mapped rows to Acumatica in batches, with session and row logging."""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from acuimport.api.error_parser import humanize_error
from acuimport.api.factory import GatewayFactory
from acuimport.builder.record_builder import get_record_value, set_nested_value
from acuimport.config import ImportConfig
from acuimport.importer.errors import (
    ConnectionNotFoundError,
    ImportPipelineError,
    SessionConflictError,
    SessionNotFoundError,
    SessionNotRunningError,
)
from acuimport.importer.events import CANCELLED, COMPLETE, ERROR, PROGRESS, ImportEvent
from acuimport.mapper.mapping import FieldMapping
from acuimport.schema.adapters import EntityAdapter, get_entity_adapter
from acuimport.schema.models import ImportMode
from acuimport.store.base import ImportStore
from acuimport.store.models import (
    ImportRowLog,
    ImportSession,
    RowOperation,
    RowStatus,
    SessionStatus,
    new_id,
    utcnow,
)
from acuimport.validator.engine import is_empty_row

logger = logging.getLogger(__name__)


@dataclass
class ImportRequest:
    """Everything needed to start an import."""

    user_id: str
    connection_id: str
    entity_type: str
    mode: ImportMode
    rows: List[Dict[str, str]]
    mappings: List[FieldMapping]
    default_values: Dict[str, str] = field(default_factory=dict)
    file_name: str = "import.csv"


@dataclass
class RunCounters:
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    created_count: int = 0
    updated_count: int = 0


class ImportRun:
    """An import that has passed its preconditions and owns a running session.

    Iterating the run processes the rows and yields ``ImportEvent`` values;
    the last one is ``complete``, ``cancelled`` or ``error``.
    """

    def __init__(
        self,
        store: ImportStore,
        gateway,
        adapter: EntityAdapter,
        session: ImportSession,
        request: ImportRequest,
        existing_keys: Optional[set],
        config: ImportConfig,
    ):
        self.store = store
        self.gateway = gateway
        self.adapter = adapter
        self.session = session
        self.request = request
        self.existing_keys = existing_keys
        self.config = config
        self.counters = RunCounters()
        self._started = time.monotonic()

    @property
    def session_id(self) -> str:
        return self.session.id

    def __iter__(self) -> Iterator[ImportEvent]:
        return self.events()

    def events(self) -> Iterator[ImportEvent]:
        rows = self.request.rows
        total = len(rows)
        batch_size = max(1, self.config.batch_size)

        try:
            for start in range(0, total, batch_size):
                batch = rows[start:start + batch_size]
                batch_results = []
                row_logs = []

                for offset, row in enumerate(batch):
                    result, log = self._process_row(start + offset, row)
                    batch_results.append(result)
                    row_logs.append(log)

                self._persist_row_logs(row_logs)

                processed = min(start + batch_size, total)
                yield ImportEvent(PROGRESS, self._progress(processed, total, batch_results))

                if start + batch_size < total:
                    current = self.store.get_session(self.session.id)
                    if current is not None and current.status == SessionStatus.CANCELLED:
                        yield self._cancelled(processed)
                        return

                    time.sleep(self.config.batch_delay)

            duration_ms = self._finish(SessionStatus.COMPLETED)
            if duration_ms is None:
                # cancelled while the last batch was in flight
                yield self._cancelled(total)
                return

            logger.info(
                f"Import {self.session.id} completed: {self.counters.succeeded} succeeded, "
                f"{self.counters.failed} failed in {duration_ms} ms"
            )
            yield ImportEvent(
                COMPLETE,
                {
                    "session_id": self.session.id,
                    "summary": {
                        "total": total,
                        "succeeded": self.counters.succeeded,
                        "failed": self.counters.failed,
                        "skipped": self.counters.skipped,
                        "created_count": self.counters.created_count,
                        "updated_count": self.counters.updated_count,
                        "duration_ms": duration_ms,
                    },
                },
            )

        except Exception as e:
            logger.error(f"Import {self.session.id} failed: {e}", exc_info=True)
            self._finish(SessionStatus.FAILED)
            yield ImportEvent(
                ERROR,
                {
                    "message": humanize_error(str(e)),
                    "session_id": self.session.id,
                    "resumable": False,
                },
            )

    def _process_row(self, index: int, row: Dict[str, str]):
        row_number = index + 1

        if is_empty_row(row):
            self.counters.skipped += 1
            key_value = f"Row {row_number}"
            log = ImportRowLog(
                session_id=self.session.id,
                row_number=row_number,
                key_value=key_value,
                status=RowStatus.SKIPPED,
            )
            return {"row_index": index, "key_value": key_value, "success": False, "skipped": True}, log

        record = self.adapter.map_record(row, self.request.mappings)

        for api_name, value in (self.request.default_values or {}).items():
            value = (value or "").strip()
            if value and get_record_value(record, api_name) is None:
                set_nested_value(record, api_name, value)

        key = get_record_value(record, self.adapter.key_field)
        key_value = str(key) if key not in (None, "") else f"Row {row_number}"

        result = self.adapter.push_record(self.gateway, record)

        operation = None
        error = None
        if result.success:
            self.counters.succeeded += 1
            if self.existing_keys is not None and key_value in self.existing_keys:
                operation = RowOperation.UPDATED
                self.counters.updated_count += 1
            else:
                operation = RowOperation.CREATED
                self.counters.created_count += 1
        else:
            self.counters.failed += 1
            error = humanize_error(result.error)

        log = ImportRowLog(
            session_id=self.session.id,
            row_number=row_number,
            key_value=key_value,
            status=RowStatus.SUCCESS if result.success else RowStatus.FAILED,
            operation=operation,
            mapped_data=record,
            error_message=error,
            error_code=result.error_code,
        )
        batch_result = {
            "row_index": index,
            "key_value": key_value,
            "success": result.success,
            "operation": operation.value if operation else None,
            "error": error,
        }
        return batch_result, log

    def _persist_row_logs(self, row_logs: List[ImportRowLog]):
        try:
            self.store.add_row_logs(row_logs)
        except Exception as e:
            # a lost log must not stop the import
            logger.warning(f"Failed to persist {len(row_logs)} row logs for {self.session.id}: {e}")

    def _progress(self, processed: int, total: int, batch_results: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "processed": processed,
            "total": total,
            "succeeded": self.counters.succeeded,
            "failed": self.counters.failed,
            "skipped": self.counters.skipped,
            "created_count": self.counters.created_count,
            "updated_count": self.counters.updated_count,
            "batch_results": batch_results,
        }

    def _cancelled(self, processed: int) -> ImportEvent:
        logger.info(f"Import {self.session.id} cancelled after {processed} rows")
        return ImportEvent(
            CANCELLED,
            {
                "session_id": self.session.id,
                "message": "Import was cancelled",
                "processed": processed,
                "succeeded": self.counters.succeeded,
                "failed": self.counters.failed,
            },
        )

    def _finish(self, status: SessionStatus) -> Optional[int]:
        """Record the final counts; None when the session is no longer running."""
        duration_ms = int((time.monotonic() - self._started) * 1000)
        self.session.status = status
        self.session.success_count = self.counters.succeeded
        self.session.fail_count = self.counters.failed
        self.session.skipped_count = self.counters.skipped
        self.session.created_count = self.counters.created_count
        self.session.updated_count = self.counters.updated_count
        self.session.completed_at = utcnow()
        self.session.duration_ms = duration_ms
        if self.store.update_running_session(self.session) is None:
            return None
        return duration_ms


class ImportProcessor:
    """Starts import runs."""

    def __init__(
        self,
        store: ImportStore,
        gateways: GatewayFactory,
        config: Optional[ImportConfig] = None,
    ):
        """
        Initialize processor.

        Args:
            store: Persistence for sessions and row logs
            gateways: Builds authenticated clients for connections
            config: Batch size and inter-batch delay
        """
        self.store = store
        self.gateways = gateways
        self.config = config or ImportConfig()

    def start(self, request: ImportRequest) -> ImportRun:
        """
        Check preconditions, create the session and return the run.

        Raises:
            ConnectionNotFoundError: unknown connection (or not the user's)
            SessionConflictError: an import is already running on the connection
            ImportPipelineError: no rows or no field mappings
            CredentialsError: connection credentials could not be decoded
            UnknownEntityTypeError: unsupported entity type
        """
        adapter = get_entity_adapter(request.entity_type)
        mode = ImportMode(request.mode)

        if not request.rows:
            raise ImportPipelineError("No rows to import")
        if not request.mappings:
            raise ImportPipelineError("No field mappings provided")

        connection = self.store.get_connection(request.connection_id, request.user_id)
        if connection is None:
            raise ConnectionNotFoundError(request.connection_id)

        # checked again atomically when the session is created
        running = self.store.get_running_session(request.connection_id)
        if running is not None:
            raise SessionConflictError(running.id)

        gateway = self.gateways.create(connection)

        try:
            existing_keys = adapter.fetch_existing_keys(gateway)
        except Exception as e:
            # without them every success counts as created
            logger.warning(f"Could not fetch existing {adapter.label} keys: {e}")
            existing_keys = None

        session = self.store.create_session_if_idle(
            ImportSession(
                id=new_id(),
                user_id=request.user_id,
                connection_id=request.connection_id,
                entity_type=adapter.entity_type.value,
                mode=mode.value,
                file_name=request.file_name or "import.csv",
                total_rows=len(request.rows),
                status=SessionStatus.RUNNING,
                mapping_used=list(request.mappings),
            )
        )
        logger.info(
            f"Started import {session.id}: {len(request.rows)} {adapter.label} "
            f"from {session.file_name} ({mode.value})"
        )

        return ImportRun(self.store, gateway, adapter, session, request, existing_keys, self.config)

    def run(self, request: ImportRequest) -> Iterator[ImportEvent]:
        """Start an import and yield its events."""
        return iter(self.start(request))


def cancel_import(store: ImportStore, session_id: str, user_id: Optional[str] = None) -> ImportSession:
    """
    Mark a running session as cancelled.

    The run notices at its next batch boundary.

    Raises:
        SessionNotFoundError: unknown session (or not the user's)
        SessionNotRunningError: session already finished
    """
    session = store.get_session(session_id)
    if session is None or (user_id is not None and session.user_id != user_id):
        raise SessionNotFoundError(session_id)

    if session.status != SessionStatus.RUNNING:
        raise SessionNotRunningError(session_id, SessionStatus(session.status).value)

    now = utcnow()
    session.status = SessionStatus.CANCELLED
    session.completed_at = now
    session.duration_ms = int((now - session.started_at).total_seconds() * 1000)
    updated = store.update_running_session(session)
    if updated is None:
        # finished between the read and the write
        current = store.get_session(session_id)
        raise SessionNotRunningError(session_id, SessionStatus(current.status).value)

    logger.info(f"Cancelled import {session_id}")
    return updated
