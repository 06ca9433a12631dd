"""Persisted records: connections, import sessions, row logs and templates."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from acuimport.mapper.mapping import FieldMapping


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SessionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RowStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class RowOperation(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass
class Connection:
    """A saved Acumatica instance plus its (encoded) credentials."""

    id: str
    user_id: str
    name: str
    instance_url: str
    credentials: str  # opaque, decoded by the gateway factory's decrypt hook
    api_version: str = "24.200.001"
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "instance_url": self.instance_url,
            "credentials": self.credentials,
            "api_version": self.api_version,
            "is_active": self.is_active,
            "created_at": _dt(self.created_at),
            "updated_at": _dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connection":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            name=data["name"],
            instance_url=data["instance_url"],
            credentials=data["credentials"],
            api_version=data.get("api_version") or "24.200.001",
            is_active=data.get("is_active", True),
            created_at=_parse_dt(data.get("created_at")) or utcnow(),
            updated_at=_parse_dt(data.get("updated_at")) or utcnow(),
        )


@dataclass
class ImportSession:
    """One import run and its running totals."""

    id: str
    user_id: str
    connection_id: str
    entity_type: str
    mode: str
    file_name: str
    total_rows: int
    status: SessionStatus = SessionStatus.RUNNING
    success_count: int = 0
    fail_count: int = 0
    skipped_count: int = 0
    created_count: int = 0
    updated_count: int = 0
    started_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    mapping_used: List[FieldMapping] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "connection_id": self.connection_id,
            "entity_type": self.entity_type,
            "mode": self.mode,
            "file_name": self.file_name,
            "total_rows": self.total_rows,
            "status": SessionStatus(self.status).value,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "skipped_count": self.skipped_count,
            "created_count": self.created_count,
            "updated_count": self.updated_count,
            "started_at": _dt(self.started_at),
            "completed_at": _dt(self.completed_at),
            "duration_ms": self.duration_ms,
            "mapping_used": [m.to_dict() for m in self.mapping_used],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportSession":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            connection_id=data["connection_id"],
            entity_type=data["entity_type"],
            mode=data["mode"],
            file_name=data["file_name"],
            total_rows=data["total_rows"],
            status=SessionStatus(data.get("status", "running")),
            success_count=data.get("success_count", 0),
            fail_count=data.get("fail_count", 0),
            skipped_count=data.get("skipped_count", 0),
            created_count=data.get("created_count", 0),
            updated_count=data.get("updated_count", 0),
            started_at=_parse_dt(data.get("started_at")) or utcnow(),
            completed_at=_parse_dt(data.get("completed_at")),
            duration_ms=data.get("duration_ms"),
            mapping_used=[FieldMapping.from_dict(m) for m in data.get("mapping_used", [])],
        )


@dataclass
class ImportRowLog:
    """Outcome of one source row. Append-only."""

    session_id: str
    row_number: int  # 1-based
    key_value: str
    status: RowStatus
    mapped_data: Dict[str, Any] = field(default_factory=dict)
    operation: Optional[RowOperation] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "row_number": self.row_number,
            "key_value": self.key_value,
            "status": RowStatus(self.status).value,
            "operation": RowOperation(self.operation).value if self.operation else None,
            "mapped_data": self.mapped_data,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "created_at": _dt(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportRowLog":
        return cls(
            session_id=data["session_id"],
            row_number=data["row_number"],
            key_value=data["key_value"],
            status=RowStatus(data["status"]),
            mapped_data=data.get("mapped_data") or {},
            operation=RowOperation(data["operation"]) if data.get("operation") else None,
            error_message=data.get("error_message"),
            error_code=data.get("error_code"),
            created_at=_parse_dt(data.get("created_at")) or utcnow(),
        )


@dataclass
class MappingTemplate:
    """Saved column mapping, reusable for files with the same headers."""

    id: str
    user_id: str
    entity_type: str
    name: str
    mappings: List[FieldMapping] = field(default_factory=list)
    ignored_columns: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "name": self.name,
            "mappings": [m.to_dict() for m in self.mappings],
            "ignored_columns": list(self.ignored_columns),
            "created_at": _dt(self.created_at),
            "updated_at": _dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingTemplate":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            entity_type=data["entity_type"],
            name=data["name"],
            mappings=[FieldMapping.from_dict(m) for m in data.get("mappings", [])],
            ignored_columns=list(data.get("ignored_columns", [])),
            created_at=_parse_dt(data.get("created_at")) or utcnow(),
            updated_at=_parse_dt(data.get("updated_at")) or utcnow(),
        )
