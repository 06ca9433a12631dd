"""Progress events emitted by an import run."""
import json
from dataclasses import dataclass, field
from typing import Any, Dict

PROGRESS = "progress"
COMPLETE = "complete"
CANCELLED = "cancelled"
ERROR = "error"

TERMINAL_EVENTS = {COMPLETE, CANCELLED, ERROR}


@dataclass
class ImportEvent:
    """One event of an import run."""

    name: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.name in TERMINAL_EVENTS

    def to_sse(self) -> str:
        """Server-Sent Events wire form."""
        return f"event: {self.name}\ndata: {json.dumps(self.data, default=str)}\n\n"
