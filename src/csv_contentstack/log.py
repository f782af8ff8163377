"""Per-run import log.

Every core call that can degrade (flattening, value transforms, row imports)
records what happened into an explicit ``ImportLog`` owned by the caller,
so several runs never share state. Entries are mirrored to the standard
``logging`` module as well.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)

MAX_ENTRIES = 1000

SENSITIVE_KEYS = (
    "apikey",
    "api_key",
    "token",
    "managementtoken",
    "management_token",
    "password",
    "secret",
    "authorization",
    "auth",
    "bearer",
)

_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def is_sensitive(key: str) -> bool:
    k = str(key).lower()
    return any(s in k for s in SENSITIVE_KEYS)


def sanitize(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: ("[REDACTED]" if is_sensitive(k) else sanitize(v)) for k, v in data.items()}
    if isinstance(data, list):
        return [sanitize(v) for v in data]
    return data


@dataclass
class LogEntry:
    level: str
    message: str
    row_index: Optional[int] = None
    field_path: Optional[str] = None
    raw_value: Optional[str] = None
    details: Any = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict:
        return {
            "level": self.level,
            "message": self.message,
            "row_index": self.row_index,
            "field_path": self.field_path,
            "raw_value": self.raw_value,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class ImportLog:
    def __init__(self, max_entries: int = MAX_ENTRIES):
        self.max_entries = max_entries
        self.entries: List[LogEntry] = []

    def add(
        self,
        level: str,
        message: str,
        row_index: Optional[int] = None,
        field_path: Optional[str] = None,
        raw_value: Optional[str] = None,
        details: Any = None,
    ) -> LogEntry:
        entry = LogEntry(
            level=level,
            message=message,
            row_index=row_index,
            field_path=field_path,
            raw_value=raw_value,
            details=sanitize(details) if details is not None else None,
        )
        self.entries.append(entry)
        if len(self.entries) > self.max_entries:
            del self.entries[: len(self.entries) - self.max_entries]
        logger.log(
            _LEVELS.get(level, logging.INFO),
            "%s%s%s",
            f"row={row_index + 1} " if row_index is not None else "",
            f"field={field_path} " if field_path else "",
            message,
        )
        return entry

    def info(self, message: str, **kw) -> LogEntry:
        return self.add("info", message, **kw)

    def success(self, message: str, **kw) -> LogEntry:
        return self.add("success", message, **kw)

    def warning(self, message: str, **kw) -> LogEntry:
        return self.add("warning", message, **kw)

    def error(self, message: str, **kw) -> LogEntry:
        return self.add("error", message, **kw)

    def warnings(self, row_index: Optional[int] = None) -> List[LogEntry]:
        return [
            e for e in self.entries
            if e.level == "warning" and (row_index is None or e.row_index == row_index)
        ]

    def for_row(self, row_index: int) -> List[LogEntry]:
        return [e for e in self.entries if e.row_index == row_index]

    def clear(self) -> None:
        self.entries = []

    def to_list(self) -> List[Dict]:
        return [e.to_dict() for e in self.entries]
