# scheduled_tasks_manager/core/models.py
"""Value types produced and consumed by the task history engine.

`EventRecord` is the input shape supplied by the event-log reader.
`TaskRun` and `ResultCodeTranslation` are read-only report objects created
fresh for every query.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class ResultSource(enum.Enum):
    """Which decoding table produced an interpretation of a status code."""

    TASK_SCHEDULER = "TaskScheduler"
    WIN32 = "Win32"
    UNKNOWN = "Unknown"


def normalize_correlation_id(value: Any) -> Optional[str]:
    """Returns a correlation token in canonical form, or None if it is empty.

    Tokens are GUID-shaped; braces and letter case vary between log readers,
    so `{abc-...}` and `ABC-...` are treated as the same token.
    """
    if value is None:
        return None
    text = str(value).strip().strip("{}").strip()
    if not text:
        return None
    return text.upper()


@dataclass(frozen=True)
class EventRecord:
    """One record from a task's operational event log."""

    record_id: int
    time_created: datetime
    correlation_id: Optional[str] = None
    display_name: str = ""
    named_fields: Mapping[str, str] = field(default_factory=dict, hash=False)
    event_id: Optional[int] = None
    task_name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(
            self, "correlation_id", normalize_correlation_id(self.correlation_id)
        )
        # Naive timestamps are taken as UTC, matching the log reader.
        if isinstance(self.time_created, datetime) and self.time_created.tzinfo is None:
            object.__setattr__(
                self, "time_created", self.time_created.replace(tzinfo=timezone.utc)
            )
        if isinstance(self.named_fields, Mapping):
            object.__setattr__(
                self, "named_fields", MappingProxyType(dict(self.named_fields))
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "event_id": self.event_id,
            "time_created": _isoformat(self.time_created),
            "correlation_id": self.correlation_id,
            "display_name": self.display_name,
            "named_fields": dict(self.named_fields),
        }


@dataclass(frozen=True)
class ResultCodeMeaning:
    """A single interpretation of a status code."""

    source: ResultSource
    message: str
    constant_name: Optional[str] = None
    is_success: bool = False
    facility: Optional[str] = None
    facility_code: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "message": self.message,
            "constant_name": self.constant_name,
            "is_success": self.is_success,
            "facility": self.facility,
            "facility_code": self.facility_code,
        }


@dataclass(frozen=True)
class ResultCodeTranslation:
    """Every plausible interpretation of one status code, best first.

    The top-level `message`, `source`, `constant_name`, `is_success`,
    `facility` and `facility_code` always mirror `meanings[0]`.
    `raw_code` and `hex_code` are None when the input could not be parsed.
    """

    raw_code: Optional[int]
    hex_code: Optional[str]
    meanings: Tuple[ResultCodeMeaning, ...]

    def __post_init__(self):
        if not self.meanings:
            raise ValueError("A translation needs at least one meaning.")

    @property
    def primary(self) -> ResultCodeMeaning:
        return self.meanings[0]

    @property
    def message(self) -> str:
        return self.primary.message

    @property
    def source(self) -> ResultSource:
        return self.primary.source

    @property
    def constant_name(self) -> Optional[str]:
        return self.primary.constant_name

    @property
    def is_success(self) -> bool:
        return self.primary.is_success

    @property
    def facility(self) -> Optional[str]:
        return self.primary.facility

    @property
    def facility_code(self) -> Optional[int]:
        return self.primary.facility_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_code": self.raw_code,
            "hex_code": self.hex_code,
            "message": self.message,
            "source": self.source.value,
            "constant_name": self.constant_name,
            "is_success": self.is_success,
            "facility": self.facility,
            "facility_code": self.facility_code,
            "meanings": [meaning.to_dict() for meaning in self.meanings],
        }


@dataclass(frozen=True)
class TaskRun:
    """One execution attempt of a scheduled task, rebuilt from its log records.

    `events` holds the member records newest first. `result_codes` holds every
    distinct `ResultCode` value seen in the run; more than one means the
    source data is ambiguous, and `result_translation` then describes the
    first of them.
    """

    task_name: str
    correlation_id: str
    start_time: datetime
    end_time: datetime
    events: Tuple[EventRecord, ...]
    result_codes: Tuple[str, ...] = ()
    result_translation: Optional[ResultCodeTranslation] = None
    launch_request_ignored: bool = False

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def result_code(self) -> Optional[str]:
        return self.result_codes[0] if self.result_codes else None

    @property
    def has_ambiguous_result(self) -> bool:
        return len(self.result_codes) > 1

    def to_dict(self, include_events: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "task_name": self.task_name,
            "correlation_id": self.correlation_id,
            "start_time": _isoformat(self.start_time),
            "end_time": _isoformat(self.end_time),
            "duration_seconds": self.duration.total_seconds(),
            "result_codes": list(self.result_codes),
            "result_translation": (
                self.result_translation.to_dict()
                if self.result_translation is not None
                else None
            ),
            "launch_request_ignored": self.launch_request_ignored,
        }
        if include_events:
            data["events"] = [event.to_dict() for event in self.events]
        return data


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
