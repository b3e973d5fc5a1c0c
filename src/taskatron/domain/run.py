import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    FINISHING = "finishing"
    DONE = "done"
    FAILED = "failed"
    UNKNOWN = "unknown"


class LogType(str, Enum):
    SYSTEM = "system"
    INFO = "info"
    WARNING = "warning"
    DEBUG = "debug"
    ERROR = "error"


class LogEntry(BaseModel):
    """
    A single log line recorded against a task run.
    """
    type: LogType = Field(LogType.SYSTEM, description="Category of the log line")
    timestamp: datetime = Field(default_factory=utc_now, description="When the line was recorded (UTC)")
    message: str = Field(..., description="Free text message")


class TaskRun(BaseModel):
    """
    Represents one execution attempt of a task, with its own log and time bounds.
    """
    id: str = Field(default_factory=lambda: f"run_{uuid.uuid4().hex[:8]}", description="Unique run identifier")
    start_time: datetime = Field(default_factory=utc_now, description="When the run was opened (UTC)")
    end_time: Optional[datetime] = Field(None, description="When the run was closed, None while open")
    logs: List[LogEntry] = Field(default_factory=list, description="Log lines in append order")

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def append_log(self, log_type: LogType, message: str) -> LogEntry:
        entry = LogEntry(type=log_type, message=message)
        self.logs.append(entry)
        return entry

    def close(self) -> None:
        if self.end_time is None:
            self.end_time = utc_now()


class TaskData(BaseModel):
    """
    The full per-task record held by the store: current status and run history.
    The last run is always the current one.
    """
    status: TaskStatus = TaskStatus.IDLE
    runs: List[TaskRun] = Field(default_factory=list)

    @property
    def current_run(self) -> Optional[TaskRun]:
        return self.runs[-1] if self.runs else None


class RunQuery(BaseModel):
    """
    Filter for run history lookups.
    """
    min_start_time: Optional[datetime] = Field(None, description="Only runs started at or after this instant")

    @field_validator("min_start_time")
    def check_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            logging.warning("min_start_time does not include a timezone. Assuming UTC.")
            return v.replace(tzinfo=timezone.utc)
        return v

    def matches(self, run: TaskRun) -> bool:
        if self.min_start_time is None:
            return True
        return run.start_time >= self.min_start_time


class TaskResult(BaseModel):
    """
    What a task's execute body produced, stamped with perf-counter bounds by the scheduler.
    Arbitrary extra fields returned by the task are kept.
    """
    model_config = ConfigDict(extra="allow")

    message: str = ""
    start_time: Optional[float] = None
    end_time: Optional[float] = None
