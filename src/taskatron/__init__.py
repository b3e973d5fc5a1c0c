"""
Task Orchestration Core

Core Concepts:

Task:
    A named unit of work with an execute coroutine and an ordered list of
    trigger tasks. Triggers are started when a run of the task succeeds.

Run:
    One execution attempt of a Task, with its own start/end time and log.
    A task's status and run history live in a pluggable Storage backend and
    are only written through TaskStatusManager.transition.

Scheduler:
    Owns the task registry and the cron bindings, starts runs on demand or
    when a cron binding fires, and cascades into triggers.
"""

from .domain import LogEntry, LogType, RunQuery, Task, TaskData, TaskResult, TaskRun, TaskStatus
from .errors import (
    AlreadyScheduledWarning,
    InvalidCronExpressionError,
    TaskatronError,
    TaskExecutionError,
    TaskNotFoundError,
    TriggerCycleError,
    UnscheduledWarning,
)
from .scheduler import Scheduler
from .storages import InMemoryStorage, Storage, TaskStatusManager

__all__ = [
    "Scheduler",
    "Task",
    "TaskStatus",
    "LogType",
    "LogEntry",
    "TaskRun",
    "TaskData",
    "RunQuery",
    "TaskResult",
    "Storage",
    "InMemoryStorage",
    "TaskStatusManager",
    "TaskatronError",
    "TaskNotFoundError",
    "TaskExecutionError",
    "TriggerCycleError",
    "InvalidCronExpressionError",
    "AlreadyScheduledWarning",
    "UnscheduledWarning",
]
