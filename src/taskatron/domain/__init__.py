from .run import LogEntry, LogType, RunQuery, TaskData, TaskResult, TaskRun, TaskStatus
from .task import Task, find_trigger_cycle

__all__ = [
    "Task",
    "find_trigger_cycle",
    "TaskStatus",
    "LogType",
    "LogEntry",
    "TaskRun",
    "TaskData",
    "RunQuery",
    "TaskResult",
]
