import logging
from typing import Any, List, Optional

from taskatron.domain.run import LogType, RunQuery, TaskData, TaskRun, TaskStatus
from taskatron.storages.protocol import Storage

logger = logging.getLogger(__name__)


class TaskStatusManager:
    """
    Status and run-log bookkeeping on top of a Storage backend.

    ``transition`` is the only method that writes status or run state. Every
    other method reads from the backend or appends to an existing run's log.
    """

    def __init__(self, storage: Storage):
        self.storage: Storage = storage

    def get_status(self, task_id: str) -> TaskStatus:
        data = self.storage.get_task_data(task_id)
        return data.status if data else TaskStatus.IDLE

    def list_runs(self, task_id: str, query: Optional[RunQuery] = None) -> List[TaskRun]:
        data = self.storage.get_task_data(task_id)
        if data is None:
            logger.warning("Task %s not found. No runs to list.", task_id)
            return []
        if query is None:
            return list(data.runs)
        return [run for run in data.runs if query.matches(run)]

    def last_run(self, task_id: str, query: Optional[RunQuery] = None) -> Optional[TaskRun]:
        runs = self.list_runs(task_id, query)
        return runs[-1] if runs else None

    def append_log(self, task_id: str, log_type: LogType, message: str) -> None:
        """
        Append a line to the task's current run. The current run is the last
        one, whether or not it has been closed.
        """
        data = self.storage.get_task_data(task_id)
        if data is None:
            logger.warning("Task %s not found. Log message will not be added.", task_id)
            return
        current_run = data.current_run
        if current_run is None:
            logger.warning("No active run found for task %s. Log message will not be added.", task_id)
            return
        current_run.append_log(log_type, message)
        self.storage.set_task_data(task_id, data)

    def transition(
        self,
        task_id: str,
        status: TaskStatus,
        message: Optional[str] = None,
        log_type: LogType = LogType.SYSTEM,
    ) -> TaskData:
        """
        Apply one state machine step to a task.

        STARTING opens a new run and stores RUNNING. FINISHING closes the
        current run and stores DONE. FAILED closes the current run and stores
        FAILED. Any other status is stored as given without touching runs.
        If a message is given it is logged against the current run.

        Args:
            task_id (str): The task to update.
            status (TaskStatus): The requested status.
            message (Optional[str]): Log line to append to the current run.
            log_type (LogType): Category for the log line.

        Returns:
            TaskData: The record as stored after the step.
        """
        data = self.storage.get_task_data(task_id) or TaskData()
        current_run = data.current_run

        if status == TaskStatus.STARTING:
            current_run = TaskRun()
            data.runs.append(current_run)
            status = TaskStatus.RUNNING
        elif status == TaskStatus.FINISHING:
            if current_run:
                current_run.close()
            status = TaskStatus.DONE
        elif status == TaskStatus.FAILED:
            if current_run:
                current_run.close()

        if message and current_run:
            current_run.append_log(log_type, message)

        data.status = status
        self.storage.set_task_data(task_id, data)
        logger.debug("Task %s is now %s", task_id, status.value)
        return data

    def get_value(self, key: str) -> Optional[Any]:
        return self.storage.get_value(key)

    def set_value(self, key: str, value: Any) -> None:
        self.storage.set_value(key, value)

    def format_all_tasks(self) -> str:
        lines = ["Current Database State:"]
        for task_id in self.storage.list_task_ids():
            data = self.storage.get_task_data(task_id)
            if data is None:
                continue
            lines.append(f"  Task ID: {task_id}")
            lines.append(f"    Status: {data.status.value}")
            lines.append("    Runs:")
            for index, run in enumerate(data.runs, start=1):
                lines.append(f"      Run {index}: {run.id}")
                lines.append(f"        Start Time: {run.start_time.isoformat()}")
                if run.end_time:
                    lines.append(f"        End Time: {run.end_time.isoformat()}")
                lines.append("        Logs:")
                for entry in run.logs:
                    lines.append(f"          - {entry.timestamp.isoformat()} [{entry.type.value}]: {entry.message}")
        return "\n".join(lines)

    def print_all_tasks(self) -> None:
        print(self.format_all_tasks())
