import asyncio
import logging
import time
import warnings
from datetime import tzinfo
from typing import Any, Dict, List, Optional, Sequence, Set, Union

from pydantic import ValidationError

from taskatron.cron import CronBinding
from taskatron.domain.run import LogType, RunQuery, TaskResult, TaskRun, TaskStatus
from taskatron.domain.task import Task, find_trigger_cycle
from taskatron.errors import (
    AlreadyScheduledWarning,
    TaskExecutionError,
    TaskNotFoundError,
    TriggerCycleError,
    UnscheduledWarning,
)
from taskatron.storages.manager import TaskStatusManager
from taskatron.storages.memory import InMemoryStorage
from taskatron.storages.protocol import Storage

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Registers tasks, runs them on demand or on a cron schedule, records every
    run through a TaskStatusManager and starts trigger tasks after a success.

    All state belongs to the instance. Runs are asyncio tasks on the running
    loop, so start_task and schedule_task must be called from inside it.
    """

    def __init__(self, storage: Optional[Storage] = None, cron_timezone: Optional[Union[str, tzinfo]] = None):
        self.storage: Storage = storage if storage is not None else InMemoryStorage()
        self.status: TaskStatusManager = TaskStatusManager(self.storage)
        self.cron_timezone = cron_timezone
        self._tasks: Dict[str, Task] = {}
        self._cron_bindings: Dict[str, CronBinding] = {}
        self._running: Set[asyncio.Task] = set()

    # registry

    def register_task(self, task_or_tasks: Union[Task, Sequence[Task]]) -> None:
        """
        Add one or more tasks to the registry.

        A task whose id is already registered is rejected with an error log;
        the existing registration is kept.

        Raises:
            TriggerCycleError: If any task's trigger graph contains a cycle. No task
                from the batch is registered in that case.
        """
        tasks = [task_or_tasks] if isinstance(task_or_tasks, Task) else list(task_or_tasks)
        # nothing from the batch is registered if any of it is cyclic
        for task in tasks:
            cycle = find_trigger_cycle(task)
            if cycle:
                raise TriggerCycleError(cycle)
        for task in tasks:
            if task.id in self._tasks:
                logger.error('Task with ID "%s" already registered. Skipping.', task.id)
                continue
            self._tasks[task.id] = task
            logger.debug("Registered task %s", task.id)

    def get_tasks(self) -> List[Task]:
        return list(self._tasks.values())

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    # cron bindings

    def schedule_task(self, task: Task, cron_expression: str) -> None:
        task_id = task.id
        if task_id not in self._tasks:
            raise TaskNotFoundError(task_id)

        if task_id in self._cron_bindings:
            message = f'Task with ID "{task_id}" is already scheduled.'
            logger.warning(message)
            warnings.warn(message, AlreadyScheduledWarning, stacklevel=2)
            return

        self._cron_bindings[task_id] = CronBinding(
            cron_expression,
            lambda: self.start_task(task),
            timezone=self.cron_timezone,
        )
        logger.info("Scheduled task %s with cron expression '%s'", task_id, cron_expression)

    def is_scheduled(self, task_id: str) -> bool:
        return task_id in self._cron_bindings

    def stop_task(self, task_id: str) -> None:
        """
        Pause the cron binding of a task. The binding is kept and can be resumed.
        An in-flight run is not affected.
        """
        binding = self._get_binding(task_id)
        if binding:
            binding.stop()
            logger.info("Stopped schedule of task %s", task_id)

    def resume_task(self, task_id: str) -> None:
        binding = self._get_binding(task_id)
        if binding:
            binding.resume()
            logger.info("Resumed schedule of task %s", task_id)

    def unschedule_task(self, task_id: str) -> None:
        binding = self._get_binding(task_id)
        if binding:
            binding.stop()
            del self._cron_bindings[task_id]
            logger.info("Unscheduled task %s", task_id)

    def _get_binding(self, task_id: str) -> Optional[CronBinding]:
        binding = self._cron_bindings.get(task_id)
        if binding is None:
            message = f'Task with ID "{task_id}" not found or not scheduled.'
            logger.warning(message)
            warnings.warn(message, UnscheduledWarning, stacklevel=3)
        return binding

    # execution

    def start_task(self, task: Task) -> Optional[asyncio.Task]:
        """
        Start a run of a registered task without waiting for it.

        Never raises: an unregistered task is logged and nothing is started.
        The outcome is only observable through the task's status and logs.

        Returns:
            Optional[asyncio.Task]: The spawned run, or None if nothing was started.
        """
        task_id = task.id
        try:
            if task_id not in self._tasks:
                raise TaskNotFoundError(task_id)
            loop = asyncio.get_running_loop()
            future = loop.create_task(self._execute_task(task))
        except Exception as e:
            logger.error("Error activating task %s: %s", task_id, e)
            return None
        self._running.add(future)
        future.add_done_callback(self._running.discard)
        return future

    async def _execute_task(self, task: Task) -> bool:
        task_id = task.id
        if task_id not in self._tasks:
            raise TaskNotFoundError(task_id)

        task_is_successful = False
        start_time = time.perf_counter()
        try:
            self.status.transition(task_id, TaskStatus.STARTING, "Task started")
            result = await task.execute(self)
            end_time = time.perf_counter()
            execution_time = end_time - start_time
            self.status.transition(
                task_id,
                TaskStatus.FINISHING,
                f"Task finished (Execution time: {execution_time}s)",
            )
            task_is_successful = True
        except asyncio.CancelledError:
            self.status.transition(task_id, TaskStatus.FAILED, "Task cancelled", LogType.ERROR)
            logger.warning("Task %s was cancelled", task_id)
            raise
        except Exception as e:
            error = TaskExecutionError(task_id, e)
            self.status.transition(task_id, TaskStatus.FAILED, str(error), LogType.ERROR)
            logger.error("Error executing task %s: %s", task_id, error)

        execution_time = time.perf_counter() - start_time
        logger.info("%s finished. Execution time: %s s", task_id, execution_time)

        if task_is_successful:
            try:
                task_result = self._to_task_result(result, start_time, end_time)
                logger.debug("Task %s result: %s", task_id, task_result.model_dump())
            except ValidationError as e:
                logger.warning("Task %s returned an invalid result: %s", task_id, e)
            for triggered_task in task.triggers:
                self.start_task(triggered_task)
        return task_is_successful

    @staticmethod
    def _to_task_result(result: Any, start_time: float, end_time: float) -> TaskResult:
        if isinstance(result, TaskResult):
            fields = result.model_dump()
        elif isinstance(result, dict):
            fields = dict(result)
        else:
            fields = {}
        fields.update(start_time=start_time, end_time=end_time)
        return TaskResult(**fields)

    async def wait_idle(self) -> None:
        """
        Wait until no run is in flight, including runs started by triggers
        while waiting.
        """
        pending = [t for t in self._running if not t.done()]
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [t for t in self._running if not t.done()]

    async def shutdown(self) -> None:
        bindings = list(self._cron_bindings.values())
        self._cron_bindings.clear()
        for binding in bindings:
            await binding.aclose()
        await self.wait_idle()

    # status and logs

    def get_status(self, task_id: str) -> TaskStatus:
        return self.status.get_status(task_id)

    def add_task_log(self, task_id: str, log_type: LogType, message: str) -> None:
        self.status.append_log(task_id, log_type, message)

    def get_all_task_logs(self, task_id: str, query: Optional[RunQuery] = None) -> List[TaskRun]:
        return self.status.list_runs(task_id, query)

    def get_last_task_log(self, task_id: str, query: Optional[RunQuery] = None) -> Optional[TaskRun]:
        return self.status.last_run(task_id, query)

    def get_value(self, key: str) -> Optional[Any]:
        return self.status.get_value(key)

    def set_value(self, key: str, value: Any) -> None:
        self.status.set_value(key, value)

    def print_all_tasks(self) -> None:
        self.status.print_all_tasks()
