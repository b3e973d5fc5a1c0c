from typing import Any, List, Optional, Protocol

from taskatron.domain.run import TaskData


class Storage(Protocol):
    """
    Pluggable persistence for task status and run history.

    Every method is synchronous so that a store call never yields to the
    event loop part way through an update.
    """

    def get_task_data(self, task_id: str) -> Optional[TaskData]:
        """Retrieve the record for a task, or None if it has never been stored."""
        ...

    def set_task_data(self, task_id: str, data: TaskData) -> None:
        """Replace the whole record for a task."""
        ...

    def list_task_ids(self) -> List[str]:
        """List the ids of all stored task records, oldest first."""
        ...

    def get_value(self, key: str) -> Optional[Any]:
        """Read an auxiliary value unrelated to task records."""
        ...

    def set_value(self, key: str, value: Any) -> None:
        """Write an auxiliary value unrelated to task records."""
        ...
