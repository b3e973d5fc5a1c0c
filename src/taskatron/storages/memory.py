from typing import Any, Dict, List, Optional
import copy

from taskatron.domain.run import TaskData
from taskatron.storages.protocol import Storage


class InMemoryStorage(Storage):
    """
    Dict backed storage.
    WARNING: Nothing survives a restart. Records are copied on the way in and
    out, so callers only change stored state through set_task_data.
    """

    def __init__(self):
        self.tasks: Dict[str, TaskData] = {}
        self.values: Dict[str, Any] = {}

    def get_task_data(self, task_id: str) -> Optional[TaskData]:
        data = self.tasks.get(task_id)
        return data.model_copy(deep=True) if data is not None else None

    def set_task_data(self, task_id: str, data: TaskData) -> None:
        self.tasks[task_id] = data.model_copy(deep=True)

    def list_task_ids(self) -> List[str]:
        return list(self.tasks.keys())

    def get_value(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self.values.get(key))

    def set_value(self, key: str, value: Any) -> None:
        self.values[key] = copy.deepcopy(value)
