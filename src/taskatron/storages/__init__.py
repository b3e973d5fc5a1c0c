from .protocol import Storage
from .memory import InMemoryStorage
from .manager import TaskStatusManager

__all__ = ["Storage", "InMemoryStorage", "TaskStatusManager"]
