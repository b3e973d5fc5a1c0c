from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Union

from taskatron.domain.run import TaskResult
from taskatron.errors import TriggerCycleError

if TYPE_CHECKING:
    from taskatron.scheduler import Scheduler


class Task(ABC):
    """
    Abstract base class for a unit of work.

    A task has a stable identifier (defaulting to its class name), optional
    parameters, and an ordered list of trigger tasks which the scheduler
    starts when a run of this task succeeds.
    """

    def __init__(self, id: Optional[str] = None, params: Optional[Dict[str, Any]] = None) -> None:
        self.id: str = id if id is not None else type(self).__name__
        self.params: Dict[str, Any] = dict(params or {})
        self.triggers: List["Task"] = []

    def set_triggers(self, triggers: Iterable["Task"]) -> None:
        """
        Replace the trigger list.

        Raises:
            TriggerCycleError: If the new triggers would make this task reachable from itself.
        """
        previous = self.triggers
        self.triggers = list(triggers)
        cycle = find_trigger_cycle(self)
        if cycle:
            self.triggers = previous
            raise TriggerCycleError(cycle)

    @abstractmethod
    async def execute(self, scheduler: "Scheduler") -> Optional[Union[TaskResult, Dict[str, Any]]]:
        """
        Perform the work. May await and may raise; the scheduler records either outcome.

        Args:
            scheduler (Scheduler): The scheduler running this task, for logging and lookups.
        """
        pass

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": type(self).__name__,
            "params": self.params,
            "triggers": [trigger.id for trigger in self.triggers],
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


def find_trigger_cycle(task: Task) -> Optional[List[str]]:
    """
    Depth-first search of the trigger graph reachable from ``task``.

    Returns:
        Optional[List[str]]: The task ids along the first cycle found, ending with
        the id that closes it, or None if the graph is acyclic.
    """
    path: List[Task] = []
    on_path: set = set()
    finished: set = set()

    def visit(node: Task) -> Optional[List[str]]:
        if id(node) in on_path:
            start = next(i for i, t in enumerate(path) if t is node)
            return [t.id for t in path[start:]] + [node.id]
        if id(node) in finished:
            return None
        path.append(node)
        on_path.add(id(node))
        for trigger in node.triggers:
            cycle = visit(trigger)
            if cycle:
                return cycle
        path.pop()
        on_path.discard(id(node))
        finished.add(id(node))
        return None

    return visit(task)
