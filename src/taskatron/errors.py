class TaskatronError(Exception):
    """
    Base class for all errors raised by taskatron.
    """


class TaskNotFoundError(TaskatronError, KeyError):
    """
    Raised when a task identifier is not registered with the scheduler.
    """

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f'Task with ID "{task_id}" not found.')

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message
        return self.args[0]


class TaskExecutionError(TaskatronError):
    """
    Wraps an error raised from a task's execute body.
    """

    def __init__(self, task_id: str, cause: BaseException):
        self.task_id = task_id
        self.cause = cause
        message = str(cause) or "An unknown error occurred"
        super().__init__(message)


class TriggerCycleError(TaskatronError, ValueError):
    """
    Raised when a trigger list would make a task reachable from itself.
    """

    def __init__(self, path):
        self.path = list(path)
        super().__init__(f"Trigger cycle detected: {' -> '.join(self.path)}")


class InvalidCronExpressionError(TaskatronError, ValueError):
    def __init__(self, expression: str):
        self.expression = expression
        super().__init__(f"Invalid cron expression: '{expression}'")


class AlreadyScheduledWarning(UserWarning):
    pass


class UnscheduledWarning(UserWarning):
    pass
