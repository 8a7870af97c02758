from typing import Dict


class TaskError(Exception):
    """Base class for failures raised by the task core"""


class TaskValidationError(TaskError):
    """Input was malformed; ``errors`` maps each offending field to a message"""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(f"Invalid task data: {', '.join(sorted(self.errors))}")


class TaskNotFound(TaskError):
    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class StoreUnavailable(TaskError):
    """The database could not be reached or rejected a read/write"""
