from enum import Enum


class TaskState(Enum):
    QUEUED = "queued"
    TRANSFERRING = "transferring"
    ACTIVATING = "activating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.SUCCEEDED, TaskState.FAILED)

    @property
    def is_in_flight(self) -> bool:
        return self in (TaskState.TRANSFERRING, TaskState.ACTIVATING)

    def __str__(self) -> str:
        return self.value


class Phase(Enum):
    TRANSFER = "transfer"
    ACTIVATION = "activation"

    def __str__(self) -> str:
        return self.value
