from dataclasses import dataclass
from enum import Enum


class RunStatus(Enum):
    INITIALIZING = "initializing"
    STAGING = "staging"
    MONITORING = "monitoring"
    ROLLING_BACK = "rolling_back"
    PROMOTED = "promoted"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class RunState:
    """
    The controller's current state. Staging and monitoring carry
    the index of the stage they belong to, every other status
    carries None.
    """

    status: RunStatus
    stage_index: int | None = None

    @classmethod
    def initializing(cls):
        return cls(RunStatus.INITIALIZING)

    @classmethod
    def staging(cls, stage_index: int):
        return cls(RunStatus.STAGING, stage_index)

    @classmethod
    def monitoring(cls, stage_index: int):
        return cls(RunStatus.MONITORING, stage_index)

    @classmethod
    def rolling_back(cls):
        return cls(RunStatus.ROLLING_BACK)

    @classmethod
    def promoted(cls):
        return cls(RunStatus.PROMOTED)

    @classmethod
    def failed(cls):
        return cls(RunStatus.FAILED)

    @property
    def terminal(self) -> bool:
        return self.status in (RunStatus.PROMOTED, RunStatus.FAILED)

    def __str__(self) -> str:
        if self.stage_index is None:
            return self.status.value

        return f"{self.status.value}({self.stage_index})"
