from dataclasses import dataclass, field
from enum import IntEnum

from .run_state import RunState, RunStatus


class ExitCode(IntEnum):
    PROMOTED = 0
    FAILED = 1
    ROLLBACK_NOT_ISSUED = 2


@dataclass(slots=True)
class RunResult:
    state: RunState
    rolled_back: bool = False
    last_stage_index: int | None = None
    message: str = ""
    exit_code: ExitCode = ExitCode.FAILED
    history: list[RunState] = field(default_factory=list)

    @property
    def promoted(self) -> bool:
        return self.state.status == RunStatus.PROMOTED
