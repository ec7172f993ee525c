"""
Release run state machine.

Enforces the only paths a run may take:

  initializing -> staging(0) | failed
  staging(i) -> monitoring(i) | rolling_back
  monitoring(i) -> staging(i + 1) | promoted (i is last) | rolling_back
  rolling_back -> failed

Promoted and failed are terminal. Every accepted transition is kept in
the run history.
"""

import time
from dataclasses import dataclass

from canaryscale.release.exceptions import InvalidTransitionError
from canaryscale.release.models import RunState, RunStatus


VALID_TRANSITIONS: dict[RunStatus, set[RunStatus]] = {
    RunStatus.INITIALIZING: {
        RunStatus.STAGING,
        RunStatus.FAILED,
    },
    RunStatus.STAGING: {
        RunStatus.MONITORING,
        RunStatus.ROLLING_BACK,
    },
    RunStatus.MONITORING: {
        RunStatus.STAGING,
        RunStatus.PROMOTED,
        RunStatus.ROLLING_BACK,
    },
    RunStatus.ROLLING_BACK: {
        RunStatus.FAILED,
    },
    RunStatus.PROMOTED: set(),
    RunStatus.FAILED: set(),
}


@dataclass(slots=True)
class StateTransition:
    from_state: RunState
    to_state: RunState
    timestamp: float
    reason: str = ""


class RunStateMachine:

    def __init__(self, last_stage_index: int) -> None:
        self._last_stage_index = last_stage_index
        self._state = RunState.initializing()
        self._history: list[StateTransition] = []

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def history(self) -> list[StateTransition]:
        return list(self._history)

    @property
    def visited(self) -> list[RunState]:
        return [RunState.initializing()] + [
            transition.to_state for transition in self._history
        ]

    def can_transition(self, to_state: RunState) -> bool:
        from_state = self._state

        if to_state.status not in VALID_TRANSITIONS[from_state.status]:
            return False

        match to_state.status:
            case RunStatus.STAGING:
                if from_state.status == RunStatus.INITIALIZING:
                    return to_state.stage_index == 0

                return (
                    from_state.stage_index is not None
                    and from_state.stage_index < self._last_stage_index
                    and to_state.stage_index == from_state.stage_index + 1
                )

            case RunStatus.MONITORING:
                return to_state.stage_index == from_state.stage_index

            case RunStatus.PROMOTED:
                return from_state.stage_index == self._last_stage_index

            case _:
                return True

    def transition(self, to_state: RunState, reason: str = "") -> StateTransition:
        if not self.can_transition(to_state):
            raise InvalidTransitionError(
                f"Err. - invalid run transition {self._state} -> {to_state}"
            )

        record = StateTransition(
            from_state=self._state,
            to_state=to_state,
            timestamp=time.monotonic(),
            reason=reason,
        )

        self._history.append(record)
        self._state = to_state

        return record
