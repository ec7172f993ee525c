from .canary_controller import CanaryController as CanaryController
from .state_machine import (
    VALID_TRANSITIONS as VALID_TRANSITIONS,
    RunStateMachine as RunStateMachine,
    StateTransition as StateTransition,
)
