from .scale_calls import (
    CallOutcome as CallOutcome,
    ScaleOutcome as ScaleOutcome,
    call_with_retries as call_with_retries,
    scale_with_retries as scale_with_retries,
    set_image_with_retries as set_image_with_retries,
)
from .traffic_shifter import (
    ShiftResult as ShiftResult,
    TrafficShifter as TrafficShifter,
)
