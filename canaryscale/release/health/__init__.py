from .probes import (
    CanaryProbe as CanaryProbe,
    EndpointCountProbe as EndpointCountProbe,
    ErrorRateProbe as ErrorRateProbe,
    ReplicaHealthProbe as ReplicaHealthProbe,
    SyntheticRequestProbe as SyntheticRequestProbe,
)
from .stage_evaluator import StageEvaluator as StageEvaluator
