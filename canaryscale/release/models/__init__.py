from .health_verdict import HealthVerdict as HealthVerdict
from .release_config import ReleaseConfig as ReleaseConfig
from .replica_plan import ReplicaPlan as ReplicaPlan
from .replica_status import ReplicaStatus as ReplicaStatus
from .run_result import (
    ExitCode as ExitCode,
    RunResult as RunResult,
)
from .run_state import (
    RunState as RunState,
    RunStatus as RunStatus,
)
from .stage_spec import StageSpec as StageSpec
from .workload_ref import (
    InstanceRef as InstanceRef,
    ServiceRef as ServiceRef,
    WorkloadRef as WorkloadRef,
)
