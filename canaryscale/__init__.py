from .release import (
    CanaryController as CanaryController,
    CancellationToken as CancellationToken,
    ReleaseConfig as ReleaseConfig,
    RunLease as RunLease,
)
