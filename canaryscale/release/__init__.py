from .cancellation import CancellationToken as CancellationToken
from .controller import CanaryController as CanaryController
from .lease import RunLease as RunLease
from .models import (
    ExitCode as ExitCode,
    ReleaseConfig as ReleaseConfig,
    RunResult as RunResult,
)
