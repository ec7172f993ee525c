from dataclasses import dataclass

from .protocols import (
    LogSource,
    ServiceRegistry,
    TrafficProber,
    WorkloadController,
)


@dataclass(slots=True)
class Collaborators:
    workloads: WorkloadController
    services: ServiceRegistry
    traffic: TrafficProber
    logs: LogSource
