"""
Collaborator interfaces consumed by the release controller.

The controller never talks to a cluster directly. It reads and
mutates workloads, services and instance logs only through these
protocols, so any orchestration system (or an in-memory fake) can
stand behind them.
"""

from typing import Protocol

from canaryscale.release.models import (
    InstanceRef,
    ReplicaStatus,
    ServiceRef,
    WorkloadRef,
)


class WorkloadController(Protocol):

    async def get_replica_status(self, workload: WorkloadRef) -> ReplicaStatus: ...

    async def set_replica_count(self, workload: WorkloadRef, count: int) -> None: ...

    async def wait_for_rollout_convergence(
        self,
        workload: WorkloadRef,
        timeout: float,
    ) -> bool: ...

    async def set_image(
        self,
        workload: WorkloadRef,
        container: str,
        image: str,
    ) -> None: ...


class ServiceRegistry(Protocol):

    async def get_endpoint_count(self, service: ServiceRef) -> int: ...


class TrafficProber(Protocol):

    async def probe_http(self, service: ServiceRef, timeout: float) -> bool: ...


class LogSource(Protocol):

    async def list_instances(
        self,
        namespace: str,
        selector: str,
    ) -> list[InstanceRef]: ...

    async def tail_recent_logs(
        self,
        instance: InstanceRef,
        line_count: int,
    ) -> list[str]: ...
