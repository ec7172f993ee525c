"""
In-memory cluster for release tests.

FakeCluster implements every collaborator protocol (workload
controller, service registry, traffic prober and log source) over a
dict of deployments. Scaling converges instantly unless told
otherwise, and every failure mode the controller has to survive can
be injected per test.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable

from canaryscale.release.cluster import Collaborators
from canaryscale.release.exceptions import CollaboratorError
from canaryscale.release.models import (
    InstanceRef,
    ReplicaStatus,
    ServiceRef,
    WorkloadRef,
)


@dataclass
class FakeDeployment:
    replicas: int
    image: str
    ready: int | None = None

    def status(self) -> ReplicaStatus:
        return ReplicaStatus(
            ready=self.replicas if self.ready is None else self.ready,
            desired=self.replicas,
        )


@dataclass
class FakeCluster:
    deployments: dict[str, FakeDeployment] = field(default_factory=dict)
    log_lines: list[str] = field(
        default_factory=lambda: ["GET / HTTP/1.1 200"] * 20
    )

    converge: bool = True
    failing_scales: set[str] = field(default_factory=set)
    transient_scale_failures: dict[str, int] = field(default_factory=dict)
    failing_image_updates: bool = False
    unreachable: bool = False

    endpoint_hook: Callable[["FakeCluster"], int] | None = None
    request_hook: Callable[["FakeCluster"], bool] | None = None
    log_hook: Callable[["FakeCluster"], list[str]] | None = None

    scale_calls: list[tuple[str, int]] = field(default_factory=list)
    image_calls: list[tuple[str, str, str]] = field(default_factory=list)
    requests: int = 0

    @classmethod
    def with_workloads(
        cls,
        stable: WorkloadRef,
        candidate: WorkloadRef,
        total_replicas: int = 10,
        **kwargs,
    ):
        return cls(
            deployments={
                stable.name: FakeDeployment(
                    replicas=total_replicas,
                    image=stable.image,
                ),
                candidate.name: FakeDeployment(
                    replicas=0,
                    image=candidate.image,
                ),
            },
            **kwargs,
        )

    def collaborators(self) -> Collaborators:
        return Collaborators(
            workloads=self,
            services=self,
            traffic=self,
            logs=self,
        )

    def replicas(self, name: str) -> int:
        return self.deployments[name].replicas

    def image(self, name: str) -> str:
        return self.deployments[name].image

    def ready_total(self) -> int:
        return sum(
            deployment.status().ready for deployment in self.deployments.values()
        )

    def _check_reachable(self):
        if self.unreachable:
            raise CollaboratorError("Err. - fake cluster is unreachable")

    async def get_replica_status(self, workload: WorkloadRef) -> ReplicaStatus:
        self._check_reachable()
        return self.deployments[workload.name].status()

    async def set_replica_count(self, workload: WorkloadRef, count: int) -> None:
        self._check_reachable()

        if workload.name in self.failing_scales:
            raise CollaboratorError(f"Err. - cannot scale {workload.name}")

        remaining = self.transient_scale_failures.get(workload.name, 0)
        if remaining > 0:
            self.transient_scale_failures[workload.name] = remaining - 1
            raise CollaboratorError(f"Err. - transient failure scaling {workload.name}")

        self.scale_calls.append((workload.name, count))
        self.deployments[workload.name].replicas = count

    async def wait_for_rollout_convergence(
        self,
        workload: WorkloadRef,
        timeout: float,
    ) -> bool:
        if self.converge:
            return True

        await asyncio.sleep(timeout)
        return False

    async def set_image(
        self,
        workload: WorkloadRef,
        container: str,
        image: str,
    ) -> None:
        self._check_reachable()

        if self.failing_image_updates:
            raise CollaboratorError(f"Err. - cannot update {workload.name} image")

        self.image_calls.append((workload.name, container, image))
        self.deployments[workload.name].image = image

    async def get_endpoint_count(self, service: ServiceRef) -> int:
        self._check_reachable()

        if self.endpoint_hook:
            return self.endpoint_hook(self)

        return self.ready_total()

    async def probe_http(self, service: ServiceRef, timeout: float) -> bool:
        self.requests += 1

        if self.unreachable:
            return False

        if self.request_hook:
            return self.request_hook(self)

        return True

    async def list_instances(
        self,
        namespace: str,
        selector: str,
    ) -> list[InstanceRef]:
        self._check_reachable()

        return [
            InstanceRef(
                name=f"{name}-{index}",
                namespace=namespace,
            )
            for name, deployment in self.deployments.items()
            for index in range(deployment.status().ready)
        ]

    async def tail_recent_logs(
        self,
        instance: InstanceRef,
        line_count: int,
    ) -> list[str]:
        self._check_reachable()

        lines = self.log_hook(self) if self.log_hook else self.log_lines
        return lines[-line_count:]
