"""
Health probes for canary stages.

Each probe samples one signal from an external system and reports
a HealthVerdict. Probes only read, they never mutate workloads, and
they never raise for collaborator failures: an unreachable API, a
transport error or a malformed response becomes a failed verdict
carrying the error as its detail.

Probe Types:
- ReplicaHealthProbe: ready == desired == expected replicas
- EndpointCountProbe: routable backends == expected, exactly
- SyntheticRequestProbe: every sampled request succeeds
- ErrorRateProbe: error lines / request lines in recent logs stays
  under a threshold
"""

import asyncio
import re
from abc import ABC, abstractmethod

from canaryscale.release.cluster import (
    LogSource,
    ServiceRegistry,
    TrafficProber,
    WorkloadController,
)
from canaryscale.release.models import (
    HealthVerdict,
    ServiceRef,
    WorkloadRef,
)


class CanaryProbe(ABC):
    """
    Base probe. Subclasses implement `_sample()`, and `check()` turns
    any collaborator exception into a failed verdict.
    """

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthVerdict:
        try:
            return await self._sample()

        except Exception as err:
            return HealthVerdict(
                probe_name=self._name,
                passed=False,
                detail=f"Collaborator unreachable: {err}",
            )

    @abstractmethod
    async def _sample(self) -> HealthVerdict: ...


class ReplicaHealthProbe(CanaryProbe):

    def __init__(
        self,
        controller: WorkloadController,
        workload: WorkloadRef,
        expected_replicas: int,
        name: str | None = None,
    ) -> None:
        super().__init__(name or f"replica-health:{workload.name}")
        self._controller = controller
        self._workload = workload
        self._expected_replicas = expected_replicas

    async def _sample(self) -> HealthVerdict:
        status = await self._controller.get_replica_status(self._workload)

        if self._expected_replicas == 0:
            passed = status.ready == 0 and status.desired == 0

            return HealthVerdict(
                probe_name=self._name,
                passed=passed,
                detail=(
                    f"{self._workload.name} has 0 replicas (as expected)"
                    if passed
                    else f"{self._workload.name} should be scaled to 0 ({status.ready}/{status.desired} ready)"
                ),
            )

        passed = status.ready == status.desired == self._expected_replicas

        return HealthVerdict(
            probe_name=self._name,
            passed=passed,
            detail=(
                f"All {self._workload.name} replicas are healthy ({status.ready}/{status.desired})"
                if passed
                else f"{self._workload.name} has {status.ready}/{status.desired} ready, expected {self._expected_replicas}"
            ),
        )


class EndpointCountProbe(CanaryProbe):

    def __init__(
        self,
        registry: ServiceRegistry,
        service: ServiceRef,
        expected_endpoints: int,
        name: str | None = None,
    ) -> None:
        super().__init__(name or f"endpoint-count:{service.name}")
        self._registry = registry
        self._service = service
        self._expected_endpoints = expected_endpoints

    async def _sample(self) -> HealthVerdict:
        endpoints = await self._registry.get_endpoint_count(self._service)
        passed = endpoints == self._expected_endpoints

        return HealthVerdict(
            probe_name=self._name,
            passed=passed,
            detail=f"{self._service.name} has {endpoints} endpoints (expected: {self._expected_endpoints})",
        )


class SyntheticRequestProbe(CanaryProbe):

    def __init__(
        self,
        prober: TrafficProber,
        service: ServiceRef,
        sample_size: int = 5,
        request_timeout: float = 5.0,
        request_delay: float = 1.0,
        name: str | None = None,
    ) -> None:
        super().__init__(name or f"synthetic-request:{service.name}")
        self._prober = prober
        self._service = service
        self._sample_size = sample_size
        self._request_timeout = request_timeout
        self._request_delay = request_delay

    async def _sample(self) -> HealthVerdict:
        successes = 0

        for _ in range(self._sample_size):
            if await self._prober.probe_http(
                self._service,
                self._request_timeout,
            ):
                successes += 1

            await asyncio.sleep(self._request_delay)

        return HealthVerdict(
            probe_name=self._name,
            passed=successes == self._sample_size,
            detail=f"{successes}/{self._sample_size} requests to {self._service.name} succeeded",
        )


class ErrorRateProbe(CanaryProbe):

    def __init__(
        self,
        logs: LogSource,
        namespace: str,
        selector: str,
        threshold_percent: int = 5,
        tail_lines: int = 100,
        error_pattern: str = "ERROR|500|Exception",
        request_pattern: str = "REQUEST|GET|POST",
        name: str | None = None,
    ) -> None:
        super().__init__(name or f"error-rate:{selector}")
        self._logs = logs
        self._namespace = namespace
        self._selector = selector
        self._threshold_percent = threshold_percent
        self._tail_lines = tail_lines
        self._error_pattern = re.compile(error_pattern)
        self._request_pattern = re.compile(request_pattern)

    async def _sample(self) -> HealthVerdict:
        instances = await self._logs.list_instances(
            self._namespace,
            self._selector,
        )

        instance_logs = await asyncio.gather(*[
            self._logs.tail_recent_logs(
                instance,
                self._tail_lines,
            ) for instance in instances
        ])

        total_errors = 0
        total_requests = 0

        for lines in instance_logs:
            total_errors += sum(
                1 for line in lines if self._error_pattern.search(line)
            )
            total_requests += sum(
                1 for line in lines if self._request_pattern.search(line)
            )

        if total_requests == 0:
            return HealthVerdict(
                probe_name=self._name,
                passed=True,
                detail=f"No requests found for error rate calculation across {len(instances)} instances",
                warning=True,
            )

        error_rate = total_errors * 100 // total_requests
        passed = error_rate < self._threshold_percent

        return HealthVerdict(
            probe_name=self._name,
            passed=passed,
            detail=(
                f"Error rate {'acceptable' if passed else 'too high'}: "
                f"{error_rate}% (threshold: {self._threshold_percent}%, "
                f"{total_errors} errors / {total_requests} requests)"
            ),
        )
