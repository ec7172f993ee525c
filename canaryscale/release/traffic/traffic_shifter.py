import asyncio
from dataclasses import dataclass, field

from canaryscale.logging import Logger
from canaryscale.release.cluster import WorkloadController
from canaryscale.release.logging_models import (
    ReleaseError,
    ReleaseInfo,
)
from canaryscale.release.models import (
    ReleaseConfig,
    ReplicaPlan,
    WorkloadRef,
)

from .scale_calls import ScaleOutcome, scale_with_retries


@dataclass(slots=True)
class ShiftResult:
    plan: ReplicaPlan
    succeeded: bool
    detail: str = ""
    outcomes: list[ScaleOutcome] = field(default_factory=list)


class TrafficShifter:
    """
    Moves traffic by moving replicas. A share percentage becomes a
    ReplicaPlan, both workloads are scaled to it, and the shift only
    succeeds once the controller reports both rollouts converged.
    An unconverged shift leaves the traffic split unknown, so it is
    reported as a failure rather than waited out.
    """

    def __init__(
        self,
        controller: WorkloadController,
        config: ReleaseConfig,
        logger: Logger | None = None,
    ) -> None:
        self._controller = controller
        self._config = config
        self._logger = logger or Logger()

    def plan(self, share_percent: int) -> ReplicaPlan:
        return ReplicaPlan.for_share(
            share_percent,
            self._config.total_replicas,
        )

    async def shift(
        self,
        share_percent: int,
        state: str = "staging",
    ) -> ShiftResult:
        plan = self.plan(share_percent)

        await self._logger.log(ReleaseInfo(
            message=f"Progressing canary to {share_percent}% traffic - stable replicas: {plan.stable_replicas}, canary replicas: {plan.candidate_replicas}",
            release=self._config.release_name,
            state=state,
        ))

        outcomes: list[ScaleOutcome] = list(
            await asyncio.gather(
                self._scale(self._config.stable, plan.stable_replicas),
                self._scale(self._config.candidate, plan.candidate_replicas),
            )
        )

        failed_calls = [
            outcome for outcome in outcomes if outcome.succeeded is False
        ]

        if failed_calls:
            detail = "; ".join([
                f"scaling {outcome.workload.name} to {outcome.replicas} failed after {outcome.attempts} attempts: {outcome.error}"
                for outcome in failed_calls
            ])

            await self._logger.log(ReleaseError(
                message=detail,
                release=self._config.release_name,
                state=state,
            ))

            return ShiftResult(
                plan=plan,
                succeeded=False,
                detail=detail,
                outcomes=outcomes,
            )

        await self._logger.log(ReleaseInfo(
            message="Waiting for deployments to scale...",
            release=self._config.release_name,
            state=state,
        ))

        unconverged = await self._wait_for_convergence()

        if unconverged:
            detail = (
                f"{', '.join(unconverged)} did not converge within "
                f"{self._config.convergence_timeout}s"
            )

            await self._logger.log(ReleaseError(
                message=detail,
                release=self._config.release_name,
                state=state,
            ))

            return ShiftResult(
                plan=plan,
                succeeded=False,
                detail=detail,
                outcomes=outcomes,
            )

        return ShiftResult(
            plan=plan,
            succeeded=True,
            detail=f"Converged at {share_percent}% canary traffic",
            outcomes=outcomes,
        )

    async def _scale(
        self,
        workload: WorkloadRef,
        replicas: int,
    ) -> ScaleOutcome:
        return await scale_with_retries(
            self._controller,
            workload,
            replicas,
            retries=self._config.scale_retries,
            retry_interval=self._config.scale_retry_interval,
        )

    async def _wait_for_convergence(self) -> list[str]:
        workloads = [
            self._config.stable,
            self._config.candidate,
        ]

        try:
            results = await asyncio.wait_for(
                asyncio.gather(*[
                    self._controller.wait_for_rollout_convergence(
                        workload,
                        self._config.convergence_timeout,
                    ) for workload in workloads
                ], return_exceptions=True),
                timeout=self._config.convergence_timeout,
            )

        except asyncio.TimeoutError:
            return [workload.name for workload in workloads]

        return [
            workload.name for workload, converged in zip(workloads, results) if converged is not True
        ]
