import asyncio
from typing import Sequence

from canaryscale.logging import Logger
from canaryscale.release.logging_models import (
    ProbeError,
    ProbeSuccess,
    ProbeWarning,
)
from canaryscale.release.models import HealthVerdict

from .probes import CanaryProbe


class StageEvaluator:
    """
    Conjunctive stage gate. Every verdict must pass, there is no
    weighting or quorum. Verdicts are logged in the order the probes
    were given so the first failing signal reads first, but the outcome
    does not depend on that order.
    """

    def __init__(self, logger: Logger | None = None) -> None:
        self._logger = logger or Logger()

    async def run(
        self,
        probes: Sequence[CanaryProbe],
        stage_share: int | None = None,
    ) -> tuple[bool, list[HealthVerdict]]:
        verdicts = await asyncio.gather(*[
            probe.check() for probe in probes
        ])

        passed = await self.evaluate(
            verdicts,
            stage_share=stage_share,
        )

        return passed, list(verdicts)

    async def evaluate(
        self,
        verdicts: Sequence[HealthVerdict],
        stage_share: int | None = None,
    ) -> bool:
        for verdict in verdicts:
            await self._log_verdict(verdict, stage_share)

        passed = len(verdicts) > 0 and all(
            verdict.passed for verdict in verdicts
        )

        if passed:
            await self._logger.log(ProbeSuccess(
                message="All health checks passed",
                probe="stage-gate",
                stage_share=stage_share,
            ))

        else:
            failed = [
                verdict.probe_name for verdict in verdicts if verdict.passed is False
            ]

            await self._logger.log(ProbeError(
                message=f"Health checks failed: {', '.join(failed) or 'no verdicts'}",
                probe="stage-gate",
                stage_share=stage_share,
            ))

        return passed

    async def _log_verdict(
        self,
        verdict: HealthVerdict,
        stage_share: int | None,
    ):
        if verdict.passed and verdict.warning:
            await self._logger.log(ProbeWarning(
                message=verdict.detail,
                probe=verdict.probe_name,
                stage_share=stage_share,
            ))

        elif verdict.passed:
            await self._logger.log(ProbeSuccess(
                message=verdict.detail,
                probe=verdict.probe_name,
                stage_share=stage_share,
            ))

        else:
            await self._logger.log(ProbeError(
                message=verdict.detail,
                probe=verdict.probe_name,
                stage_share=stage_share,
            ))
