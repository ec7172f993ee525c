"""
Tests for the conjunctive stage gate.
"""

import asyncio
import itertools

import pytest

from canaryscale.logging import Logger
from canaryscale.release.health import CanaryProbe, StageEvaluator
from canaryscale.release.models import HealthVerdict


class StaticProbe(CanaryProbe):

    def __init__(self, name: str, passed: bool, delay: float = 0, warning: bool = False) -> None:
        super().__init__(name)
        self.passed = passed
        self.delay = delay
        self.warning = warning
        self.started = False

    async def _sample(self) -> HealthVerdict:
        self.started = True
        await asyncio.sleep(self.delay)

        return HealthVerdict(
            probe_name=self.name,
            passed=self.passed,
            detail=f"{self.name} {'ok' if self.passed else 'failed'}",
            warning=self.warning,
        )


class TestStageEvaluator:
    """Tests for stage gate evaluation."""

    @pytest.mark.asyncio
    async def test_all_passing_verdicts_pass(self, logger: Logger):
        evaluator = StageEvaluator(logger)

        assert await evaluator.evaluate([
            HealthVerdict(probe_name=f"probe-{idx}", passed=True) for idx in range(5)
        ], stage_share=10)

    @pytest.mark.asyncio
    async def test_any_single_failure_fails_regardless_of_position(self, logger: Logger):
        evaluator = StageEvaluator(logger)

        for failing_index in range(5):
            verdicts = [
                HealthVerdict(
                    probe_name=f"probe-{idx}",
                    passed=idx != failing_index,
                ) for idx in range(5)
            ]

            assert await evaluator.evaluate(verdicts) is False

    @pytest.mark.asyncio
    async def test_outcome_does_not_depend_on_order(self, logger: Logger):
        evaluator = StageEvaluator(logger)
        verdicts = [
            HealthVerdict(probe_name="a", passed=True),
            HealthVerdict(probe_name="b", passed=False),
            HealthVerdict(probe_name="c", passed=True, warning=True),
        ]

        outcomes = {
            await evaluator.evaluate(list(ordering))
            for ordering in itertools.permutations(verdicts)
        }

        assert outcomes == {False}

    @pytest.mark.asyncio
    async def test_warning_verdict_still_passes(self, logger: Logger):
        evaluator = StageEvaluator(logger)

        assert await evaluator.evaluate([
            HealthVerdict(probe_name="error-rate", passed=True, warning=True),
        ])

    @pytest.mark.asyncio
    async def test_no_verdicts_fails(self, logger: Logger):
        evaluator = StageEvaluator(logger)

        assert await evaluator.evaluate([]) is False

    @pytest.mark.asyncio
    async def test_run_joins_every_probe(self, logger: Logger):
        """A failing probe does not stop the others from finishing."""
        evaluator = StageEvaluator(logger)
        probes = [
            StaticProbe("fast-failure", passed=False),
            StaticProbe("slow-success", passed=True, delay=0.05),
            StaticProbe("success", passed=True),
        ]

        passed, verdicts = await evaluator.run(probes, stage_share=25)

        assert passed is False
        assert [verdict.probe_name for verdict in verdicts] == [
            "fast-failure",
            "slow-success",
            "success",
        ]
        assert all(probe.started for probe in probes)

    @pytest.mark.asyncio
    async def test_run_is_concurrent(self, logger: Logger):
        evaluator = StageEvaluator(logger)
        probes = [
            StaticProbe(f"probe-{idx}", passed=True, delay=0.1) for idx in range(5)
        ]

        loop = asyncio.get_running_loop()
        started = loop.time()

        passed, _ = await evaluator.run(probes)

        assert passed
        assert loop.time() - started < 0.4
