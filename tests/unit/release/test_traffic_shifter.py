"""
Tests for traffic shifting and rollback.

Tests cover:
- Both workloads scaled to the replica plan
- Independent retries per scale call
- Convergence timeouts fail the shift
- Rollback restores full stable traffic
- Rollback restores the stable image after a partial promotion
- Rollback issuance failures
"""

import pytest

from canaryscale.logging import Logger
from canaryscale.release.exceptions import RollbackIssuanceError
from canaryscale.release.models import ReleaseConfig
from canaryscale.release.rollback import RollbackManager
from canaryscale.release.traffic import TrafficShifter, call_with_retries

from tests.unit.release.mocks import FakeCluster


# =============================================================================
# Test TrafficShifter
# =============================================================================


class TestTrafficShifter:
    """Tests for applying a replica plan."""

    @pytest.mark.asyncio
    async def test_shift_applies_plan(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        shifter = TrafficShifter(cluster, release_config, logger=logger)

        result = await shifter.shift(25)

        assert result.succeeded
        assert result.plan.candidate_replicas == 2
        assert cluster.replicas("webapp-canary") == 2
        assert cluster.replicas("webapp-stable") == 8

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried_alone(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        """Retrying the canary call does not re-issue the stable call."""
        cluster.transient_scale_failures["webapp-canary"] = 2
        shifter = TrafficShifter(cluster, release_config, logger=logger)

        result = await shifter.shift(50)

        assert result.succeeded
        attempts = {
            outcome.workload.name: outcome.attempts for outcome in result.outcomes
        }
        assert attempts == {"webapp-stable": 1, "webapp-canary": 3}
        assert cluster.scale_calls.count(("webapp-stable", 5)) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_fail_the_shift(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        cluster.failing_scales.add("webapp-canary")
        shifter = TrafficShifter(cluster, release_config, logger=logger)

        result = await shifter.shift(10)

        assert result.succeeded is False
        assert "webapp-canary" in result.detail
        assert "webapp-stable" not in result.detail
        assert cluster.replicas("webapp-stable") == 9

    @pytest.mark.asyncio
    async def test_convergence_timeout_fails_the_shift(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        cluster.converge = False
        shifter = TrafficShifter(cluster, release_config, logger=logger)

        result = await shifter.shift(10)

        assert result.succeeded is False
        assert "did not converge" in result.detail


# =============================================================================
# Test RollbackManager
# =============================================================================


class TestRollbackManager:
    """Tests for restoring 100% stable traffic."""

    @pytest.mark.asyncio
    async def test_rollback_restores_stable(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        await TrafficShifter(cluster, release_config, logger=logger).shift(50)

        outcomes = await RollbackManager(cluster, release_config, logger=logger).rollback()

        assert all(outcome.succeeded for outcome in outcomes)
        assert cluster.replicas("webapp-canary") == 0
        assert cluster.replicas("webapp-stable") == 10
        assert cluster.image_calls == []

    @pytest.mark.asyncio
    async def test_rollback_restores_stable_image(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        cluster.deployments["webapp-stable"].image = "nginx:1.22"

        await RollbackManager(cluster, release_config, logger=logger).rollback(
            restore_image=True,
        )

        assert cluster.image("webapp-stable") == "nginx:1.21"
        assert cluster.replicas("webapp-stable") == 10
        assert cluster.replicas("webapp-canary") == 0

    @pytest.mark.asyncio
    async def test_rollback_does_not_wait_for_convergence(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        cluster.converge = False

        await RollbackManager(cluster, release_config, logger=logger).rollback()

        assert cluster.replicas("webapp-canary") == 0

    @pytest.mark.asyncio
    async def test_one_failed_call_still_issues_the_other(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        await TrafficShifter(cluster, release_config, logger=logger).shift(50)
        cluster.failing_scales.add("webapp-stable")

        outcomes = await RollbackManager(cluster, release_config, logger=logger).rollback()

        assert [outcome.succeeded for outcome in outcomes] == [True, False]
        assert cluster.replicas("webapp-canary") == 0

    @pytest.mark.asyncio
    async def test_no_issued_call_raises(
        self,
        cluster: FakeCluster,
        release_config: ReleaseConfig,
        logger: Logger,
    ):
        cluster.failing_scales.update({"webapp-stable", "webapp-canary"})

        with pytest.raises(RollbackIssuanceError):
            await RollbackManager(cluster, release_config, logger=logger).rollback()


# =============================================================================
# Test call_with_retries
# =============================================================================


class TestCallWithRetries:

    @pytest.mark.asyncio
    async def test_stops_after_first_success(self):
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1

            if attempts < 2:
                raise RuntimeError("Err. - not yet")

        outcome = await call_with_retries(flaky, retries=3, retry_interval=0)

        assert outcome.succeeded
        assert outcome.attempts == 2
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_reports_last_error_when_exhausted(self):
        async def broken():
            raise RuntimeError("Err. - still broken")

        outcome = await call_with_retries(broken, retries=2, retry_interval=0)

        assert outcome.succeeded is False
        assert outcome.attempts == 2
        assert outcome.error == "Err. - still broken"
