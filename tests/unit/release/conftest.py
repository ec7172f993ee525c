from typing import AsyncGenerator

import pytest
import pytest_asyncio

from canaryscale.logging import Logger
from canaryscale.release.models import (
    ReleaseConfig,
    ServiceRef,
    StageSpec,
    WorkloadRef,
)

from tests.unit.release.mocks import FakeCluster


@pytest.fixture
def release_config(tmp_path) -> ReleaseConfig:
    return ReleaseConfig(
        stable=WorkloadRef(
            name="webapp-stable",
            namespace="lab",
            image="nginx:1.21",
        ),
        candidate=WorkloadRef(
            name="webapp-canary",
            namespace="lab",
            image="nginx:1.22",
        ),
        service=ServiceRef(
            name="webapp-canary-service",
            namespace="lab",
        ),
        stages=StageSpec((10, 25, 50, 100)),
        total_replicas=10,
        convergence_timeout=0.2,
        convergence_poll_interval=0.01,
        soak_duration=0,
        synthetic_request_delay=0,
        synthetic_request_timeout=0.1,
        load_generator_interval=0.01,
        scale_retry_interval=0,
        run_lease_enabled=False,
        run_lease_directory=str(tmp_path / "leases"),
    )


@pytest.fixture
def cluster(release_config: ReleaseConfig) -> FakeCluster:
    return FakeCluster.with_workloads(
        release_config.stable,
        release_config.candidate,
        total_replicas=release_config.total_replicas,
    )


@pytest_asyncio.fixture
async def logger() -> AsyncGenerator[Logger, None]:
    logger = Logger()
    logger.configure(template="{timestamp} - [{level}] - {message}")

    yield logger

    await logger.close()
