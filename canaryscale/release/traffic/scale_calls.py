import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from canaryscale.release.cluster import WorkloadController
from canaryscale.release.models import WorkloadRef


@dataclass(slots=True)
class CallOutcome:
    succeeded: bool
    attempts: int
    error: str | None = None


@dataclass(slots=True)
class ScaleOutcome:
    workload: WorkloadRef
    replicas: int
    succeeded: bool
    attempts: int
    error: str | None = None


async def call_with_retries(
    operation: Callable[[], Awaitable[object]],
    retries: int = 3,
    retry_interval: float = 1.0,
) -> CallOutcome:
    """
    Await a fresh call of `operation` until one succeeds or every
    attempt is spent, sleeping `retry_interval` between attempts.
    Failures are reported in the outcome, never raised.
    """
    error: str | None = None

    for attempt in range(1, retries + 1):
        try:
            await operation()

            return CallOutcome(
                succeeded=True,
                attempts=attempt,
            )

        except Exception as err:
            error = str(err)

        if attempt < retries:
            await asyncio.sleep(retry_interval)

    return CallOutcome(
        succeeded=False,
        attempts=retries,
        error=error,
    )


async def scale_with_retries(
    controller: WorkloadController,
    workload: WorkloadRef,
    replicas: int,
    retries: int = 3,
    retry_interval: float = 1.0,
) -> ScaleOutcome:
    """
    Issue one scale call, retrying it on its own. The result of a
    call never says anything about any other workload's call.
    """
    outcome = await call_with_retries(
        lambda: controller.set_replica_count(workload, replicas),
        retries=retries,
        retry_interval=retry_interval,
    )

    return ScaleOutcome(
        workload=workload,
        replicas=replicas,
        succeeded=outcome.succeeded,
        attempts=outcome.attempts,
        error=outcome.error,
    )


async def set_image_with_retries(
    controller: WorkloadController,
    workload: WorkloadRef,
    container_name: str,
    image: str,
    retries: int = 3,
    retry_interval: float = 1.0,
) -> CallOutcome:
    return await call_with_retries(
        lambda: controller.set_image(workload, container_name, image),
        retries=retries,
        retry_interval=retry_interval,
    )
