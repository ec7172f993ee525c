import asyncio

from canaryscale.logging import Logger
from canaryscale.release.cluster import WorkloadController
from canaryscale.release.exceptions import RollbackIssuanceError
from canaryscale.release.logging_models import (
    ReleaseError,
    ReleaseInfo,
    ReleaseSuccess,
)
from canaryscale.release.models import ReleaseConfig
from canaryscale.release.traffic import (
    ScaleOutcome,
    scale_with_retries,
    set_image_with_retries,
)


class RollbackManager:
    """
    Restores the one split known to be safe, 100% stable and 0% candidate,
    whatever stage failed. Scale calls are issued but convergence is not
    awaited, since the instability that triggered the rollback could
    also stall it. When promotion already touched the stable workload's
    image, the original image is put back before any scale call.
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

    async def rollback(self, restore_image: bool = False) -> list[ScaleOutcome]:
        await self._logger.log(ReleaseError(
            message="Initiating canary rollback...",
            release=self._config.release_name,
            state="rolling_back",
        ))

        if restore_image:
            await self._restore_stable_image()

        outcomes: list[ScaleOutcome] = list(
            await asyncio.gather(
                scale_with_retries(
                    self._controller,
                    self._config.candidate,
                    0,
                    retries=self._config.scale_retries,
                    retry_interval=self._config.scale_retry_interval,
                ),
                scale_with_retries(
                    self._controller,
                    self._config.stable,
                    self._config.total_replicas,
                    retries=self._config.scale_retries,
                    retry_interval=self._config.scale_retry_interval,
                ),
            )
        )

        failed_calls = [
            outcome for outcome in outcomes if outcome.succeeded is False
        ]

        for outcome in failed_calls:
            await self._logger.log(ReleaseError(
                message=f"Rollback could not scale {outcome.workload.name} to {outcome.replicas}: {outcome.error}",
                release=self._config.release_name,
                state="rolling_back",
            ))

        if len(failed_calls) == len(outcomes):
            raise RollbackIssuanceError(
                "Err. - no rollback scale call could be issued: "
                + "; ".join([str(outcome.error) for outcome in failed_calls])
            )

        if not failed_calls:
            await self._logger.log(ReleaseSuccess(
                message="Rollback issued. 100% traffic back to stable version.",
                release=self._config.release_name,
                state="rolling_back",
            ))

        return outcomes

    async def _restore_stable_image(self):
        outcome = await set_image_with_retries(
            self._controller,
            self._config.stable,
            self._config.container_name,
            self._config.stable.image,
            retries=self._config.scale_retries,
            retry_interval=self._config.scale_retry_interval,
        )

        if outcome.succeeded:
            await self._logger.log(ReleaseInfo(
                message=f"Restored {self._config.stable.name} image to {self._config.stable.image}",
                release=self._config.release_name,
                state="rolling_back",
            ))

        else:
            await self._logger.log(ReleaseError(
                message=f"Rollback could not restore {self._config.stable.name} image to {self._config.stable.image}: {outcome.error}",
                release=self._config.release_name,
                state="rolling_back",
            ))
