import asyncio

from canaryscale.logging import Logger
from canaryscale.release.cancellation import CancellationToken
from canaryscale.release.cluster import TrafficProber
from canaryscale.release.logging_models import (
    ReleaseDebug,
    ReleaseInfo,
    ReleaseWarning,
)
from canaryscale.release.models import ReleaseConfig


class LoadGenerator:
    """
    Keeps the canary-facing service warm with one request per interval.
    Results are never inspected and failures never back off. The
    generator runs until its token is cancelled or `stop()` is awaited.
    """

    def __init__(
        self,
        prober: TrafficProber,
        config: ReleaseConfig,
        logger: Logger | None = None,
    ) -> None:
        self._prober = prober
        self._config = config
        self._logger = logger or Logger()
        self._task: asyncio.Task | None = None
        self._token: CancellationToken | None = None
        self.requests_sent = 0

    @property
    def running(self) -> bool:
        return self._task is not None and self._task.done() is False

    async def start(self, token: CancellationToken) -> None:
        if self.running:
            return

        self._token = token

        await self._logger.log(ReleaseInfo(
            message="Starting load generator...",
            release=self._config.release_name,
            state="initializing",
        ))

        self._task = asyncio.create_task(self._run(token))

    async def stop(self) -> None:
        if self._token:
            self._token.cancel("load generator stopped")

        if self._task:
            self._task.cancel()

            try:
                await self._task

            except asyncio.CancelledError:
                pass

            except Exception as err:
                await self._logger.log(ReleaseWarning(
                    message=f"Load generator stopped with error: {err}",
                    release=self._config.release_name,
                    state="stopping",
                ))

            self._task = None

    async def _run(self, token: CancellationToken) -> None:
        while token.cancelled is False:
            try:
                await self._prober.probe_http(
                    self._config.service,
                    self._config.synthetic_request_timeout,
                )

            except Exception as err:
                await self._logger.log(ReleaseDebug(
                    message=f"Load generator request failed: {err}",
                    release=self._config.release_name,
                    state="running",
                ))

            self.requests_sent += 1

            try:
                await asyncio.wait_for(
                    token.wait(),
                    timeout=self._config.load_generator_interval,
                )

            except asyncio.TimeoutError:
                pass
