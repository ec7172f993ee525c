import asyncio

from canaryscale.logging import Logger
from canaryscale.release.cancellation import CancellationToken
from canaryscale.release.cluster import Collaborators
from canaryscale.release.exceptions import RollbackIssuanceError
from canaryscale.release.health import (
    CanaryProbe,
    EndpointCountProbe,
    ErrorRateProbe,
    ReplicaHealthProbe,
    StageEvaluator,
    SyntheticRequestProbe,
)
from canaryscale.release.load import LoadGenerator
from canaryscale.release.logging_models import (
    ReleaseError,
    ReleaseInfo,
    ReleaseSuccess,
    ReleaseWarning,
)
from canaryscale.release.models import (
    ExitCode,
    ReleaseConfig,
    ReplicaPlan,
    RunResult,
    RunState,
    RunStatus,
)
from canaryscale.release.rollback import RollbackManager
from canaryscale.release.traffic import (
    TrafficShifter,
    scale_with_retries,
    set_image_with_retries,
)

from .state_machine import RunStateMachine


class CanaryController:
    """
    Drives one release run from initialization to a terminal state.

    The stage progression runs as its own task, raced against the
    interrupt token. Whatever ends the progression early (a failed
    shift, a failed gate, an interrupt or an unexpected error) takes
    the same path: rolling back, then failed. A run that never got
    past initialization changed nothing and fails without a rollback.
    """

    def __init__(
        self,
        config: ReleaseConfig,
        collaborators: Collaborators,
        logger: Logger | None = None,
        interrupt: CancellationToken | None = None,
    ) -> None:
        self._config = config
        self._collaborators = collaborators
        self._logger = logger or Logger()
        self._interrupt = interrupt or CancellationToken()

        self._machine = RunStateMachine(config.stages.last_index)
        self._evaluator = StageEvaluator(self._logger)
        self._shifter = TrafficShifter(
            collaborators.workloads,
            config,
            logger=self._logger,
        )
        self._rollback_manager = RollbackManager(
            collaborators.workloads,
            config,
            logger=self._logger,
        )
        self._load_generator = LoadGenerator(
            collaborators.traffic,
            config,
            logger=self._logger,
        )
        self._last_stage_index: int | None = None
        self._stable_image_touched = False

    @property
    def state(self) -> RunState:
        return self._machine.state

    @property
    def interrupt(self) -> CancellationToken:
        return self._interrupt

    @property
    def load_generator(self) -> LoadGenerator:
        return self._load_generator

    async def run(self) -> RunResult:
        load_token = CancellationToken()

        await self._log_info(f"Starting automated canary deployment of {self._config.release_name}...")
        await self._log_info(f"Canary image: {self._config.candidate.image}")
        await self._log_info(f"Stable image: {self._config.stable.image}")

        try:
            failure = await self._race_progression(load_token)

            if failure is None:
                await self._log_success(
                    f"Canary deployment fully completed. Stable version now running {self._config.candidate.image}"
                )

                return self._result(
                    rolled_back=False,
                    message="promoted",
                    exit_code=ExitCode.PROMOTED,
                )

            if self.state.status == RunStatus.INITIALIZING:
                self._machine.transition(RunState.failed(), reason=failure)

                await self._log_error(f"{failure}. Aborting canary deployment.")
                await self._log_error("Canary release failed before any change, nothing to roll back.")

                return self._result(
                    rolled_back=False,
                    message=failure,
                    exit_code=ExitCode.FAILED,
                )

            return await self._roll_back(failure)

        finally:
            load_token.cancel("run finished")
            await self._load_generator.stop()

    async def _race_progression(self, load_token: CancellationToken) -> str | None:
        progression = asyncio.create_task(self._progress(load_token))
        interrupted = asyncio.create_task(self._interrupt.wait())

        try:
            done, _ = await asyncio.wait(
                {progression, interrupted},
                return_when=asyncio.FIRST_COMPLETED,
            )

        except asyncio.CancelledError:
            progression.cancel()
            interrupted.cancel()
            raise

        if progression in done:
            interrupted.cancel()

            try:
                return progression.result()

            except Exception as err:
                return f"Unexpected error during {self.state}: {err}"

        progression.cancel()

        try:
            await progression

        except asyncio.CancelledError:
            pass

        except Exception as err:
            await self._log_warning(f"Stage progression ended with error after interrupt: {err}")

        await self._log_warning(
            f"Run interrupted ({self._interrupt.reason}) during {self.state}. Initiating rollback..."
        )

        return f"Interrupted during {self.state}"

    async def _progress(self, load_token: CancellationToken) -> str | None:
        """
        Runs every stage in order. Returns None once the candidate is
        promoted, otherwise the reason the run has to stop.
        """
        await self._log_info("Verifying initial cluster state...")

        stable_health = await ReplicaHealthProbe(
            self._collaborators.workloads,
            self._config.stable,
            self._config.total_replicas,
        ).check()

        if not await self._evaluator.evaluate([stable_health]):
            return f"Initial stable deployment is not healthy: {stable_health.detail}"

        if self._config.load_generator_enabled:
            await self._load_generator.start(load_token)

        for stage_index, share in enumerate(self._config.stages):
            self._machine.transition(RunState.staging(stage_index))
            self._last_stage_index = stage_index

            await self._log_info(f"Starting canary stage: {share}% traffic")

            shift = await self._shifter.shift(share, state=str(self.state))
            if not shift.succeeded:
                return f"Canary stage {share}% failed: {shift.detail}"

            passed, _ = await self._evaluator.run(
                self._stage_probes(shift.plan),
                stage_share=share,
            )

            if not passed:
                return f"Canary stage {share}% failed health checks"

            await self._log_success(f"Canary stage {share}% completed successfully")

            self._machine.transition(RunState.monitoring(stage_index))

            await self._log_info(
                f"Monitoring canary at {share}% for {self._config.soak_duration} seconds..."
            )
            await asyncio.sleep(self._config.soak_duration)

            passed, _ = await self._evaluator.run(
                [self._error_rate_probe()],
                stage_share=share,
            )

            if not passed:
                return f"Error rate increased while monitoring {share}%"

        failure = await self._promote()
        if failure:
            return failure

        self._machine.transition(RunState.promoted())

        return None

    def _stage_probes(self, plan: ReplicaPlan) -> list[CanaryProbe]:
        workloads = self._collaborators.workloads

        return [
            ReplicaHealthProbe(
                workloads,
                self._config.stable,
                plan.stable_replicas,
            ),
            ReplicaHealthProbe(
                workloads,
                self._config.candidate,
                plan.candidate_replicas,
            ),
            EndpointCountProbe(
                self._collaborators.services,
                self._config.service,
                self._config.total_replicas,
            ),
            SyntheticRequestProbe(
                self._collaborators.traffic,
                self._config.service,
                sample_size=self._config.synthetic_sample_size,
                request_timeout=self._config.synthetic_request_timeout,
                request_delay=self._config.synthetic_request_delay,
            ),
            self._error_rate_probe(),
        ]

    def _error_rate_probe(self) -> ErrorRateProbe:
        return ErrorRateProbe(
            self._collaborators.logs,
            self._config.namespace,
            self._config.error_rate_selector,
            threshold_percent=self._config.error_rate_threshold,
            tail_lines=self._config.log_tail_lines,
            error_pattern=self._config.error_pattern,
            request_pattern=self._config.request_pattern,
        )

    async def _promote(self) -> str | None:
        await self._log_success("All canary stages passed, promoting candidate...")
        await self._log_info("Updating stable deployment to canary image...")

        # An interrupted patch can still land, so mark it before issuing.
        self._stable_image_touched = True

        outcome = await set_image_with_retries(
            self._collaborators.workloads,
            self._config.stable,
            self._config.container_name,
            self._config.candidate.image,
            retries=self._config.scale_retries,
            retry_interval=self._config.scale_retry_interval,
        )

        if not outcome.succeeded:
            return f"Promotion failed, could not update {self._config.stable.name} image: {outcome.error}"

        for workload, replicas in (
            (self._config.stable, self._config.total_replicas),
            (self._config.candidate, 0),
        ):
            outcome = await scale_with_retries(
                self._collaborators.workloads,
                workload,
                replicas,
                retries=self._config.scale_retries,
                retry_interval=self._config.scale_retry_interval,
            )

            if not outcome.succeeded:
                return f"Promotion failed, could not scale {workload.name} to {replicas}: {outcome.error}"

        return None

    async def _roll_back(self, failure: str) -> RunResult:
        self._machine.transition(RunState.rolling_back(), reason=failure)
        await self._log_error(f"{failure}. Rolling back.")

        exit_code = ExitCode.FAILED

        try:
            await self._rollback_manager.rollback(
                restore_image=self._stable_image_touched,
            )

        except RollbackIssuanceError as err:
            await self._log_error(str(err))
            exit_code = ExitCode.ROLLBACK_NOT_ISSUED

        self._machine.transition(RunState.failed(), reason=failure)

        if exit_code == ExitCode.ROLLBACK_NOT_ISSUED:
            await self._log_error("Canary release failed and the rollback could not be issued.")

        else:
            await self._log_error("Canary release failed and was rolled back.")

        return self._result(
            rolled_back=True,
            message=failure,
            exit_code=exit_code,
        )

    def _result(
        self,
        rolled_back: bool,
        message: str,
        exit_code: ExitCode,
    ) -> RunResult:
        return RunResult(
            state=self.state,
            rolled_back=rolled_back,
            last_stage_index=self._last_stage_index,
            message=message,
            exit_code=exit_code,
            history=self._machine.visited,
        )

    async def _log_info(self, message: str):
        await self._logger.log(ReleaseInfo(
            message=message,
            release=self._config.release_name,
            state=str(self.state),
        ))

    async def _log_success(self, message: str):
        await self._logger.log(ReleaseSuccess(
            message=message,
            release=self._config.release_name,
            state=str(self.state),
        ))

    async def _log_warning(self, message: str):
        await self._logger.log(ReleaseWarning(
            message=message,
            release=self._config.release_name,
            state=str(self.state),
        ))

    async def _log_error(self, message: str):
        await self._logger.log(ReleaseError(
            message=message,
            release=self._config.release_name,
            state=str(self.state),
        ))
