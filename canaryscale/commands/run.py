import asyncio
import contextlib
import signal

import click
import uvloop
from kubernetes.config import ConfigException

from canaryscale.env import Env, load_env
from canaryscale.logging import Logger, LoggingConfig
from canaryscale.release.cancellation import CancellationToken
from canaryscale.release.cluster import (
    Collaborators,
    HTTPTrafficProber,
    KubernetesCluster,
)
from canaryscale.release.controller import CanaryController
from canaryscale.release.exceptions import CanaryError, RunLeaseHeldError
from canaryscale.release.lease import RunLease
from canaryscale.release.logging_models import ReleaseError, ReleaseInfo
from canaryscale.release.models import ExitCode, ReleaseConfig, RunResult


LOG_TEMPLATE = "{timestamp} - [{level}] - {message}"


def configure_logging(env: Env, log_level: str | None = None) -> Logger:
    logging_config = LoggingConfig()
    logging_config.update(
        log_level=log_level or env.CANARY_LOG_LEVEL,
        log_output="stdout",
    )

    logger = Logger()
    logger.configure(
        template=LOG_TEMPLATE,
        path=env.CANARY_LOG_PATH,
    )

    return logger


def describe_outcome(result: RunResult) -> str:
    if result.promoted:
        return "promoted"

    if result.rolled_back:
        return "rolled back"

    return "aborted before any change"


def run_release(
    env_file: str | None = None,
    log_level: str | None = None,
    kubeconfig: str | None = None,
) -> int:
    try:
        env = load_env(Env, env_file)

    except ValueError as err:
        click.echo(f"Invalid release configuration: {err}", err=True)
        return int(ExitCode.FAILED)

    loop = uvloop.new_event_loop()
    asyncio.set_event_loop(loop)

    logger = configure_logging(env, log_level)
    interrupt = CancellationToken()

    for signame in ("SIGINT", "SIGTERM"):
        loop.add_signal_handler(
            getattr(signal, signame),
            lambda signame=signame: interrupt.cancel(signame),
        )

    try:
        exit_code = loop.run_until_complete(
            _run_release(
                env,
                logger,
                interrupt,
                kubeconfig=kubeconfig,
            )
        )

    finally:
        loop.run_until_complete(logger.close())

        for signame in ("SIGINT", "SIGTERM"):
            loop.remove_signal_handler(getattr(signal, signame))

        loop.close()

    return int(exit_code)


async def _run_release(
    env: Env,
    logger: Logger,
    interrupt: CancellationToken,
    kubeconfig: str | None = None,
) -> ExitCode:
    try:
        config = ReleaseConfig.from_env(env)

    except (CanaryError, ValueError) as err:
        await logger.log(ReleaseError(
            message=f"Invalid release configuration: {err}",
            release=env.CANARY_NAMESPACE,
            state="initializing",
        ))

        return ExitCode.FAILED

    lease = (
        RunLease.for_config(config)
        if config.run_lease_enabled
        else contextlib.nullcontext()
    )

    try:
        async with lease:
            try:
                cluster = KubernetesCluster.connect(
                    kubeconfig=kubeconfig,
                    poll_interval=config.convergence_poll_interval,
                )

            except ConfigException as err:
                await logger.log(ReleaseError(
                    message=f"Could not load cluster configuration: {err}",
                    release=config.release_name,
                    state="initializing",
                ))

                return ExitCode.FAILED

            async with HTTPTrafficProber() as prober:
                controller = CanaryController(
                    config,
                    Collaborators(
                        workloads=cluster,
                        services=cluster,
                        traffic=prober,
                        logs=cluster,
                    ),
                    logger=logger,
                    interrupt=interrupt,
                )

                result = await controller.run()

                await logger.log(ReleaseInfo(
                    message=f"Canary release {describe_outcome(result)} after {' -> '.join([str(state) for state in result.history])}",
                    release=config.release_name,
                    state=str(result.state),
                ))

                return result.exit_code

    except RunLeaseHeldError as err:
        await logger.log(ReleaseError(
            message=str(err),
            release=config.release_name,
            state="initializing",
        ))

        return ExitCode.FAILED
