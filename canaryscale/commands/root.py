import sys

import click

from .plan import plan_release
from .run import run_release


@click.group(help="Progressive canary releases for Kubernetes workloads.")
def cli():
    pass


@cli.command(help="Run a canary release until it is promoted or rolled back.")
@click.option("--env-file", default=None, type=str, help="Path to a .env file with CANARY_* settings.")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(
        ["trace", "debug", "info", "success", "warn", "error", "critical", "fatal"],
        case_sensitive=False,
    ),
)
@click.option("--kubeconfig", default=None, type=str, help="Kubeconfig file, in-cluster config is tried first when omitted.")
def run(
    env_file: str | None,
    log_level: str | None,
    kubeconfig: str | None,
):
    sys.exit(
        run_release(
            env_file=env_file,
            log_level=log_level.lower() if log_level else None,
            kubeconfig=kubeconfig,
        )
    )


@cli.command(help="Print the replica plan of every stage without contacting the cluster.")
@click.option("--env-file", default=None, type=str, help="Path to a .env file with CANARY_* settings.")
def plan(env_file: str | None):
    sys.exit(plan_release(env_file=env_file))
