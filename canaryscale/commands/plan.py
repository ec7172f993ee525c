import click

from canaryscale.env import Env, load_env
from canaryscale.release.exceptions import CanaryError
from canaryscale.release.models import ReleaseConfig, ReplicaPlan


def plan_release(env_file: str | None = None) -> int:
    try:
        config = ReleaseConfig.from_env(load_env(Env, env_file))

    except (CanaryError, ValueError) as err:
        click.echo(f"Invalid release configuration: {err}", err=True)
        return 1

    click.echo(f"Release: {config.release_name}")
    click.echo(f"Stable image: {config.stable.image}")
    click.echo(f"Canary image: {config.candidate.image}")
    click.echo(f"Total replicas: {config.total_replicas}\n")

    for stage_index, share in enumerate(config.stages):
        plan = ReplicaPlan.for_share(share, config.total_replicas)
        click.echo(
            f"Stage {stage_index}: {share:>3}% - stable replicas: {plan.stable_replicas}, canary replicas: {plan.candidate_replicas}"
        )

    return 0
