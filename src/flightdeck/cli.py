# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import asyncio
import sys
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from flightdeck.config import get_settings
from flightdeck.container import Target
from flightdeck.containers import ContainerAggregator, ContainerScope
from flightdeck.domain.models import Build, JobRef
from flightdeck.exceptions import BuildNotFoundError, FlightdeckError, TargetValidationError
from flightdeck.trigger import BuildTrigger
from flightdeck.ui.containers import print_table, render_json
from flightdeck.ui.eventstream import EventStreamRenderer
from flightdeck.utils.logger import configure_logging, logger
from flightdeck.watch import InterruptToken, WatchSession

app = typer.Typer(
    name="flightdeck",
    help="flightdeck: trigger, watch and inspect builds on the orchestration service",
    add_completion=False,
    no_args_is_help=True,
)

JOB_OPTION_HELP = "Name of a job, as PIPELINE/JOB."
TEAM_OPTION_HELP = "Team to act on instead of the target's default team."


def _make_target(name: Optional[str]) -> Target:
    """
    Loads the settings and builds the Target for this invocation.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        raise TargetValidationError(f"invalid configuration: {e}") from e
    configure_logging(settings.log_level)
    return Target(settings, name=name)


def _fail(e: FlightdeckError) -> NoReturn:
    logger.debug(f"{type(e).__name__}: {e}")
    typer.echo(f"error: {e}", err=True)
    sys.exit(1)


async def _watch_build(target: Target, build: Build, job: JobRef) -> int:
    interrupt = InterruptToken()
    interrupt.install_signal_handlers()

    session = WatchSession(
        client=target.client(),
        build=build,
        job=job,
        interrupt=interrupt,
        renderer=EventStreamRenderer(Console(highlight=False)),
        err_console=Console(stderr=True, highlight=False),
        target_name=target.name,
    )
    outcome = await session.run()
    return outcome.exit_code


async def _trigger_job(target: Target, job: JobRef, watch: bool, team: Optional[str]) -> int:
    try:
        build = await BuildTrigger(target).trigger(job.pipeline, job.job, team)
        if not watch:
            return 0
        return await _watch_build(target, build, job)
    finally:
        await target.close()


async def _find_build(target: Target, job: JobRef, build_name: Optional[str], team: Optional[str]) -> Build:
    team_client = target.team(team)
    if build_name:
        return await team_client.job_build(job.pipeline, job.job, build_name)

    details = await team_client.job(job.pipeline, job.job)
    build = details.next_build or details.finished_build
    if build is None:
        raise BuildNotFoundError(f"job {job} has no builds")
    return build


async def _watch_job(target: Target, job: JobRef, build_name: Optional[str], team: Optional[str]) -> int:
    try:
        build = await _find_build(target, job, build_name, team)
        return await _watch_build(target, build, job)
    finally:
        await target.close()


async def _list_containers(target: Target, scope: ContainerScope, json_output: bool) -> None:
    try:
        containers = await ContainerAggregator(target).list_containers(scope)
    finally:
        await target.close()

    # Nothing is printed unless every query succeeded.
    if json_output:
        typer.echo(render_json(containers))
    else:
        print_table(containers, Console(highlight=False))


@app.callback()
def main_callback(
    ctx: typer.Context,
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Target name shown in re-attach hints."),
) -> None:
    """
    Client for the build orchestration service.
    """
    ctx.obj = {"target": target}


@app.command(name="trigger-job")
def trigger_job(
    ctx: typer.Context,
    job: str = typer.Option(..., "--job", "-j", metavar="PIPELINE/JOB", help=JOB_OPTION_HELP),
    watch: bool = typer.Option(False, "--watch", "-w", help="Start watching the build output."),
    team: Optional[str] = typer.Option(None, "--team", "-n", help=TEAM_OPTION_HELP),
) -> None:
    """
    Starts a build of a job.
    """
    try:
        job_ref = JobRef.parse(job)
        target = _make_target((ctx.obj or {}).get("target"))
        target.validate()
        exit_code = asyncio.run(_trigger_job(target, job_ref, watch, team))
    except FlightdeckError as e:
        _fail(e)

    if exit_code != 0:
        sys.exit(exit_code)


@app.command(name="watch")
def watch(
    ctx: typer.Context,
    job: str = typer.Option(..., "--job", "-j", metavar="PIPELINE/JOB", help=JOB_OPTION_HELP),
    build: Optional[str] = typer.Option(None, "--build", "-b", help="Build name; defaults to the job's current build."),
    team: Optional[str] = typer.Option(None, "--team", "-n", help=TEAM_OPTION_HELP),
) -> None:
    """
    Attaches to the live output of a build.
    """
    try:
        job_ref = JobRef.parse(job)
        target = _make_target((ctx.obj or {}).get("target"))
        target.validate()
        exit_code = asyncio.run(_watch_job(target, job_ref, build, team))
    except FlightdeckError as e:
        _fail(e)

    if exit_code != 0:
        sys.exit(exit_code)


@app.command(name="containers")
def containers(
    ctx: typer.Context,
    team: Optional[str] = typer.Option(None, "--team", "-n", help="List containers of this team."),
    all_teams: bool = typer.Option(False, "--all-teams", "-a", help="List containers of every team."),
    json_output: bool = typer.Option(False, "--json", help="Print the containers as JSON."),
) -> None:
    """
    Lists the live containers.
    """
    try:
        target = _make_target((ctx.obj or {}).get("target"))
        target.validate()
        asyncio.run(_list_containers(target, ContainerScope.from_flags(team, all_teams), json_output))
    except FlightdeckError as e:
        _fail(e)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
