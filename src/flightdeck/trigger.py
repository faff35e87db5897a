# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import Optional

import typer

from flightdeck.container import Target
from flightdeck.domain.models import Build
from flightdeck.exceptions import ApiError
from flightdeck.utils.logger import logger

TEAM_HINT = "hint: are you missing '--team' to specify the team for the build?"


class BuildTrigger:
    """
    Creates a new build of a job.
    """

    def __init__(self, target: Target) -> None:
        self.target = target

    async def trigger(self, pipeline: str, job: str, team: Optional[str] = None) -> Build:
        """
        Triggers a build of pipeline/job under the given team, or the target's default team.

        Args:
            pipeline: Pipeline name.
            job: Job name.
            team: Explicit team; when omitted a failed request also prints a hint about --team.

        Returns:
            The created Build.

        Raises:
            ApiError: If the service rejects the request or cannot be reached.
        """
        acting_team = self.target.team(team)
        logger.info(f"Triggering {pipeline}/{job} for team {acting_team.name}")

        try:
            build = await acting_team.create_job_build(pipeline, job)
        except ApiError:
            if team is None:
                typer.echo(TEAM_HINT)
            raise

        typer.echo(f"started {pipeline}/{job} #{build.name}")
        return build
