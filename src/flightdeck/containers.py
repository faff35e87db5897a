# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from flightdeck.container import Target
from flightdeck.domain.models import Container
from flightdeck.utils.logger import logger


class ScopeKind(str, Enum):
    TEAM = "team"
    DEFAULT = "default"
    ALL = "all"


@dataclass(frozen=True)
class ContainerScope:
    kind: ScopeKind
    team: Optional[str] = None

    @classmethod
    def named(cls, team: str) -> "ContainerScope":
        return cls(ScopeKind.TEAM, team)

    @classmethod
    def default(cls) -> "ContainerScope":
        return cls(ScopeKind.DEFAULT)

    @classmethod
    def all_teams(cls) -> "ContainerScope":
        return cls(ScopeKind.ALL)

    @classmethod
    def from_flags(cls, team: Optional[str], all_teams: bool) -> "ContainerScope":
        if all_teams:
            return cls.all_teams()
        if team:
            return cls.named(team)
        return cls.default()


class ContainerAggregator:
    """
    Lists containers for one team, the default team, or every team the user can see.
    Any failing query aborts the whole listing.
    """

    def __init__(self, target: Target) -> None:
        self.target = target

    async def list_containers(self, scope: ContainerScope) -> List[Container]:
        if scope.kind is ScopeKind.ALL:
            teams = await self.target.client().list_teams()
            logger.debug(f"Listing containers for {len(teams)} teams")
            containers: List[Container] = []
            # Sequential: output follows team order and the first failure stops the listing.
            for team in teams:
                containers.extend(await self.target.team(team.name).list_containers())
            return containers

        team_name = scope.team if scope.kind is ScopeKind.TEAM else None
        return await self.target.team(team_name).list_containers()
