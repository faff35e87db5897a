# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import Optional

import httpx

from flightdeck.api.client import ApiClient, TeamClient
from flightdeck.config import Settings, get_settings
from flightdeck.exceptions import TargetValidationError
from flightdeck.utils.logger import logger


class Target:
    """
    Wires the configured target into API clients.
    One Target, and at most one ApiClient, per invocation.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.name = name or self.settings.target
        self._transport = transport
        self._client: Optional[ApiClient] = None

    @property
    def team_name(self) -> str:
        return self.settings.team

    def validate(self) -> None:
        """
        Checks the target can be used before any network call is made.

        Raises:
            TargetValidationError: If the API URL is not configured.
        """
        if not self.settings.api_url:
            raise TargetValidationError(
                f"target '{self.name}' has no API URL; set FLIGHTDECK_API_URL to the orchestration service"
            )

    def client(self) -> ApiClient:
        if self._client is None:
            self.validate()
            assert self.settings.api_url is not None
            token = self.settings.token.get_secret_value() if self.settings.token else None
            logger.debug(f"Connecting to {self.settings.api_url} as target '{self.name}'")
            self._client = ApiClient(
                self.settings.api_url,
                token=token,
                insecure=self.settings.insecure,
                timeout=self.settings.request_timeout,
                transport=self._transport,
            )
        return self._client

    def team(self, name: Optional[str] = None) -> TeamClient:
        """Returns the named team, or the target's default team."""
        return self.client().team(name or self.team_name)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
