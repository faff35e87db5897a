# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import Any, List, NoReturn, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from flightdeck.domain.models import Build, Container, Job, Team
from flightdeck.events import BuildEventSource
from flightdeck.exceptions import InvalidResponseError, ServiceUnreachableError, UnexpectedResponseError
from flightdeck.utils.logger import logger

ModelT = TypeVar("ModelT", bound=BaseModel)


def _segment(value: str) -> str:
    return quote(value, safe="")


def _handle_transport_error(e: httpx.TransportError, context: str) -> NoReturn:
    """Helper to map httpx transport failures to domain exceptions."""
    try:
        url: Optional[str] = str(e.request.url)
    except RuntimeError:
        # .request is unset when the error did not come from a sent request
        url = None
    raise ServiceUnreachableError(f"{context}: could not reach {url or 'the service'}: {e}", url=url) from e


def _raise_for_response(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise UnexpectedResponseError(response.status_code, response.reason_phrase, response.text)


def _parse(model: Type[ModelT], payload: Any, context: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidResponseError(f"{context}: unexpected {model.__name__} payload: {e}") from e


def _parse_list(model: Type[ModelT], payload: Any, context: str) -> List[ModelT]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise InvalidResponseError(f"{context}: expected a list of {model.__name__}, got {type(payload).__name__}")
    return [_parse(model, item, context) for item in payload]


class ApiClient:
    """
    Async client for the orchestration service's /api/v1 surface.

    Usage::

        async with ApiClient("https://ci.example.com", token="...") as client:
            teams = await client.list_teams()
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        insecure: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            verify=not insecure,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._http.aclose()

    def team(self, name: str) -> "TeamClient":
        return TeamClient(self, name)

    async def request(self, method: str, path: str) -> Any:
        """
        Performs one request and returns the decoded JSON body.

        Raises:
            UnexpectedResponseError: For any non-2xx status.
            ServiceUnreachableError: For connection failures and timeouts.
        """
        logger.debug(f"{method} {path}")
        try:
            response = await self._http.request(method, f"/api/v1{path}")
        except httpx.TransportError as e:
            _handle_transport_error(e, f"{method} {path} failed")
        _raise_for_response(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(f"{method} {path}: response is not valid JSON: {e}") from e

    async def list_teams(self) -> List[Team]:
        payload = await self.request("GET", "/teams")
        return _parse_list(Team, payload, "GET /teams")

    async def build_events(self, build_id: str) -> BuildEventSource:
        """
        Opens the live event stream of a build. The caller owns the returned source and must close it.
        """
        path = f"/api/v1/builds/{_segment(build_id)}/events"
        logger.debug(f"GET {path} (stream)")
        request = self._http.build_request(
            "GET",
            path,
            headers={"Accept": "text/event-stream"},
            timeout=httpx.Timeout(self.timeout, read=None),
        )
        try:
            response = await self._http.send(request, stream=True)
        except httpx.TransportError as e:
            _handle_transport_error(e, f"opening event stream for build {build_id} failed")

        if not response.is_success:
            await response.aread()
            await response.aclose()
            _raise_for_response(response)

        return BuildEventSource(response, build_id)


class TeamClient:
    """Team-scoped calls; most operations on the service belong to exactly one team."""

    def __init__(self, api: ApiClient, name: str) -> None:
        self.api = api
        self.name = name

    def _path(self, suffix: str) -> str:
        return f"/teams/{_segment(self.name)}{suffix}"

    def _job_path(self, pipeline: str, job: str) -> str:
        return self._path(f"/pipelines/{_segment(pipeline)}/jobs/{_segment(job)}")

    async def create_job_build(self, pipeline: str, job: str) -> Build:
        payload = await self.api.request("POST", f"{self._job_path(pipeline, job)}/builds")
        build = _parse(Build, payload, f"creating a build of {pipeline}/{job}")
        logger.info(f"Created build {build.id} ({pipeline}/{job} #{build.name}) for team {self.name}")
        return build

    async def job(self, pipeline: str, job: str) -> Job:
        payload = await self.api.request("GET", self._job_path(pipeline, job))
        return _parse(Job, payload, f"job {pipeline}/{job}")

    async def job_build(self, pipeline: str, job: str, build_name: str) -> Build:
        payload = await self.api.request("GET", f"{self._job_path(pipeline, job)}/builds/{_segment(build_name)}")
        return _parse(Build, payload, f"build {pipeline}/{job} #{build_name}")

    async def list_containers(self) -> List[Container]:
        payload = await self.api.request("GET", self._path("/containers"))
        return _parse_list(Container, payload, f"containers of team {self.name}")
