# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

import json
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from flightdeck.exceptions import StreamFailure
from flightdeck.protocols.sse import ServerSentEvent, ServerSentEventDecoder
from flightdeck.utils.logger import logger


class EventType(str, Enum):
    STATUS = "status"
    LOG = "log"
    ERROR = "error"
    SELECTED_WORKER = "selected-worker"
    INITIALIZE = "initialize"
    INITIALIZE_TASK = "initialize-task"
    INITIALIZE_GET = "initialize-get"
    INITIALIZE_PUT = "initialize-put"
    INITIALIZE_CHECK = "initialize-check"
    START_TASK = "start-task"
    FINISH_TASK = "finish-task"
    FINISH_GET = "finish-get"
    FINISH_PUT = "finish-put"


class BuildEvent(BaseModel):
    """One event of a build's live output, as carried by the event stream."""

    event: str = Field(..., description="Event type, see EventType.")
    version: str = Field(default="", description="Payload schema version.")
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def type(self) -> Optional[EventType]:
        try:
            return EventType(self.event)
        except ValueError:
            return None


class BuildEventSource:
    """
    Lazy, ordered sequence of BuildEvents read from a streaming HTTP response.
    Iteration stops at the stream's end marker; transport or decode errors
    raise StreamFailure.
    """

    def __init__(self, response: httpx.Response, build_id: str) -> None:
        self.build_id = build_id
        self._response = response
        self._lines: AsyncIterator[str] = response.aiter_lines()
        self._decoder = ServerSentEventDecoder()
        self._pending: List[ServerSentEvent] = []
        self._ended = False
        self.closed = False

    def __aiter__(self) -> "BuildEventSource":
        return self

    async def __anext__(self) -> BuildEvent:
        event = await self.next_event()
        if event is None:
            raise StopAsyncIteration
        return event

    async def next_event(self) -> Optional[BuildEvent]:
        """
        Returns the next event, or None once the stream has ended.
        """
        while True:
            while not self._pending:
                if self._ended:
                    return None
                try:
                    line = await self._lines.__anext__()
                except StopAsyncIteration:
                    self._ended = True
                    self._pending.extend(self._decoder.flush())
                    if not self._pending:
                        return None
                    break
                except httpx.HTTPError as e:
                    raise StreamFailure(f"event stream for build {self.build_id} broke: {e}") from e
                self._pending.extend(self._decoder.feed_line(line))

            sse = self._pending.pop(0)
            if sse.event == "end":
                logger.debug(f"End of event stream for build {self.build_id}")
                self._ended = True
                self._pending.clear()
                return None
            if sse.event not in ("event", "message"):
                continue

            try:
                return BuildEvent.model_validate(json.loads(sse.data))
            except (json.JSONDecodeError, ValidationError) as e:
                raise StreamFailure(f"failed to parse next event: {e}") from e

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._response.aclose()
