# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from dataclasses import dataclass
from typing import Iterator, List, Optional


@dataclass
class ServerSentEvent:
    event: str
    data: str
    id: Optional[str] = None


class ServerSentEventDecoder:
    """
    Sans-I/O decoder for a text/event-stream body.
    Feed it lines (without their terminator) and it yields complete events.
    """

    def __init__(self) -> None:
        self._event = ""
        self._data: List[str] = []
        self._last_id: Optional[str] = None

    def feed_line(self, line: str) -> Iterator[ServerSentEvent]:
        """
        Feeds one line of the stream.
        Yields an event when a blank line completes a message.
        """
        line = line.rstrip("\r")

        if not line:
            if self._data or self._event:
                yield ServerSentEvent(event=self._event or "message", data="\n".join(self._data), id=self._last_id)
            self._event = ""
            self._data = []
            return

        if line.startswith(":"):
            # Comment / keep-alive
            return

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            self._last_id = value
        # "retry" and unknown fields are ignored

    def flush(self) -> Iterator[ServerSentEvent]:
        """Yields a trailing event that was not followed by a blank line."""
        yield from self.feed_line("")
