# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from typing import AsyncIterator, Dict, Optional, Tuple

from rich.console import Console
from rich.text import Text

from flightdeck.events import BuildEvent, EventType
from flightdeck.exceptions import StreamFailure
from flightdeck.utils.logger import logger

EXIT_SUCCEEDED = 0
EXIT_FAILED = 1
EXIT_ERRORED = 3
EXIT_ABORTED = 4
EXIT_STREAM_ERROR = 255

# status -> (label, style, exit code)
_TERMINAL_STATUSES: Dict[str, Tuple[str, str, int]] = {
    "succeeded": ("succeeded", "green", EXIT_SUCCEEDED),
    "failed": ("failed", "red", EXIT_FAILED),
    "errored": ("errored", "magenta", EXIT_ERRORED),
    "aborted": ("interrupted", "yellow", EXIT_ABORTED),
}

_INITIALIZE_EVENTS = {
    EventType.INITIALIZE_TASK,
    EventType.INITIALIZE_GET,
    EventType.INITIALIZE_PUT,
    EventType.INITIALIZE_CHECK,
}


class EventStreamRenderer:
    """
    Renders build events to a terminal as they arrive.
    Each event is written and flushed on its own, so abandoning the render
    between two events never leaves partial output behind.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    async def render(self, source: AsyncIterator[BuildEvent]) -> int:
        """
        Consumes the source until a terminal status or the end of the stream.

        Returns:
            0 succeeded, 1 failed, 3 errored, 4 aborted, 255 when the stream ends
            abnormally (no terminal status, transport or parse error).
        """
        try:
            async for event in source:
                exit_code = self.render_event(event)
                if exit_code is not None:
                    return exit_code
        except StreamFailure as e:
            logger.error(f"Event stream failed: {e}")
            self.console.print(Text(str(e), style="red"))
            return EXIT_STREAM_ERROR

        logger.warning("Event stream ended without a build status")
        return EXIT_STREAM_ERROR

    def render_event(self, event: BuildEvent) -> Optional[int]:
        """
        Writes one event. Returns an exit code once the build reached a terminal status.
        """
        data = event.data
        event_type = event.type

        if event_type == EventType.LOG:
            self._write_raw(str(data.get("payload", "")))
        elif event_type == EventType.ERROR:
            self.console.print(Text(str(data.get("message", "")), style="red"), soft_wrap=True)
        elif event_type == EventType.SELECTED_WORKER:
            self.console.print(Text(f"selected worker: {data.get('selected_worker', '')}", style="dim"))
        elif event_type in _INITIALIZE_EVENTS:
            self.console.print(Text("initializing", style="bold"))
        elif event_type == EventType.START_TASK:
            self.console.print(Text("running task", style="bold"))
        elif event_type == EventType.FINISH_TASK:
            exit_status = data.get("exit_status", 0)
            if exit_status:
                self.console.print(Text(f"task exited with status {exit_status}", style="red"))
        elif event_type == EventType.STATUS:
            status = str(data.get("status", ""))
            terminal = _TERMINAL_STATUSES.get(status)
            if terminal is not None:
                label, style, exit_code = terminal
                self.console.print(Text(label, style=style))
                return exit_code
        else:
            logger.debug(f"Skipping event {event.event} (version {event.version})")

        return None

    def _write_raw(self, payload: str) -> None:
        # Bypasses rich so carriage returns and other control codes reach the terminal.
        stream = self.console.file
        stream.write(payload)
        stream.flush()
