# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Attaching to a build's live output.

A WatchSession races the event renderer against an InterruptToken. Whichever
finishes first decides the outcome: the renderer's exit code, or a detach
with DETACH_EXIT_CODE. Detaching never stops the build on the server.
"""

import asyncio
import signal
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from rich.console import Console

from flightdeck.api.client import ApiClient
from flightdeck.domain.models import Build, JobRef
from flightdeck.ui.eventstream import EventStreamRenderer
from flightdeck.utils.logger import logger

DETACH_EXIT_CODE = 2


class WatchState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    DETACHED = "detached"


@dataclass
class WatchOutcome:
    state: WatchState
    exit_code: int


class InterruptToken:
    """
    Cancellation token for a watch.
    Tests set it directly; the CLI wires it to SIGINT/SIGTERM.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def interrupted(self) -> bool:
        return self._event.is_set()

    def interrupt(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def install_signal_handlers(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        signals: Iterable[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
    ) -> None:
        """
        Routes the given signals to this token. Must be called from inside the running loop.
        """
        loop = loop or asyncio.get_running_loop()
        for sig in signals:
            try:
                loop.add_signal_handler(sig, self.interrupt)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.interrupt))


class WatchSession:
    """
    Streams one build's events until the build finishes or the user detaches.
    """

    def __init__(
        self,
        client: ApiClient,
        build: Build,
        job: JobRef,
        interrupt: InterruptToken,
        renderer: EventStreamRenderer,
        err_console: Optional[Console] = None,
        target_name: str = "default",
    ) -> None:
        self.client = client
        self.build = build
        self.job = job
        self.interrupt = interrupt
        self.renderer = renderer
        self.err_console = err_console or Console(stderr=True)
        self.target_name = target_name
        self.state = WatchState.IDLE

    @property
    def reattach_command(self) -> str:
        return f"flightdeck -t {self.target_name} watch -j {self.job} -b {self.build.name}"

    async def run(self) -> WatchOutcome:
        if self.state is not WatchState.IDLE:
            raise RuntimeError(f"watch session already {self.state.value}")

        # Listener goes first so an interrupt raised before streaming starts still wins.
        listener = asyncio.ensure_future(self.interrupt.wait())
        streamer = asyncio.ensure_future(self._stream())
        self.state = WatchState.STREAMING

        done, _ = await asyncio.wait({listener, streamer}, return_when=asyncio.FIRST_COMPLETED)

        if streamer in done:
            listener.cancel()
            exit_code = streamer.result()
            self.state = WatchState.COMPLETED
            logger.debug(f"Build {self.build.id} finished streaming with exit code {exit_code}")
            return WatchOutcome(self.state, exit_code)

        # Abandon the renderer mid-stream; closing the source is best-effort.
        streamer.cancel()
        self.state = WatchState.DETACHED
        self._print_detach_notice()
        logger.debug(f"Detached from build {self.build.id}")
        return WatchOutcome(self.state, DETACH_EXIT_CODE)

    async def _stream(self) -> int:
        self.renderer.console.line()
        source = await self.client.build_events(str(self.build.id))
        try:
            return await self.renderer.render(source)
        finally:
            await source.close()

    def _print_detach_notice(self) -> None:
        self.err_console.print("\ndetached, build is still running...", highlight=False)
        self.err_console.print("re-attach to it with:\n", highlight=False)
        self.err_console.print(
            f"    {self.reattach_command}\n", style="bold", markup=False, highlight=False, soft_wrap=True
        )
