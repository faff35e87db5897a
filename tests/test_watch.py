import asyncio
import io
import signal
from typing import AsyncIterator, Tuple
from unittest.mock import MagicMock

import httpx
import pytest
from rich.console import Console

from flightdeck.api.client import ApiClient
from flightdeck.domain.models import Build, JobRef
from flightdeck.events import BuildEvent
from flightdeck.exceptions import UnexpectedResponseError
from flightdeck.ui.eventstream import EventStreamRenderer
from flightdeck.watch import DETACH_EXIT_CODE, InterruptToken, WatchSession, WatchState

from tests.helpers import log_event, sse_body, status_event

BUILD = Build(id=123, name="7", job_name="unit", pipeline_name="main")


def _console(width: int = 200) -> Tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=width, highlight=False, color_system=None), buffer


def _events_client(body: bytes, seen: list) -> ApiClient:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=body)

    return ApiClient("http://ci.test", transport=httpx.MockTransport(handler))


class StallingRenderer(EventStreamRenderer):
    """Renders the first event, then blocks like a build that never finishes."""

    def __init__(self, console: Console) -> None:
        super().__init__(console)
        self.started = asyncio.Event()
        self.abandoned = False

    async def render(self, source: AsyncIterator[BuildEvent]) -> int:
        async for event in source:
            self.render_event(event)
            break
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.abandoned = True
            raise
        return 0


def _session(client: ApiClient, renderer: EventStreamRenderer, interrupt: InterruptToken, err: Console) -> WatchSession:
    return WatchSession(
        client=client,
        build=BUILD,
        job=JobRef(pipeline="main", job="unit"),
        interrupt=interrupt,
        renderer=renderer,
        err_console=err,
        target_name="ci",
    )


@pytest.mark.asyncio
async def test_completed_uses_renderer_exit_code() -> None:
    seen: list = []
    client = _events_client(sse_body(log_event("building\n"), status_event("failed")), seen)
    out, out_buffer = _console()
    err, err_buffer = _console()

    session = _session(client, EventStreamRenderer(out), InterruptToken(), err)
    assert session.state is WatchState.IDLE

    outcome = await session.run()
    await client.close()

    assert outcome.state is WatchState.COMPLETED
    assert outcome.exit_code == 1
    assert session.state is WatchState.COMPLETED
    assert seen == ["/api/v1/builds/123/events"]
    assert "building" in out_buffer.getvalue()
    assert err_buffer.getvalue() == ""


@pytest.mark.asyncio
async def test_completed_closes_event_source() -> None:
    client = _events_client(sse_body(status_event("succeeded")), [])
    out, _ = _console()
    err, _ = _console()
    renderer = EventStreamRenderer(out)

    sources = []
    original = client.build_events

    async def tracking_build_events(build_id: str):  # type: ignore[no-untyped-def]
        source = await original(build_id)
        sources.append(source)
        return source

    client.build_events = tracking_build_events  # type: ignore[method-assign]

    outcome = await _session(client, renderer, InterruptToken(), err).run()
    await client.close()

    assert outcome.exit_code == 0
    assert sources[0].closed


@pytest.mark.asyncio
async def test_interrupt_detaches_with_reattach_hint() -> None:
    client = _events_client(sse_body(log_event("step one\n"), end=False), [])
    out, out_buffer = _console()
    err, err_buffer = _console()
    renderer = StallingRenderer(out)
    interrupt = InterruptToken()

    session = _session(client, renderer, interrupt, err)
    task = asyncio.create_task(session.run())
    await asyncio.wait_for(renderer.started.wait(), timeout=5)
    interrupt.interrupt()
    outcome = await asyncio.wait_for(task, timeout=5)
    # Let the cancelled renderer unwind.
    for _ in range(50):
        if renderer.abandoned:
            break
        await asyncio.sleep(0.01)
    await client.close()

    assert outcome.state is WatchState.DETACHED
    assert outcome.exit_code == DETACH_EXIT_CODE == 2
    assert "step one" in out_buffer.getvalue()

    notice = err_buffer.getvalue()
    assert "detached, build is still running..." in notice
    assert "re-attach to it with:" in notice
    assert "flightdeck -t ci watch -j main/unit -b 7" in notice
    assert renderer.abandoned


@pytest.mark.asyncio
async def test_interrupt_before_stream_start_is_not_missed() -> None:
    client = _events_client(sse_body(log_event("never seen\n"), end=False), [])
    out, _ = _console()
    err, err_buffer = _console()
    interrupt = InterruptToken()
    interrupt.interrupt()

    outcome = await _session(client, StallingRenderer(out), interrupt, err).run()
    await asyncio.sleep(0.05)
    await client.close()

    assert outcome.state is WatchState.DETACHED
    assert outcome.exit_code == 2
    assert "watch -j main/unit -b 7" in err_buffer.getvalue()


@pytest.mark.asyncio
async def test_reattach_command_is_never_wrapped() -> None:
    client = _events_client(sse_body(log_event("never seen\n"), end=False), [])
    out, _ = _console()
    err, err_buffer = _console(width=80)
    interrupt = InterruptToken()
    interrupt.interrupt()

    session = WatchSession(
        client=client,
        build=Build(id=99, name="1234"),
        job=JobRef.parse("deploy-production-services/integration-tests-long"),
        interrupt=interrupt,
        renderer=StallingRenderer(out),
        err_console=err,
        target_name="my-ci-target",
    )
    outcome = await session.run()
    await asyncio.sleep(0.05)
    await client.close()

    command = "flightdeck -t my-ci-target watch -j deploy-production-services/integration-tests-long -b 1234"
    assert outcome.exit_code == 2
    assert session.reattach_command == command
    assert len(command) > 80
    assert f"    {command}\n" in err_buffer.getvalue()


@pytest.mark.asyncio
async def test_open_failure_propagates() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="")

    client = ApiClient("http://ci.test", transport=httpx.MockTransport(handler))
    out, _ = _console()
    err, _ = _console()

    with pytest.raises(UnexpectedResponseError):
        await _session(client, EventStreamRenderer(out), InterruptToken(), err).run()
    await client.close()


@pytest.mark.asyncio
async def test_session_runs_once() -> None:
    client = _events_client(sse_body(status_event("succeeded")), [])
    out, _ = _console()
    err, _ = _console()
    session = _session(client, EventStreamRenderer(out), InterruptToken(), err)

    await session.run()
    with pytest.raises(RuntimeError):
        await session.run()
    await client.close()


@pytest.mark.asyncio
async def test_interrupt_token() -> None:
    token = InterruptToken()
    assert not token.interrupted

    waiter = asyncio.create_task(token.wait())
    await asyncio.sleep(0)
    assert not waiter.done()

    token.interrupt()
    await asyncio.wait_for(waiter, timeout=1)
    assert token.interrupted


def test_install_signal_handlers() -> None:
    token = InterruptToken()
    loop = MagicMock()

    token.install_signal_handlers(loop=loop)

    registered = [c.args[0] for c in loop.add_signal_handler.call_args_list]
    assert registered == [signal.SIGINT, signal.SIGTERM]
    loop.add_signal_handler.call_args_list[0].args[1]()
    assert token.interrupted
