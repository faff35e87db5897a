import json
from typing import Any, Callable, Dict, List

import httpx

from flightdeck.config import Settings
from flightdeck.container import Target

Handler = Callable[[httpx.Request], httpx.Response]

SAMPLE_CONTAINERS: List[Dict[str, Any]] = [
    {
        "id": "handle-1",
        "worker_name": "worker-name-1",
        "pipeline_name": "pipeline-name",
        "type": "check",
        "resource_name": "git-repo",
    },
    {
        "id": "early-handle",
        "worker_name": "worker-name-1",
        "pipeline_name": "pipeline-name",
        "job_name": "job-name-1",
        "build_name": "3",
        "build_id": 123,
        "type": "get",
        "step_name": "git-repo",
        "attempt": "1.5",
    },
    {
        "id": "other-handle",
        "worker_name": "worker-name-2",
        "pipeline_name": "pipeline-name",
        "job_name": "job-name-2",
        "build_name": "2",
        "build_id": 122,
        "type": "task",
        "step_name": "unit-tests",
    },
    {
        "id": "post-handle",
        "worker_name": "worker-name-3",
        "build_id": 142,
        "type": "task",
        "step_name": "one-off",
    },
]


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {"api_url": "http://ci.test", "team": "main", "target": "ci"}
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


def make_target(handler: Handler, **overrides: Any) -> Target:
    return Target(make_settings(**overrides), transport=httpx.MockTransport(handler))


def sse_body(*events: Dict[str, Any], end: bool = True) -> bytes:
    """Encodes build events the way the service streams them."""
    chunks = []
    for i, event in enumerate(events):
        chunks.append(f"id: {i}\nevent: event\ndata: {json.dumps(event)}\n\n")
    if end:
        chunks.append("event: end\ndata:\n\n")
    return "".join(chunks).encode()


def log_event(payload: str) -> Dict[str, Any]:
    return {"event": "log", "version": "5.1", "data": {"origin": {"id": "step"}, "payload": payload, "time": 1}}


def status_event(status: str) -> Dict[str, Any]:
    return {"event": "status", "version": "1.0", "data": {"status": status, "time": 2}}
