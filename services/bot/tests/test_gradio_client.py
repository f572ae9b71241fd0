"""Gradio 客户端测试：基于 httpx MockTransport 验证接口描述、队列提交与事件流。"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from gradio_bot.domain.enums import CallingConvention, EventStage
from gradio_bot.domain.models import OMITTED, DataEvent, FileReference, ProgressItem, StatusEvent
from gradio_bot.infra.gradio.client import GradioClient, resolve_space_url

CONFIG = {
    "api_prefix": "/gradio_api",
    "space_id": "owner/demo",
    "components": [
        {"id": 1, "type": "textbox", "props": {"label": "prompt"}},
        {"id": 2, "type": "slider", "props": {"label": "steps", "minimum": 1, "maximum": 50, "value": 20}},
    ],
    "dependencies": [{"api_name": "noop", "id": 0}, {"api_name": "generate", "id": 3}],
}

INFO = {
    "named_endpoints": {
        "/generate": {
            "parameters": [
                {
                    "parameter_name": "prompt",
                    "parameter_has_default": False,
                    "label": "prompt",
                    "type": {"type": "string"},
                    "python_type": {"type": "str"},
                    "component": "Textbox",
                },
                {
                    "parameter_name": "steps",
                    "parameter_has_default": True,
                    "parameter_default": 20,
                    "label": "steps",
                    "type": {"type": "number"},
                    "python_type": {"type": "int"},
                    "component": "Slider",
                },
            ]
        }
    },
    "unnamed_endpoints": {},
}


def _sse(*messages: dict[str, Any]) -> str:
    return "".join(f"data: {json.dumps(message)}\n\n" for message in messages)


class FakeGradioServer:
    """按路径返回固定响应，并记录队列提交请求。"""

    def __init__(self, stream: str) -> None:
        self.stream = stream
        self.joins: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/config":
            return httpx.Response(200, json=CONFIG)
        if path == "/gradio_api/info":
            return httpx.Response(200, json=INFO)
        if path == "/gradio_api/queue/join":
            self.joins.append(json.loads(request.content))
            return httpx.Response(200, json={"event_id": "evt-1"})
        if path == "/gradio_api/queue/data":
            return httpx.Response(200, text=self.stream, headers={"content-type": "text/event-stream"})
        return httpx.Response(404, json={"detail": "not found"})


def _client(server: FakeGradioServer, **kwargs: Any) -> GradioClient:
    return GradioClient("https://demo.hf.space/", transport=httpx.MockTransport(server), **kwargs)


def test_schema_is_read_once_and_decoded() -> None:
    server = FakeGradioServer(_sse())
    client = _client(server)

    endpoints = client.endpoints()
    client.endpoints()
    components = client.components()

    assert client.base_url == "https://demo.hf.space"
    assert client.space_id == "owner/demo"
    assert client.api_prefix == "/gradio_api"
    assert list(endpoints) == ["/generate"]
    assert endpoints["/generate"].calling_convention is CallingConvention.named
    assert endpoints["/generate"].parameters[1].default == 20
    assert components[1].kind == "slider"
    assert components[1].value == 20
    assert [request.url.path for request in server.requests] == ["/config", "/gradio_api/info"]


def test_submit_streams_events_for_own_event_id() -> None:
    stream = _sse(
        {"msg": "estimation", "event_id": "evt-1", "rank": 0},
        {"msg": "heartbeat"},
        {"msg": "log", "event_id": "evt-other", "log": "not ours"},
        {"msg": "progress", "event_id": "evt-1", "progress_data": [{"index": 1, "length": 4, "unit": "steps"}]},
        {"msg": "process_completed", "event_id": "evt-1", "success": True, "output": {"data": ["ok"]}},
        {"msg": "log", "event_id": "evt-1", "log": "after completion"},
    )
    server = FakeGradioServer(stream)
    client = _client(server, hf_token="hf_secret")

    events = list(client.submit("/generate", {"prompt": "cat", "steps": OMITTED}))

    assert events == [
        StatusEvent(stage=EventStage.pending.value),
        StatusEvent(stage=EventStage.running.value, progress_items=(ProgressItem(index=1, length=4, unit="steps"),)),
        DataEvent(values=["ok"]),
    ]
    join = server.joins[0]
    assert join["data"] == ["cat", 20]
    assert join["fn_index"] == 3
    assert join["session_hash"]
    assert all(request.headers["Authorization"] == "Bearer hf_secret" for request in server.requests)


def test_predict_returns_terminal_or_error() -> None:
    completed = _client(
        FakeGradioServer(_sse({"msg": "process_completed", "event_id": "evt-1", "success": True, "output": {"data": [1]}}))
    )
    closed = _client(FakeGradioServer(_sse({"msg": "process_starts", "event_id": "evt-1"}, {"msg": "close_stream"})))

    assert completed.predict("/generate", ["x"]) == DataEvent(values=[1])
    assert closed.predict("/generate", ["x"]) == StatusEvent(stage=EventStage.error.value, message="no result received")


def test_submit_unknown_route_raises() -> None:
    client = _client(FakeGradioServer(_sse()))

    with pytest.raises(KeyError):
        list(client.submit("/missing", []))


def test_serialize_fills_defaults_and_file_references() -> None:
    client = _client(FakeGradioServer(_sse()))
    endpoint = client.endpoints()["/generate"]

    positional = client.serialize(endpoint, [FileReference(url="https://cdn/a.png", name="a.png")])

    assert positional == [
        {
            "path": "https://cdn/a.png",
            "url": "https://cdn/a.png",
            "orig_name": "a.png",
            "meta": {"_type": "gradio.FileData"},
        },
        20,
    ]


def test_http_errors_are_raised() -> None:
    def failing(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "sleeping"})

    client = GradioClient("https://demo.hf.space", transport=httpx.MockTransport(failing))

    with pytest.raises(httpx.HTTPStatusError):
        client.config()


def test_interceptors_run_before_each_request() -> None:
    server = FakeGradioServer(_sse())
    seen: list[str] = []

    def first(request: httpx.Request) -> None:
        seen.append(f"first:{request.url.path}")

    def second(request: httpx.Request) -> None:
        request.headers["X-Test"] = "1"

    client = _client(server, interceptors=[first])

    assert client.add_interceptor(second) is True
    assert client.add_interceptor(second) is False
    assert client.has_interceptor(first)
    client.config()

    assert seen == ["first:/config"]
    assert server.requests[0].headers["X-Test"] == "1"


def test_closed_client_rejects_requests() -> None:
    client = _client(FakeGradioServer(_sse()))
    client.close()
    client.close()

    with pytest.raises(RuntimeError):
        client.config()


def test_resolve_space_url_keeps_full_urls() -> None:
    assert resolve_space_url("https://my-app.example.com/") == "https://my-app.example.com"
