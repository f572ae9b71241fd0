"""Gradio HTTP 客户端：封装接口描述读取、队列提交与进度事件流消费。"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from typing import Any
from uuid import uuid4

import httpx

from gradio_bot.domain.enums import EventStage
from gradio_bot.domain.models import (
    OMITTED,
    ComponentMeta,
    DataEvent,
    EndpointDescriptor,
    FileReference,
    ProgressEvent,
    StatusEvent,
)
from gradio_bot.infra.gradio.events import CLOSE_MESSAGE, decode_message, iter_sse_payloads
from gradio_bot.infra.gradio.schema import decode_components, decode_endpoints, resolve_fn_index

RequestInterceptor = Callable[[httpx.Request], None]

logger = logging.getLogger(__name__)


def resolve_space_url(space: str, *, hf_token: str | None = None, hf_api_base_url: str = "https://huggingface.co") -> str:
    """把 owner/name 形式的 Space 标识解析为服务地址，完整 URL 原样返回。"""
    if space.startswith(("http://", "https://")):
        return space.rstrip("/")
    headers = {"Authorization": f"Bearer {hf_token}"} if hf_token else {}
    started = time.perf_counter()
    try:
        response = httpx.get(f"{hf_api_base_url.rstrip('/')}/api/spaces/{space}/host", headers=headers, timeout=30)
        response.raise_for_status()
    except Exception as exc:
        logger.error(
            "space host lookup failed",
            extra={
                "event": "gradio.space.resolve.failed",
                "external_service": "huggingface",
                "op": "space.host",
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "error_type": type(exc).__name__,
                "error": str(exc),
                "payload_preview": {"space": space},
            },
        )
        raise
    host = response.json().get("host")
    if not host:
        raise RuntimeError(f"missing host for space: {space}")
    return str(host).rstrip("/")


class GradioClient:
    """Gradio 同步 HTTP 客户端封装。"""

    def __init__(
        self,
        base_url: str,
        *,
        hf_token: str | None = None,
        interceptors: Sequence[RequestInterceptor] = (),
        timeout_seconds: int = 30,
        stream_read_timeout_seconds: int = 600,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._stream_read_timeout_seconds = stream_read_timeout_seconds
        self._closed = False
        self._interceptors: list[RequestInterceptor] = list(interceptors)
        headers = {"Authorization": f"Bearer {hf_token}"} if hf_token else {}
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers=headers,
            follow_redirects=True,
            event_hooks={"request": list(self._interceptors)},
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
            transport=transport,
        )
        self._config: dict[str, Any] | None = None
        self._info: dict[str, Any] | None = None
        self._endpoints: dict[str, EndpointDescriptor] | None = None

    @classmethod
    def connect(
        cls,
        space: str,
        *,
        hf_token: str | None = None,
        hf_api_base_url: str = "https://huggingface.co",
        **kwargs: Any,
    ) -> GradioClient:
        """解析 Space 地址并创建客户端。"""
        base_url = resolve_space_url(space, hf_token=hf_token, hf_api_base_url=hf_api_base_url)
        return cls(base_url, hf_token=hf_token, **kwargs)

    @property
    def base_url(self) -> str:
        return self._base_url

    def add_interceptor(self, interceptor: RequestInterceptor) -> bool:
        """安装请求拦截器；已安装过同一个拦截器时返回 False。"""
        if interceptor in self._interceptors:
            return False
        self._interceptors.append(interceptor)
        self._client.event_hooks = {**self._client.event_hooks, "request": list(self._interceptors)}
        return True

    def has_interceptor(self, interceptor: RequestInterceptor) -> bool:
        return interceptor in self._interceptors

    def _client_or_raise(self) -> httpx.Client:
        if self._closed:
            raise RuntimeError("GradioClient is already closed")
        return self._client

    def close(self) -> None:
        """关闭底层 HTTP 客户端连接池。"""
        if self._closed:
            return
        self._client.close()
        self._closed = True

    def _request(
        self,
        *,
        method: str,
        path: str,
        op: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        payload_preview: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """发送 HTTP 请求并记录结构化日志。"""
        started = time.perf_counter()
        try:
            response = self._client_or_raise().request(method, path, params=params, json=json_body)
            response.raise_for_status()
        except Exception as exc:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            status_code = None
            if isinstance(exc, httpx.HTTPStatusError) and exc.response is not None:
                status_code = exc.response.status_code
            logger.error(
                "gradio request failed",
                extra={
                    "event": "gradio.request.failed",
                    "external_service": "gradio",
                    "op": op,
                    "duration_ms": duration_ms,
                    "status_code": status_code,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    "payload_preview": payload_preview,
                },
            )
            raise
        return response

    def config(self) -> dict[str, Any]:
        """读取应用配置（含组件与依赖列表），结果缓存。"""
        if self._config is None:
            self._config = self._request(method="GET", path="/config", op="config").json()
        return self._config

    @property
    def api_prefix(self) -> str:
        # 新版本服务端把接口挂在 /gradio_api 下，旧版本为空前缀。
        return str(self.config().get("api_prefix") or "").rstrip("/")

    @property
    def space_id(self) -> str | None:
        value = self.config().get("space_id")
        return str(value) if value else None

    def view_api(self) -> dict[str, Any]:
        """读取接口描述，结果缓存。"""
        if self._info is None:
            self._info = self._request(method="GET", path=f"{self.api_prefix}/info", op="info").json()
        return self._info

    def endpoints(self) -> dict[str, EndpointDescriptor]:
        if self._endpoints is None:
            self._endpoints = decode_endpoints(self.view_api())
        return self._endpoints

    def components(self) -> list[ComponentMeta]:
        return decode_components(self.config())

    def serialize(self, endpoint: EndpointDescriptor, data: list[Any] | dict[str, Any]) -> list[Any]:
        """把位置或具名负载转换为按参数顺序排列的数组，缺省槽位取参数默认值。"""
        if isinstance(data, dict):
            values = [data.get(param.parameter_name or "", OMITTED) for param in endpoint.parameters]
        else:
            values = list(data)
            values.extend([OMITTED] * (len(endpoint.parameters) - len(values)))
        serialized: list[Any] = []
        for index, value in enumerate(values):
            if value is OMITTED:
                value = endpoint.parameters[index].default if index < len(endpoint.parameters) else None
            serialized.append(self._serialize_value(value))
        return serialized

    @staticmethod
    def _serialize_value(value: Any) -> Any:
        if isinstance(value, FileReference):
            return {
                "path": value.url,
                "url": value.url,
                "orig_name": value.name,
                "meta": {"_type": "gradio.FileData"},
            }
        return value

    def submit(self, route: str, data: list[Any] | dict[str, Any]) -> Iterator[ProgressEvent]:
        """加入队列并惰性产出进度事件，遇到终态事件后停止。"""
        endpoint = self.endpoints().get(route)
        if endpoint is None:
            raise KeyError(f"unknown endpoint: {route}")
        fn_index = resolve_fn_index(self.config(), route)
        session_hash = uuid4().hex[:11]
        response = self._request(
            method="POST",
            path=f"{self.api_prefix}/queue/join",
            op="queue.join",
            json_body={
                "data": self.serialize(endpoint, data),
                "fn_index": fn_index,
                "session_hash": session_hash,
                "event_data": None,
                "trigger_id": None,
            },
            payload_preview={"route": route, "fn_index": fn_index},
        )
        event_id = response.json().get("event_id")
        if not event_id:
            raise RuntimeError("missing event id from queue join response")
        yield from self._iter_queue_events(session_hash, str(event_id))

    def _iter_queue_events(self, session_hash: str, event_id: str) -> Iterator[ProgressEvent]:
        timeout = httpx.Timeout(self._timeout_seconds, read=float(self._stream_read_timeout_seconds))
        with self._client_or_raise().stream(
            "GET",
            f"{self.api_prefix}/queue/data",
            params={"session_hash": session_hash},
            timeout=timeout,
        ) as response:
            response.raise_for_status()
            for message in iter_sse_payloads(response.iter_lines()):
                if not isinstance(message, dict):
                    continue
                # 同一 session 的数据流可能夹带其他事件，只保留本次提交。
                if message.get("event_id") not in (None, event_id):
                    continue
                if message.get("msg") == CLOSE_MESSAGE:
                    return
                event = decode_message(message)
                if event is None:
                    continue
                yield event
                if isinstance(event, DataEvent) or (isinstance(event, StatusEvent) and event.is_error):
                    return

    def predict(self, route: str, data: list[Any] | dict[str, Any]) -> ProgressEvent:
        """同步调用，返回终态事件。"""
        last: ProgressEvent | None = None
        for event in self.submit(route, data):
            last = event
        if isinstance(last, DataEvent) or (isinstance(last, StatusEvent) and last.is_error):
            return last
        return StatusEvent(stage=EventStage.error.value, message="no result received")
