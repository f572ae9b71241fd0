"""Discord 交互 Webhook 客户端与回复通道实现。"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from typing import Any

import httpx

from gradio_bot.domain.models import Attachment
from gradio_bot.infra.discord.interactions import InteractionResponseType

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 2000


class DiscordWebhookClient:
    """Discord 交互回调与 Webhook 消息接口封装。"""

    def __init__(
        self,
        base_url: str,
        application_id: str,
        *,
        timeout_seconds: int = 30,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._application_id = application_id
        self._closed = False
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    def _client_or_raise(self) -> httpx.Client:
        if self._closed:
            raise RuntimeError("DiscordWebhookClient is already closed")
        return self._client

    def close(self) -> None:
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
        content: str | None = None,
        files: Sequence[Attachment] = (),
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """发送消息类请求；带附件时使用 multipart 与 payload_json。"""
        body: dict[str, Any] = dict(json_body or {})
        if content is not None:
            body["content"] = content[:MAX_CONTENT_LENGTH]
        started = time.perf_counter()
        try:
            if files:
                body["attachments"] = [{"id": index, "filename": item.name} for index, item in enumerate(files)]
                multipart = [(f"files[{index}]", (item.name, item.content)) for index, item in enumerate(files)]
                response = self._client_or_raise().request(
                    method,
                    path,
                    data={"payload_json": json.dumps(body, ensure_ascii=False)},
                    files=multipart,
                )
            else:
                response = self._client_or_raise().request(method, path, json=body)
            response.raise_for_status()
        except Exception as exc:
            status_code = None
            if isinstance(exc, httpx.HTTPStatusError) and exc.response is not None:
                status_code = exc.response.status_code
            logger.error(
                "discord request failed",
                extra={
                    "event": "discord.request.failed",
                    "external_service": "discord",
                    "op": op,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "status_code": status_code,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    "payload_preview": {"file_count": len(files), "content_chars": len(content or "")},
                },
            )
            raise
        return response

    def create_response(self, interaction_id: str, token: str, response_type: InteractionResponseType) -> None:
        self._request(
            method="POST",
            path=f"/interactions/{interaction_id}/{token}/callback",
            op="interaction.callback",
            json_body={"type": int(response_type)},
        )

    def edit_original(self, token: str, content: str | None = None, files: Sequence[Attachment] = ()) -> None:
        self._request(
            method="PATCH",
            path=f"/webhooks/{self._application_id}/{token}/messages/@original",
            op="interaction.edit_original",
            content=content,
            files=files,
        )

    def create_followup(self, token: str, content: str | None = None, files: Sequence[Attachment] = ()) -> None:
        self._request(
            method="POST",
            path=f"/webhooks/{self._application_id}/{token}",
            op="interaction.followup",
            content=content,
            files=files,
        )


class DiscordReplyChannel:
    """单次交互的回复通道。"""

    def __init__(
        self,
        client: DiscordWebhookClient,
        interaction_id: str,
        token: str,
        *,
        acknowledged: bool = False,
    ) -> None:
        self._client = client
        self._interaction_id = interaction_id
        self._token = token
        # HTTP 入口已返回延迟确认时为 True，避免重复确认。
        self._acknowledged = acknowledged

    def defer(self) -> None:
        if self._acknowledged:
            return
        self._client.create_response(self._interaction_id, self._token, InteractionResponseType.deferred_channel_message)
        self._acknowledged = True

    def edit(self, content: str | None = None, files: Sequence[Attachment] = ()) -> None:
        self._client.edit_original(self._token, content, files)

    def follow_up(self, content: str | None = None, files: Sequence[Attachment] = ()) -> None:
        self._client.create_followup(self._token, content, files)
