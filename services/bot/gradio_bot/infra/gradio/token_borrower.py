"""令牌借用拦截器：向代理 Space 借取 IP 令牌并注入到出站请求头。"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from gradio_bot.domain.models import DataEvent
from gradio_bot.infra.gradio.client import GradioClient

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-IP-Token"


class TokenBorrower:
    """请求拦截器，在构造客户端时作为 request hook 注入，不修改客户端方法。"""

    def __init__(self, source: GradioClient | None, route: str = "/predict") -> None:
        self._source = source
        self._route = route

    @classmethod
    def create(cls, proxy: str | None, **kwargs: Any) -> TokenBorrower:
        """proxy 为空时返回不做任何事的借用器。"""
        source = GradioClient.connect(proxy, **kwargs) if proxy else None
        return cls(source)

    @property
    def enabled(self) -> bool:
        return self._source is not None

    def install(self, client: GradioClient) -> bool:
        """把自身安装到目标客户端；未启用或已安装时返回 False。"""
        if not self.enabled:
            return False
        return client.add_interceptor(self)

    def borrow(self) -> str | None:
        if self._source is None:
            return None
        event = self._source.predict(self._route, [])
        if isinstance(event, DataEvent) and event.values and event.values[0]:
            return str(event.values[0])
        return None

    def __call__(self, request: httpx.Request) -> None:
        if self._source is None:
            return
        try:
            token = self.borrow()
        except Exception as exc:
            # 借用失败不阻断原请求，只是不带令牌发送。
            logger.warning(
                "token borrow failed",
                extra={
                    "event": "gradio.token_borrow.failed",
                    "external_service": "gradio",
                    "op": "token.borrow",
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return
        if token:
            request.headers[TOKEN_HEADER] = token

    def close(self) -> None:
        if self._source is not None:
            self._source.close()
