"""附件拉取器：按结果中的文件地址下载内容，可选经代理改写主机。"""

from __future__ import annotations

import logging
import time
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)


def proxied_url(url: str, proxy: str | None) -> str:
    """用代理地址替换原 URL 的主机部分，保留路径；无法解析时返回原地址。"""
    if not proxy:
        return url
    try:
        path = urlsplit(url).path
    except ValueError:
        return url
    if not path:
        return url
    return f"{proxy.rstrip('/')}{path}"


class HttpAttachmentFetcher:
    """基于 httpx 的附件下载器。"""

    def __init__(
        self,
        *,
        proxy: str | None = None,
        hf_token: str | None = None,
        timeout_seconds: int = 60,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._proxy = proxy
        self._closed = False
        headers = {"Authorization": f"Bearer {hf_token}"} if hf_token else {}
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds),
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    def fetch(self, url: str) -> bytes:
        """下载单个文件内容。"""
        if self._closed:
            raise RuntimeError("HttpAttachmentFetcher is already closed")
        target = proxied_url(url, self._proxy)
        started = time.perf_counter()
        try:
            response = self._client.get(target)
            response.raise_for_status()
        except Exception as exc:
            status_code = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
            logger.error(
                "attachment fetch failed",
                extra={
                    "event": "attachment.fetch.failed",
                    "external_service": "gradio",
                    "op": "attachment.fetch",
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "status_code": status_code,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    "payload_preview": {"url": target},
                },
            )
            raise
        return response.content

    def close(self) -> None:
        if self._closed:
            return
        self._client.close()
        self._closed = True
