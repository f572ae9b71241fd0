"""依赖容器模块，负责单例化创建远端客户端、机器人与交互服务对象。"""

from __future__ import annotations

import logging
from functools import lru_cache

from gradio_bot.application.bot import BotOptions, GradioBot
from gradio_bot.application.service import InteractionService
from gradio_bot.config import get_settings
from gradio_bot.domain.adapter.registry import AdaptOptions
from gradio_bot.infra.discord.client import DiscordWebhookClient
from gradio_bot.infra.gradio.client import GradioClient
from gradio_bot.infra.gradio.token_borrower import TokenBorrower
from gradio_bot.infra.storage.attachments import HttpAttachmentFetcher

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_token_borrower() -> TokenBorrower:
    """获取令牌借用器单例；未配置代理 Space 时为空操作。
    返回:
    - TokenBorrower 实例。
    """
    settings = get_settings()
    return TokenBorrower.create(
        settings.token_borrower_space,
        hf_token=settings.hf_token,
        hf_api_base_url=settings.hf_api_base_url,
        timeout_seconds=settings.gradio_request_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_gradio_clients() -> tuple[GradioClient, ...]:
    """按配置顺序连接全部远端应用，并安装令牌借用拦截器。
    返回:
    - 与 gradio_spaces 顺序一致的客户端元组。
    """
    settings = get_settings()
    borrower = get_token_borrower()
    clients: list[GradioClient] = []
    for space in settings.gradio_spaces_list():
        client = GradioClient.connect(
            space,
            hf_token=settings.hf_token,
            hf_api_base_url=settings.hf_api_base_url,
            timeout_seconds=settings.gradio_request_timeout_seconds,
            stream_read_timeout_seconds=settings.gradio_stream_read_timeout_seconds,
        )
        borrower.install(client)
        clients.append(client)
    return tuple(clients)


@lru_cache(maxsize=1)
def get_attachment_fetcher() -> HttpAttachmentFetcher:
    settings = get_settings()
    return HttpAttachmentFetcher(
        proxy=settings.attachment_proxy,
        hf_token=settings.hf_token,
        timeout_seconds=settings.gradio_request_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_discord_client() -> DiscordWebhookClient:
    settings = get_settings()
    return DiscordWebhookClient(
        settings.discord_api_base_url,
        settings.discord_application_id,
        timeout_seconds=settings.discord_request_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_bots() -> tuple[GradioBot, ...]:
    """为每个远端应用构建机器人。
    返回:
    - 与注册顺序一致的机器人元组；不支持的端点按配置跳过或中止。
    """
    settings = get_settings()
    adapt_options = AdaptOptions(
        ignores=tuple(settings.gradio_ignored_endpoints_list()),
        overrides=settings.gradio_field_overrides_map(),
        skip_unsupported=settings.gradio_skip_unsupported_endpoints,
    )
    options = BotOptions(
        stream_progress=settings.stream_progress,
        status_interval_seconds=settings.status_update_interval_seconds,
        attachment_batch_size=settings.attachment_batch_size,
    )
    fetcher = get_attachment_fetcher()
    return tuple(
        GradioBot.from_remote(client, fetcher, adapt_options, options) for client in get_gradio_clients()
    )


@lru_cache(maxsize=1)
def get_interaction_service() -> InteractionService:
    return InteractionService(get_bots())


def shutdown_container_resources() -> None:
    """关闭共享客户端并清理依赖容器缓存。"""
    closers = []
    if get_gradio_clients.cache_info().currsize:
        closers.extend(client.close for client in get_gradio_clients())
    if get_token_borrower.cache_info().currsize:
        closers.append(get_token_borrower().close)
    if get_attachment_fetcher.cache_info().currsize:
        closers.append(get_attachment_fetcher().close)
    if get_discord_client.cache_info().currsize:
        closers.append(get_discord_client().close)
    for close in closers:
        try:
            close()
        except Exception as exc:
            logger.warning(
                "resource close failed",
                extra={"event": "container.shutdown.close_failed", "error_type": type(exc).__name__, "error": str(exc)},
            )

    # 按依赖顺序清理缓存，确保后续请求可重新构建全新实例。
    for provider in (
        get_interaction_service,
        get_bots,
        get_discord_client,
        get_attachment_fetcher,
        get_gradio_clients,
        get_token_borrower,
    ):
        provider.cache_clear()
