"""异步任务定义：在 Worker 中处理已确认的斜杠命令交互。"""

from __future__ import annotations

import logging
from typing import Any

from gradio_bot.application.container import get_discord_client, get_interaction_service
from gradio_bot.infra.discord.client import DiscordReplyChannel
from gradio_bot.infra.logging.context import bind_log_context
from gradio_bot.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="gradio_bot.worker.tasks.handle_interaction_task")
def handle_interaction_task(self, payload: dict[str, Any]) -> bool:
    """重建回复通道并分发交互；交互令牌有时效，失败不重试。"""
    interaction_id = str(payload.get("id") or "")
    with bind_log_context(interaction_id=interaction_id, task_id=self.request.id):
        logger.info(
            "worker task started",
            extra={
                "event": "interaction.task.started",
                "payload_preview": {"command": (payload.get("data") or {}).get("name")},
            },
        )
        # HTTP 入口已经返回延迟确认。
        reply = DiscordReplyChannel(
            get_discord_client(),
            interaction_id,
            str(payload.get("token") or ""),
            acknowledged=True,
        )
        try:
            handled = get_interaction_service().dispatch(payload, reply)
        except Exception as exc:
            logger.exception(
                "worker task failed",
                extra={"event": "interaction.task.failed", "error_type": type(exc).__name__, "error": str(exc)},
            )
            raise
        logger.info(
            "worker task finished",
            extra={"event": "interaction.task.succeeded", "payload_preview": {"handled": handled}},
        )
        return handled
