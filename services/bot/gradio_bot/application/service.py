"""交互服务：HTTP 入口的确认/分发决策，以及 Worker 侧的命令处理。"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from gradio_bot.application.bot import GradioBot
from gradio_bot.application.ports import ReplyChannel
from gradio_bot.infra.discord.commands import command_payload
from gradio_bot.infra.discord.interactions import DiscordInteraction, InteractionResponseType, InteractionType

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND_MESSAGE = "Command not found"

Enqueue = Callable[[dict[str, Any]], None]


def _enqueue_with_celery(payload: dict[str, Any]) -> None:
    # 延迟导入，避免 API 进程在导入期初始化 Celery 应用。
    from gradio_bot.worker.tasks import handle_interaction_task

    handle_interaction_task.delay(payload)


class InteractionService:
    """按注册顺序把交互路由到第一个命令名匹配的机器人。"""

    def __init__(self, bots: Sequence[GradioBot], enqueue: Enqueue | None = None) -> None:
        self._bots = list(bots)
        self._enqueue = enqueue or _enqueue_with_celery

    @property
    def bots(self) -> list[GradioBot]:
        return list(self._bots)

    def find(self, command_name: str | None) -> GradioBot | None:
        return next((bot for bot in self._bots if bot.name == command_name), None)

    def accept(self, payload: dict[str, Any]) -> dict[str, Any]:
        """决定交互的即时 HTTP 响应；匹配的命令投递到 Worker 处理。
        参数:
        - payload: 交互原始 JSON。
        返回:
        - 交互响应 JSON：PING 回 PONG，已知命令回延迟确认，其余回 Command not found。
        """
        if payload.get("type") == InteractionType.ping:
            return {"type": int(InteractionResponseType.pong)}

        interaction = DiscordInteraction(payload)
        bot = self.find(interaction.command_name) if interaction.type == InteractionType.application_command else None
        if bot is None:
            logger.warning(
                "interaction command not found",
                extra={
                    "event": "interaction.command.not_found",
                    "op": "accept",
                    "payload_preview": {"type": interaction.type, "command": interaction.command_name},
                },
            )
            return {
                "type": int(InteractionResponseType.channel_message),
                "data": {"content": COMMAND_NOT_FOUND_MESSAGE},
            }

        self._enqueue(payload)
        logger.info(
            "interaction enqueued",
            extra={
                "event": "interaction.enqueued",
                "op": "accept",
                "payload_preview": {"command": bot.name, "subcommand": interaction.subcommand},
            },
        )
        return {"type": int(InteractionResponseType.deferred_channel_message)}

    def dispatch(self, payload: dict[str, Any], reply: ReplyChannel) -> bool:
        """在 Worker 中依次交给各机器人，首个接手者处理后停止。"""
        interaction = DiscordInteraction(payload)
        for bot in self._bots:
            if bot.handle(interaction, reply):
                return True
        logger.warning(
            "interaction not handled",
            extra={"event": "interaction.dispatch.unhandled", "payload_preview": {"command": interaction.command_name}},
        )
        return False

    def command_definitions(self) -> list[dict[str, Any]]:
        return [command_payload(bot.spec) for bot in self._bots]
