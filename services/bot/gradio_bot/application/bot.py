"""Gradio 机器人：把一个远端应用暴露为伞形斜杠命令，并处理单次命令调用。"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from gradio_bot.application.invoker import DEFAULT_STATUS_INTERVAL_SECONDS, InvocationOutcome, StreamingInvoker
from gradio_bot.application.output import AttachmentFetcher, OutputClassifier, batched, materialize
from gradio_bot.application.ports import CommandInteraction, RemoteApp, ReplyChannel
from gradio_bot.domain.adapter.command import CommandsAdapter
from gradio_bot.domain.adapter.registry import AdaptOptions, adapt
from gradio_bot.domain.errors import BridgeError
from gradio_bot.domain.models import CommandSpec, InvocationPayload
from gradio_bot.domain.naming import MAX_NAME_LENGTH, clip, normalize_name
from gradio_bot.infra.logging.context import bind_log_context

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_NAME = "gradio"
GENERIC_ERROR_MESSAGE = "An error occurred while processing the command."
EMPTY_OUTPUT_MESSAGE = "No output."
MAX_ATTACHMENTS_PER_MESSAGE = 10


@dataclass(frozen=True, slots=True)
class BotOptions:
    """调用行为选项。"""
    stream_progress: bool = True
    status_interval_seconds: float = DEFAULT_STATUS_INTERVAL_SECONDS
    attachment_batch_size: int = MAX_ATTACHMENTS_PER_MESSAGE


def command_name_for(space_id: str | None) -> str:
    """取 Space 标识中的应用名作为命令名，私有部署回退为 gradio。"""
    parts = (space_id or "").split("/")
    candidate = parts[1][:MAX_NAME_LENGTH] if len(parts) > 1 else ""
    return normalize_name(candidate, fallback=DEFAULT_COMMAND_NAME)


def command_description_for(space_id: str | None) -> str:
    return clip(f"Gradio Bot from {space_id or 'Private App'}")


class GradioBot:
    """单个远端应用对应的命令处理器。"""

    def __init__(
        self,
        commands: CommandsAdapter,
        remote: RemoteApp,
        fetcher: AttachmentFetcher,
        options: BotOptions | None = None,
        *,
        classifier: OutputClassifier | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._commands = commands
        self._remote = remote
        self._fetcher = fetcher
        self._options = options or BotOptions()
        self._classifier = classifier or OutputClassifier()
        self._clock = clock
        self._space_id = remote.space_id
        self._name = command_name_for(self._space_id)
        self._description = command_description_for(self._space_id)
        self._spec = commands.build(self._name, self._description)

    @classmethod
    def from_remote(
        cls,
        remote: RemoteApp,
        fetcher: AttachmentFetcher,
        adapt_options: AdaptOptions | None = None,
        options: BotOptions | None = None,
    ) -> GradioBot:
        """读取远端接口描述并构建全部子命令适配器。"""
        adapters = adapt(remote.endpoints(), remote.components(), adapt_options)
        logger.info(
            "gradio bot adapted",
            extra={
                "event": "bot.adapt.succeeded",
                "op": "adapt",
                "payload_preview": {"space": remote.space_id, "subcommands": list(adapters)},
            },
        )
        return cls(CommandsAdapter(adapters), remote, fetcher, options)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def spec(self) -> CommandSpec:
        return self._spec

    @property
    def commands(self) -> CommandsAdapter:
        return self._commands

    def parse(self, interaction: CommandInteraction) -> InvocationPayload:
        return self._commands.parse(interaction)

    def handle(self, interaction: CommandInteraction, reply: ReplyChannel) -> bool:
        """处理并回复一次命令调用。
        参数:
        - interaction: 已填写的命令调用。
        - reply: 该调用的回复通道。
        返回:
        - 命令名不属于本机器人时返回 False，否则返回 True；调用中的异常转换为错误回复，不向外抛出。
        """
        if interaction.command_name != self._name:
            return False

        with bind_log_context(interaction_id=interaction.id, space=self._space_id):
            reply.defer()
            try:
                self._invoke(interaction, reply)
            except BridgeError as exc:
                logger.warning(
                    "command rejected",
                    exc_info=True,
                    extra={"event": "bot.invoke.rejected", "error_type": type(exc).__name__, "error": str(exc)},
                )
                self._report_error(reply, f"Error: {exc}")
            except Exception as exc:
                logger.error(
                    "command processing failed",
                    exc_info=True,
                    extra={"event": "bot.invoke.failed", "error_type": type(exc).__name__, "error": str(exc)},
                )
                self._report_error(reply, GENERIC_ERROR_MESSAGE)
        return True

    def _invoke(self, interaction: CommandInteraction, reply: ReplyChannel) -> None:
        payload = self.parse(interaction)
        logger.info(
            "calling gradio endpoint",
            extra={
                "event": "bot.invoke.started",
                "external_service": "gradio",
                "op": payload.route,
                "payload_preview": {"convention": payload.convention.value, "data": payload.data},
            },
        )
        started = time.perf_counter()
        outcome = self._call(payload, reply)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        if not outcome.ok:
            logger.error(
                "gradio endpoint returned error",
                extra={
                    "event": "bot.invoke.remote_error",
                    "external_service": "gradio",
                    "op": payload.route,
                    "duration_ms": duration_ms,
                    "error": outcome.error,
                },
            )
            reply.edit(content=outcome.error or GENERIC_ERROR_MESSAGE)
            return

        classified = self._classifier.classify(outcome.values)
        attachments = materialize(classified.descriptors, self._fetcher)
        batches = batched(attachments, self._options.attachment_batch_size)
        first_batch = batches[0] if batches else []
        # 有附件时用空文本覆盖进度状态，否则给出占位回复。
        content = classified.text or ("" if first_batch else EMPTY_OUTPUT_MESSAGE)
        reply.edit(content=content, files=first_batch)
        for batch in batches[1:]:
            reply.follow_up(files=batch)
        logger.info(
            "gradio endpoint completed",
            extra={
                "event": "bot.invoke.succeeded",
                "external_service": "gradio",
                "op": payload.route,
                "duration_ms": duration_ms,
                "payload_preview": {"text_chars": len(classified.text), "attachments": len(attachments)},
            },
        )

    def _call(self, payload: InvocationPayload, reply: ReplyChannel) -> InvocationOutcome:
        invoker = StreamingInvoker(reply, interval_seconds=self._options.status_interval_seconds, clock=self._clock)
        if self._options.stream_progress:
            return invoker.consume(self._remote.submit(payload.route, payload.data))
        return invoker.resolve(self._remote.predict(payload.route, payload.data))

    @staticmethod
    def _report_error(reply: ReplyChannel, message: str) -> None:
        try:
            reply.follow_up(content=message)
        except Exception as exc:
            logger.error(
                "error reply failed",
                extra={"event": "bot.reply.failed", "error_type": type(exc).__name__, "error": str(exc)},
            )
