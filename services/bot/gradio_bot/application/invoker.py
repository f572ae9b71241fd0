"""流式调用状态机：消费远端进度事件，节流推送状态并产出终态结果。"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gradio_bot.application.ports import ReplyChannel
from gradio_bot.domain.models import DataEvent, LogEvent, ProgressEvent, ProgressItem, StatusEvent, UnknownEvent

logger = logging.getLogger(__name__)

DEFAULT_STATUS_INTERVAL_SECONDS = 5.0


class InvokerState(str, Enum):
    """调用状态。"""
    waiting = "waiting"
    streaming = "streaming"
    data = "data"
    error = "error"


@dataclass(slots=True)
class InvocationOutcome:
    """终态结果：数据输出或远端错误信息，二者互斥。"""
    values: list[Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.values is not None


def render_progress(items: Sequence[ProgressItem]) -> str:
    """渲染进度摘要：首行 running，之后每个条目一行，缺少 index 的条目丢弃。"""
    lines = ["running"]
    for item in items:
        if item.index is None:
            continue
        unit = f" {item.unit}" if item.unit else ""
        if item.length is not None:
            lines.append(f"{item.index} / {item.length}{unit}")
        else:
            lines.append(f"{item.index}{unit}")
    return "\n".join(lines)


class StreamingInvoker:
    """单次调用的状态机实例，节流计时只在本实例内生效。"""

    def __init__(
        self,
        reply: ReplyChannel,
        *,
        interval_seconds: float = DEFAULT_STATUS_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._reply = reply
        self._interval = interval_seconds
        self._clock = clock
        self._state = InvokerState.waiting
        self._buffer = ""
        self._last_emitted_at: float | None = None
        self._values: list[Any] | None = None
        self._error: str | None = None
        self.emissions = 0

    @property
    def state(self) -> InvokerState:
        return self._state

    @property
    def buffer(self) -> str:
        return self._buffer

    def consume(self, events: Iterable[ProgressEvent]) -> InvocationOutcome:
        """逐个消费事件直到终态；迭代异常由调用边界统一处理。"""
        for event in events:
            if self._state is InvokerState.waiting:
                self._state = InvokerState.streaming
            self._apply(event)
            if self._state in (InvokerState.data, InvokerState.error):
                break
            self._maybe_emit()

        if self._state not in (InvokerState.data, InvokerState.error):
            logger.warning("event stream ended without result", extra={"event": "invoke.stream.truncated"})
            self._state = InvokerState.error
            self._error = "The remote call ended without a result."
        return self.outcome()

    def resolve(self, event: ProgressEvent) -> InvocationOutcome:
        """非流式调用：单个同步结果直接进入终态。"""
        self._apply(event)
        if self._state not in (InvokerState.data, InvokerState.error):
            self._state = InvokerState.error
            self._error = "The remote call returned no result."
        return self.outcome()

    def outcome(self) -> InvocationOutcome:
        if self._state is InvokerState.data:
            return InvocationOutcome(values=self._values)
        return InvocationOutcome(error=self._error)

    def _apply(self, event: ProgressEvent) -> None:
        if isinstance(event, DataEvent):
            self._state = InvokerState.data
            self._values = list(event.values)
        elif isinstance(event, StatusEvent):
            if event.is_error:
                self._state = InvokerState.error
                self._error = event.message
            elif event.progress_items:
                self._buffer = render_progress(event.progress_items)
        elif isinstance(event, LogEvent):
            self._buffer = event.text
        elif isinstance(event, UnknownEvent):
            logger.debug("unknown event ignored", extra={"event": "invoke.event.unknown", "op": event.kind})
        else:
            logger.debug("unexpected event type ignored", extra={"event": "invoke.event.unknown", "op": type(event).__name__})

    def _maybe_emit(self) -> None:
        if not self._buffer:
            return
        now = self._clock()
        if self._last_emitted_at is not None and now - self._last_emitted_at < self._interval:
            return
        self._reply.edit(content=self._buffer)
        self._last_emitted_at = now
        self._buffer = ""
        self.emissions += 1
