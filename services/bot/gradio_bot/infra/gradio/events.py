"""队列事件解码：把 SSE 消息显式转换为进度事件联合类型。"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from typing import Any

from gradio_bot.domain.enums import EventStage
from gradio_bot.domain.models import DataEvent, LogEvent, ProgressEvent, ProgressItem, StatusEvent, UnknownEvent

# 不携带业务信息的保活帧。
SKIPPED_MESSAGES = frozenset({"heartbeat", "send_hash", "send_data"})
CLOSE_MESSAGE = "close_stream"


def _progress_items(raw: Any) -> tuple[ProgressItem, ...]:
    items: list[ProgressItem] = []
    for entry in raw or []:
        if not isinstance(entry, dict):
            continue
        items.append(
            ProgressItem(
                index=entry.get("index"),
                length=entry.get("length"),
                unit=entry.get("unit"),
                description=entry.get("desc"),
            )
        )
    return tuple(items)


def decode_message(message: dict[str, Any]) -> ProgressEvent | None:
    """解码单条队列消息；保活帧返回 None。"""
    kind = str(message.get("msg") or "")
    if kind in SKIPPED_MESSAGES:
        return None
    if kind == "log":
        return LogEvent(text=str(message.get("log") or ""), level=message.get("level"))
    if kind == "estimation":
        return StatusEvent(stage=EventStage.pending.value)
    if kind == "process_starts":
        return StatusEvent(stage=EventStage.running.value)
    if kind == "progress":
        return StatusEvent(stage=EventStage.running.value, progress_items=_progress_items(message.get("progress_data")))
    if kind == "process_generating":
        return StatusEvent(stage=EventStage.generating.value)
    if kind == "process_completed":
        output = message.get("output") or {}
        if message.get("success", True) and not output.get("error"):
            return DataEvent(values=list(output.get("data") or []))
        error = output.get("error") or message.get("message")
        return StatusEvent(stage=EventStage.error.value, message=str(error) if error else None)
    if kind == "unexpected_error":
        error = message.get("message")
        return StatusEvent(stage=EventStage.error.value, message=str(error) if error else None)
    return UnknownEvent(kind=kind or "message", raw=message)


def iter_sse_payloads(lines: Iterable[str]) -> Iterator[Any]:
    """按空行切分 SSE 帧，组装 data 行并尽量解析为 JSON。"""
    data_lines: list[str] = []
    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            if data_lines:
                yield _parse_json("\n".join(data_lines))
            data_lines = []
            continue
        if line.startswith(":"):
            # 注释帧用于保活。
            continue
        if line.startswith("data:"):
            data_lines.append(line.split(":", 1)[1].strip())
    if data_lines:
        yield _parse_json("\n".join(data_lines))


def _parse_json(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value
