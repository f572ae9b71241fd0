"""流式调用状态机测试：验证节流推送、终态转换与进度渲染。"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from gradio_bot.application.invoker import InvokerState, StreamingInvoker, render_progress
from gradio_bot.domain.enums import EventStage
from gradio_bot.domain.models import (
    Attachment,
    DataEvent,
    LogEvent,
    ProgressEvent,
    ProgressItem,
    StatusEvent,
    UnknownEvent,
)


class RecordingReply:
    def __init__(self) -> None:
        self.edits: list[str | None] = []
        self.follow_ups: list[str | None] = []

    def defer(self) -> None:
        return None

    def edit(self, content: str | None = None, files: Sequence[Attachment] = ()) -> None:
        self.edits.append(content)

    def follow_up(self, content: str | None = None, files: Sequence[Attachment] = ()) -> None:
        self.follow_ups.append(content)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_status_updates_are_throttled_to_one_per_interval() -> None:
    """每 100ms 一条日志、持续 11 秒，只应推送 3 次状态。"""
    reply = RecordingReply()
    clock = FakeClock()
    invoker = StreamingInvoker(reply, interval_seconds=5.0, clock=clock)

    def events() -> Iterator[ProgressEvent]:
        for index in range(110):
            clock.now = index / 10
            yield LogEvent(text=f"log {index}")
        clock.now = 11.0
        yield DataEvent(values=["done"])

    outcome = invoker.consume(events())

    assert outcome.ok
    assert outcome.values == ["done"]
    assert invoker.emissions == 3
    assert reply.edits == ["log 0", "log 50", "log 100"]
    assert invoker.state is InvokerState.data


def test_error_status_ends_stream_with_message() -> None:
    reply = RecordingReply()
    invoker = StreamingInvoker(reply, clock=FakeClock())

    def events() -> Iterator[ProgressEvent]:
        yield StatusEvent(stage=EventStage.pending.value)
        yield StatusEvent(stage=EventStage.error.value, message="GPU quota exceeded")
        raise AssertionError("stream must not be consumed after a terminal event")

    outcome = invoker.consume(events())

    assert not outcome.ok
    assert outcome.error == "GPU quota exceeded"
    assert invoker.state is InvokerState.error
    assert reply.edits == []


def test_data_event_stops_consumption() -> None:
    invoker = StreamingInvoker(RecordingReply(), clock=FakeClock())

    def events() -> Iterator[ProgressEvent]:
        yield DataEvent(values=[1])
        raise AssertionError("stream must not be consumed after data")

    assert invoker.consume(events()).values == [1]


def test_progress_status_replaces_buffer_with_summary() -> None:
    reply = RecordingReply()
    invoker = StreamingInvoker(reply, clock=FakeClock())
    progress = StatusEvent(
        stage=EventStage.running.value,
        progress_items=(ProgressItem(index=3, length=10, unit="steps"),),
    )

    invoker.consume(iter([UnknownEvent(kind="custom"), progress, DataEvent(values=[])]))

    assert reply.edits == ["running\n3 / 10 steps"]


def test_render_progress_drops_items_without_index() -> None:
    items = [
        ProgressItem(index=3, length=10, unit="steps"),
        ProgressItem(index=None, length=5),
        ProgressItem(index=2, unit="it"),
    ]

    assert render_progress(items) == "running\n3 / 10 steps\n2 it"


def test_stream_ending_without_terminal_event_is_an_error() -> None:
    invoker = StreamingInvoker(RecordingReply(), clock=FakeClock())

    outcome = invoker.consume(iter([LogEvent(text="warming up")]))

    assert not outcome.ok
    assert outcome.error == "The remote call ended without a result."


def test_resolve_handles_single_result() -> None:
    assert StreamingInvoker(RecordingReply()).resolve(DataEvent(values=["x"])).values == ["x"]

    pending = StreamingInvoker(RecordingReply()).resolve(StatusEvent(stage=EventStage.pending.value))
    assert pending.error == "The remote call returned no result."
