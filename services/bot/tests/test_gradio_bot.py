"""机器人处理测试：验证命令匹配、流式/非流式调用、附件分批与错误回复。"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from gradio_bot.application.bot import (
    EMPTY_OUTPUT_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    BotOptions,
    GradioBot,
    command_description_for,
    command_name_for,
)
from gradio_bot.domain.enums import EventStage
from gradio_bot.domain.models import (
    Attachment,
    AttachmentRef,
    ComponentMeta,
    DataEvent,
    EndpointDescriptor,
    LogEvent,
    ParameterDescriptor,
    ProgressEvent,
    StatusEvent,
)


def _param(position: int, name: str, tag: str = "string", python_type: str = "str") -> ParameterDescriptor:
    return ParameterDescriptor(
        position=position,
        parameter_name=name,
        label=name,
        description=None,
        type_tag=tag,
        python_type=python_type,
        component="Textbox",
        has_default=False,
    )


class FakeRemote:
    """内存中的远端应用，按预置事件序列响应调用。"""

    def __init__(self, events: list[ProgressEvent], space_id: str | None = "owner/Demo App") -> None:
        self._events = events
        self._space_id = space_id
        self.calls: list[tuple[str, Any]] = []

    @property
    def space_id(self) -> str | None:
        return self._space_id

    def endpoints(self) -> dict[str, EndpointDescriptor]:
        return {
            "/echo": EndpointDescriptor(route="/echo", parameters=(_param(0, "text"),)),
            "/count": EndpointDescriptor(route="/count", parameters=(_param(0, "n", "integer", "int"),)),
        }

    def components(self) -> list[ComponentMeta]:
        return []

    def submit(self, route: str, data: Any) -> Iterator[ProgressEvent]:
        self.calls.append((route, data))
        yield from self._events

    def predict(self, route: str, data: Any) -> ProgressEvent:
        self.calls.append((route, data))
        return self._events[-1]


class FakeFetcher:
    def fetch(self, url: str) -> bytes:
        if "broken" in url:
            raise ConnectionError("download failed")
        return b"bytes"


class FakeInteraction:
    def __init__(self, command_name: str, subcommand: str, values: dict[str, Any]) -> None:
        self.id = "interaction-1"
        self.command_name = command_name
        self.subcommand = subcommand
        self._values = values

    def get_string(self, name: str) -> str | None:
        return self._values.get(name)

    def get_integer(self, name: str) -> int | None:
        return self._values.get(name)

    def get_number(self, name: str) -> float | None:
        return self._values.get(name)

    def get_boolean(self, name: str) -> bool | None:
        return self._values.get(name)

    def get_attachment(self, name: str) -> AttachmentRef | None:
        return None


class RecordingReply:
    def __init__(self, fail_follow_up: bool = False) -> None:
        self.deferred = 0
        self.edits: list[tuple[str | None, list[str]]] = []
        self.follow_ups: list[tuple[str | None, list[str]]] = []
        self._fail_follow_up = fail_follow_up

    def defer(self) -> None:
        self.deferred += 1

    def edit(self, content: str | None = None, files: Sequence[Attachment] = ()) -> None:
        self.edits.append((content, [item.name for item in files]))

    def follow_up(self, content: str | None = None, files: Sequence[Attachment] = ()) -> None:
        if self._fail_follow_up:
            raise ConnectionError("discord unavailable")
        self.follow_ups.append((content, [item.name for item in files]))


def _bot(events: list[ProgressEvent], **kwargs: Any) -> tuple[GradioBot, FakeRemote]:
    remote = FakeRemote(events, **kwargs)
    bot = GradioBot.from_remote(remote, FakeFetcher(), options=BotOptions(status_interval_seconds=5.0))
    return bot, remote


def _files(count: int, prefix: str = "http://x") -> list[dict[str, str]]:
    return [{"url": f"{prefix}/{index}.png", "orig_name": f"{index}.png"} for index in range(count)]


def test_command_name_and_description_from_space_id() -> None:
    assert command_name_for("owner/Demo App") == "demo-app"
    assert command_name_for(None) == "gradio"
    assert command_name_for("no-slash") == "gradio"
    assert command_description_for(None) == "Gradio Bot from Private App"
    assert command_description_for("owner/" + "x" * 200).startswith("Gradio Bot from owner/")
    assert len(command_description_for("owner/" + "x" * 200)) == 100


def test_bot_builds_umbrella_command() -> None:
    bot, _ = _bot([DataEvent(values=[])])

    assert bot.name == "demo-app"
    assert bot.spec.description == "Gradio Bot from owner/Demo App"
    assert [sub.name for sub in bot.spec.subcommands] == ["echo", "count"]


def test_other_commands_are_not_handled() -> None:
    bot, remote = _bot([DataEvent(values=["x"])])
    reply = RecordingReply()

    assert bot.handle(FakeInteraction("other", "echo", {}), reply) is False
    assert reply.deferred == 0
    assert remote.calls == []


def test_streaming_result_with_text() -> None:
    bot, remote = _bot([LogEvent(text="loading"), DataEvent(values=["HELLO", 3])])
    reply = RecordingReply()

    handled = bot.handle(FakeInteraction("demo-app", "echo", {"text": "hello"}), reply)

    assert handled is True
    assert reply.deferred == 1
    assert remote.calls == [("/echo", {"text": "hello"})]
    assert reply.edits == [("loading", []), ("HELLO\n3", [])]
    assert reply.follow_ups == []


def test_attachments_are_sent_in_batches_of_ten() -> None:
    """23 个文件：前 10 个随主回复发送，其余每批最多 10 个追加发送。"""
    nested = [_files(9), _files(9, "http://y"), _files(5, "http://z")]
    bot, _ = _bot([DataEvent(values=["caption", *nested])])
    reply = RecordingReply()

    bot.handle(FakeInteraction("demo-app", "echo", {"text": "x"}), reply)

    [(content, first_batch)] = reply.edits
    assert content == "caption"
    assert len(first_batch) == 10
    assert [len(files) for _, files in reply.follow_ups] == [10, 3]
    assert all(content is None for content, _ in reply.follow_ups)


def test_empty_output_gets_placeholder_reply() -> None:
    bot, _ = _bot([DataEvent(values=[None])])
    reply = RecordingReply()

    bot.handle(FakeInteraction("demo-app", "echo", {"text": "x"}), reply)

    assert reply.edits == [(EMPTY_OUTPUT_MESSAGE, [])]


def test_remote_error_is_reported_with_message() -> None:
    bot, _ = _bot([StatusEvent(stage=EventStage.error.value, message="Queue is full")])
    reply = RecordingReply()

    bot.handle(FakeInteraction("demo-app", "echo", {"text": "x"}), reply)

    assert reply.edits == [("Queue is full", [])]
    assert reply.follow_ups == []


def test_non_streaming_mode_uses_predict() -> None:
    remote = FakeRemote([DataEvent(values=["done"])])
    bot = GradioBot.from_remote(remote, FakeFetcher(), options=BotOptions(stream_progress=False))
    reply = RecordingReply()

    bot.handle(FakeInteraction("demo-app", "count", {"n": 2}), reply)

    assert remote.calls == [("/count", {"n": 2})]
    assert reply.edits == [("done", [])]


def test_bridge_errors_are_reported_as_error_messages() -> None:
    bot, remote = _bot([DataEvent(values=[])])
    reply = RecordingReply()

    assert bot.handle(FakeInteraction("demo-app", "missing", {}), reply) is True

    assert reply.follow_ups == [('Error: Unknown subcommand "missing"', [])]
    assert remote.calls == []


def test_unexpected_errors_get_generic_reply() -> None:
    bot, _ = _bot([DataEvent(values=[{"url": "http://broken/a.png", "orig_name": "a.png"}])])
    reply = RecordingReply()

    bot.handle(FakeInteraction("demo-app", "echo", {"text": "x"}), reply)

    assert reply.follow_ups == [(GENERIC_ERROR_MESSAGE, [])]


def test_failed_error_reply_is_not_raised() -> None:
    bot, _ = _bot([DataEvent(values=[])])

    assert bot.handle(FakeInteraction("demo-app", "missing", {}), RecordingReply(fail_follow_up=True)) is True
