"""应用层端口：命令宿主与远端服务需要提供的协议。"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any, Protocol

from gradio_bot.domain.adapter.parser import OptionLookup
from gradio_bot.domain.models import Attachment, ComponentMeta, EndpointDescriptor, ProgressEvent


class ReplyChannel(Protocol):
    """回复通道：先延迟确认，再编辑主回复，必要时追加后续消息。"""

    def defer(self) -> None: ...

    def edit(self, content: str | None = None, files: Sequence[Attachment] = ()) -> None: ...

    def follow_up(self, content: str | None = None, files: Sequence[Attachment] = ()) -> None: ...


class CommandInteraction(OptionLookup, Protocol):
    """一次已填写的命令调用。"""

    @property
    def id(self) -> str: ...

    @property
    def command_name(self) -> str | None: ...


class RemoteApp(Protocol):
    """远端应用：接口描述读取与调用。"""

    @property
    def space_id(self) -> str | None: ...

    def endpoints(self) -> dict[str, EndpointDescriptor]: ...

    def components(self) -> list[ComponentMeta]: ...

    def submit(self, route: str, data: list[Any] | dict[str, Any]) -> Iterator[ProgressEvent]: ...

    def predict(self, route: str, data: list[Any] | dict[str, Any]) -> ProgressEvent: ...
