"""Discord 交互载荷封装：提供命令名、子命令与按类型取值的字段查询。"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from gradio_bot.domain.models import AttachmentRef


class InteractionType(IntEnum):
    ping = 1
    application_command = 2


class OptionType(IntEnum):
    sub_command = 1
    sub_command_group = 2
    string = 3
    integer = 4
    boolean = 5
    number = 10
    attachment = 11


class InteractionResponseType(IntEnum):
    pong = 1
    channel_message = 4
    deferred_channel_message = 5


class DiscordInteraction:
    """斜杠命令交互，实现调用解析所需的字段查询接口。"""

    def __init__(self, payload: dict[str, Any]) -> None:
        self._payload = payload
        self._data: dict[str, Any] = payload.get("data") or {}
        self._subcommand: str | None = None
        options: list[dict[str, Any]] = list(self._data.get("options") or [])
        # 伞形命令的实际字段嵌套在子命令选项下。
        for option in options:
            if option.get("type") == OptionType.sub_command:
                self._subcommand = option.get("name")
                options = list(option.get("options") or [])
                break
        self._options = {str(option.get("name")): option for option in options}

    @property
    def payload(self) -> dict[str, Any]:
        return self._payload

    @property
    def id(self) -> str:
        return str(self._payload.get("id") or "")

    @property
    def token(self) -> str:
        return str(self._payload.get("token") or "")

    @property
    def application_id(self) -> str:
        return str(self._payload.get("application_id") or "")

    @property
    def type(self) -> int:
        return int(self._payload.get("type") or 0)

    @property
    def command_name(self) -> str | None:
        return self._data.get("name")

    @property
    def subcommand(self) -> str | None:
        return self._subcommand

    def _value(self, name: str) -> Any:
        option = self._options.get(name)
        return None if option is None else option.get("value")

    def get_string(self, name: str) -> str | None:
        value = self._value(name)
        return None if value is None else str(value)

    def get_integer(self, name: str) -> int | None:
        value = self._value(name)
        return None if value is None else int(value)

    def get_number(self, name: str) -> float | None:
        value = self._value(name)
        if value is None:
            return None
        return value if isinstance(value, (int, float)) and not isinstance(value, bool) else float(value)

    def get_boolean(self, name: str) -> bool | None:
        value = self._value(name)
        return None if value is None else bool(value)

    def get_attachment(self, name: str) -> AttachmentRef | None:
        """附件选项的值是附件 ID，实际信息在 resolved.attachments 中。"""
        attachment_id = self._value(name)
        if attachment_id is None:
            return None
        resolved = ((self._data.get("resolved") or {}).get("attachments") or {}).get(str(attachment_id))
        if not resolved or not resolved.get("url"):
            return None
        return AttachmentRef(
            url=str(resolved["url"]),
            filename=resolved.get("filename"),
            content_type=resolved.get("content_type"),
        )
