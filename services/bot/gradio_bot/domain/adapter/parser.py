"""调用解析器：从已填写的命令中取值、强制类型并组装远端调用负载。"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from typing import Any, Protocol

from gradio_bot.domain.enums import CallingConvention, ParamType
from gradio_bot.domain.errors import InvalidChoice, UnsupportedOptionType
from gradio_bot.domain.models import OMITTED, AttachmentRef, FileReference, InvocationPayload, MappingEntry, MappingTable
from gradio_bot.domain.naming import parse_choice

_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class OptionLookup(Protocol):
    """宿主提供的按字段名取值接口，未填写时返回 None。"""

    @property
    def subcommand(self) -> str | None: ...

    def get_string(self, name: str) -> str | None: ...

    def get_integer(self, name: str) -> int | None: ...

    def get_number(self, name: str) -> float | None: ...

    def get_boolean(self, name: str) -> bool | None: ...

    def get_attachment(self, name: str) -> AttachmentRef | None: ...


def _to_number(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and not math.isfinite(value) else value
    if not isinstance(value, str):
        return None
    # 只接受 ASCII 十进制写法，拒绝 `1_000`、`inf` 与非 ASCII 数字。
    text = value.strip()
    if not _DECIMAL_RE.fullmatch(text):
        return None
    try:
        return int(text)
    except ValueError:
        pass
    number = float(text)
    return number if math.isfinite(number) else None


def coerce_numeric(values: Sequence[Any]) -> list[Any]:
    """全部元素都能解析为数字时整体转换，否则原样保留。"""
    converted: list[Any] = []
    for value in values:
        number = _to_number(value)
        if number is None:
            return list(values)
        converted.append(number)
    return converted


def split_array(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",")]


class InvocationParser:
    """调用解析器，与命令构建共用同一份映射表。"""

    def __init__(self, table: MappingTable) -> None:
        self._table = table

    @property
    def table(self) -> MappingTable:
        return self._table

    def parse(self, options: OptionLookup) -> InvocationPayload:
        positional: list[Any] = [OMITTED] * self._table.arity
        named: dict[str, Any] = {}
        for entry in self._table:
            value = self._read(entry, options)
            if value is OMITTED:
                continue
            if self._table.convention is CallingConvention.positional:
                positional[entry.position] = value
            else:
                named[str(entry.parameter_name)] = value

        if self._table.convention is CallingConvention.positional:
            return InvocationPayload(route=self._table.route, convention=self._table.convention, data=positional)
        return InvocationPayload(route=self._table.route, convention=self._table.convention, data=named)

    def _read(self, entry: MappingEntry, options: OptionLookup) -> Any:
        fallback = self._fallback(entry)
        if entry.type is ParamType.string:
            return self._or(options.get_string(entry.name), fallback)
        if entry.type is ParamType.integer:
            return self._or(options.get_integer(entry.name), fallback)
        if entry.type is ParamType.number:
            return self._or(options.get_number(entry.name), fallback)
        if entry.type is ParamType.boolean:
            return self._or(options.get_boolean(entry.name), fallback)
        if entry.type is ParamType.attachment:
            attachment = options.get_attachment(entry.name)
            # 未提交附件时整项省略，不向远端传占位值。
            if attachment is None:
                return OMITTED
            return FileReference(url=attachment.url, name=attachment.filename)
        if entry.type is ParamType.array:
            return self._read_array(entry, options.get_string(entry.name), fallback)
        raise UnsupportedOptionType(entry.type)

    def _read_array(self, entry: MappingEntry, raw: str | None, fallback: Any) -> Any:
        if raw is not None:
            values: Any = split_array(raw)
        elif isinstance(fallback, (list, tuple)):
            values = list(fallback)
        else:
            return OMITTED if fallback is None else fallback
        values = coerce_numeric(values)

        choices = parse_choice(entry.parameter.python_type)
        if choices:
            allowed = coerce_numeric(choices)
            invalid = [item for item in values if item not in allowed]
            if invalid:
                raise InvalidChoice(entry.name, invalid)
        return values

    @staticmethod
    def _fallback(entry: MappingEntry) -> Any:
        """组件当前值优先，其次是接口声明的参数默认值。"""
        if entry.component is not None and entry.component.value is not None:
            return entry.component.value
        if entry.parameter.has_default:
            return entry.parameter.default
        return None

    @staticmethod
    def _or(value: Any, fallback: Any) -> Any:
        # 未填写且无组件默认值时省略，由传输层补远端默认值。
        if value is None:
            return OMITTED if fallback is None else fallback
        return value
