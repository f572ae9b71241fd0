"""命令定义序列化：把命令规格转换为 Discord 应用命令注册 JSON。"""

from __future__ import annotations

from typing import Any

from gradio_bot.domain.enums import ParamType
from gradio_bot.domain.models import CommandFieldSpec, CommandSpec, SubcommandSpec
from gradio_bot.infra.discord.interactions import OptionType

OPTION_TYPES: dict[ParamType, OptionType] = {
    ParamType.string: OptionType.string,
    ParamType.integer: OptionType.integer,
    ParamType.number: OptionType.number,
    ParamType.boolean: OptionType.boolean,
    ParamType.attachment: OptionType.attachment,
    # 数组以逗号分隔的字符串输入。
    ParamType.array: OptionType.string,
}


def option_payload(spec: CommandFieldSpec) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": int(OPTION_TYPES[spec.type]),
        "name": spec.name,
        "description": spec.description,
        "required": spec.required,
    }
    if spec.choices:
        payload["choices"] = [{"name": choice, "value": choice} for choice in spec.choices]
    if spec.min_value is not None:
        payload["min_value"] = spec.min_value
    if spec.max_value is not None:
        payload["max_value"] = spec.max_value
    if spec.description_localizations:
        payload["description_localizations"] = dict(spec.description_localizations)
    return payload


def subcommand_payload(spec: SubcommandSpec) -> dict[str, Any]:
    return {
        "type": int(OptionType.sub_command),
        "name": spec.name,
        "description": spec.description,
        "options": [option_payload(field) for field in spec.fields],
    }


def command_payload(spec: CommandSpec) -> dict[str, Any]:
    """生成顶层斜杠命令注册载荷。"""
    options = [subcommand_payload(sub) for sub in spec.subcommands] if spec.subcommands else [
        option_payload(field) for field in spec.fields
    ]
    return {"type": 1, "name": spec.name, "description": spec.description, "options": options}
