"""命令构建器：根据映射表生成有序的命令字段规格。"""

from __future__ import annotations

from collections.abc import Mapping

from gradio_bot.domain.enums import ParamType
from gradio_bot.domain.models import CommandFieldSpec, FieldOverride, MappingEntry, MappingTable, SubcommandSpec
from gradio_bot.domain.naming import MAX_DESCRIPTION_LENGTH, clip, parse_choice

MAX_CHOICES = 25


def _fits_choices(choices: list[str]) -> bool:
    return len(choices) <= MAX_CHOICES and all(0 < len(choice) <= MAX_DESCRIPTION_LENGTH for choice in choices)


def describe_parameter(entry: MappingEntry) -> str:
    param = entry.parameter
    return clip(param.description or param.label or param.parameter_name or "No description")


class CommandBuilder:
    """命令构建器，每次调用都返回新的不可变规格对象。"""

    def __init__(self, overrides: Mapping[str, FieldOverride] | None = None) -> None:
        self._overrides = dict(overrides or {})

    def build_field(self, entry: MappingEntry) -> CommandFieldSpec:
        """构建单个字段规格。"""
        override = self._overrides.get(entry.name)
        description = describe_parameter(entry)
        if override is not None and override.required is not None:
            required = override.required
        else:
            required = entry.parameter.has_default is False

        choices: tuple[str, ...] = ()
        parsed = parse_choice(entry.parameter.python_type)
        if parsed and entry.type is ParamType.string and _fits_choices(parsed):
            choices = tuple(parsed)
        elif parsed and entry.type in (ParamType.string, ParamType.array):
            # 数组与超出宿主上限的枚举只能把取值写进描述。
            description = clip(f"{description} ({', '.join(parsed)})")

        min_value: float | None = None
        max_value: float | None = None
        if entry.type in (ParamType.integer, ParamType.number) and entry.component is not None:
            min_value = entry.component.minimum
            max_value = entry.component.maximum

        localizations = None
        if override is not None and override.localizations:
            localizations = {locale: clip(text) for locale, text in override.localizations.items()}

        return CommandFieldSpec(
            name=entry.name,
            description=description,
            type=entry.type,
            required=required,
            choices=choices,
            min_value=min_value,
            max_value=max_value,
            description_localizations=localizations,
        )

    def build_fields(self, table: MappingTable) -> tuple[CommandFieldSpec, ...]:
        """构建全部字段，并把必填字段稳定地提前。"""
        fields = [self.build_field(entry) for entry in table]
        # 部分宿主拒绝 可选字段在必填字段之前 的定义。
        return tuple(sorted(fields, key=lambda item: not item.required))

    def build_subcommand(self, name: str, description: str, table: MappingTable) -> SubcommandSpec:
        return SubcommandSpec(name=name, description=clip(description), fields=self.build_fields(table))
