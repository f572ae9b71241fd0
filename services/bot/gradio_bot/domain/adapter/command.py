"""命令适配器：单端点的字段构建与调用解析，以及多端点伞形命令的子命令路由。"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from gradio_bot.domain.adapter.builder import CommandBuilder
from gradio_bot.domain.adapter.mapper import ParameterMapper
from gradio_bot.domain.adapter.parser import InvocationParser, OptionLookup
from gradio_bot.domain.enums import CallingConvention
from gradio_bot.domain.errors import UnknownSubcommand
from gradio_bot.domain.models import (
    CommandFieldSpec,
    CommandSpec,
    ComponentMeta,
    EndpointDescriptor,
    FieldOverride,
    InvocationPayload,
    MappingTable,
    SubcommandSpec,
)
from gradio_bot.domain.naming import NameTrimmer, clip


class CommandAdapter:
    """单端点命令适配器，映射表只构建一次并在构建与解析之间共享。"""

    def __init__(
        self,
        endpoint: EndpointDescriptor,
        components: Sequence[ComponentMeta] | None = None,
        overrides: Mapping[str, FieldOverride] | None = None,
        *,
        trimmer: NameTrimmer | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._table = ParameterMapper(components, trimmer=trimmer).build(endpoint)
        self._parser = InvocationParser(self._table)
        self._fields = CommandBuilder(overrides).build_fields(self._table)

    @property
    def route(self) -> str:
        return self._endpoint.route

    @property
    def convention(self) -> CallingConvention:
        return self._table.convention

    @property
    def table(self) -> MappingTable:
        return self._table

    @property
    def fields(self) -> tuple[CommandFieldSpec, ...]:
        return self._fields

    def subcommand(self, name: str, description: str) -> SubcommandSpec:
        return SubcommandSpec(name=name, description=clip(description), fields=self._fields)

    def parse(self, options: OptionLookup) -> InvocationPayload:
        return self._parser.parse(options)


class CommandsAdapter:
    """伞形命令适配器，每个端点对应一个子命令。"""

    def __init__(self, adapters: Mapping[str, CommandAdapter]) -> None:
        self._adapters = dict(adapters)

    @property
    def adapters(self) -> dict[str, CommandAdapter]:
        return dict(self._adapters)

    def build(self, name: str, description: str) -> CommandSpec:
        subcommands = tuple(
            adapter.subcommand(command_name, command_name) for command_name, adapter in self._adapters.items()
        )
        return CommandSpec(name=name, description=clip(description), subcommands=subcommands)

    def parse(self, options: OptionLookup) -> InvocationPayload:
        """按调用中的子命令名找到对应端点并解析。"""
        adapter = self._adapters.get(options.subcommand or "")
        if adapter is None:
            raise UnknownSubcommand(options.subcommand)
        return adapter.parse(options)
