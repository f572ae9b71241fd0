"""适配器注册：为远端全部具名端点创建命令适配器。"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from gradio_bot.domain.adapter.command import CommandAdapter
from gradio_bot.domain.errors import UnsupportedParameterType
from gradio_bot.domain.models import ComponentMeta, EndpointDescriptor, FieldOverride
from gradio_bot.domain.naming import NameTrimmer, normalize_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdaptOptions:
    """适配选项：忽略的子命令、按子命令分组的字段覆盖与名称裁剪策略。"""
    ignores: tuple[str, ...] = ()
    overrides: Mapping[str, Mapping[str, FieldOverride]] = field(default_factory=dict)
    # 为 True 时跳过含不支持参数的端点，否则中止整个适配。
    skip_unsupported: bool = False
    trimmer: NameTrimmer | None = None


def adapt(
    endpoints: Mapping[str, EndpointDescriptor],
    components: Sequence[ComponentMeta] | None = None,
    options: AdaptOptions | None = None,
) -> dict[str, CommandAdapter]:
    """按端点声明顺序构建子命令名到适配器的映射。
    参数:
    - endpoints: 路由到端点描述的映射。
    - components: 远端组件元信息快照。
    - options: 适配选项。
    返回:
    - 有序的子命令名到 CommandAdapter 映射；不支持的参数类型会抛出 UnsupportedParameterType。
    """
    options = options or AdaptOptions()
    adapters: dict[str, CommandAdapter] = {}
    for index, (route, endpoint) in enumerate(endpoints.items()):
        # 路由不含 ASCII 字母数字时按声明位置命名。
        command_name = normalize_name(route, trimmer=options.trimmer, fallback=f"endpoint-{index}")
        if command_name in options.ignores:
            continue
        if command_name in adapters:
            logger.warning(
                "duplicate subcommand name skipped",
                extra={"event": "adapter.subcommand.duplicate_skipped", "op": route, "payload_preview": {"name": command_name}},
            )
            continue
        try:
            adapters[command_name] = CommandAdapter(
                endpoint,
                components,
                options.overrides.get(command_name),
                trimmer=options.trimmer,
            )
        except UnsupportedParameterType as exc:
            logger.warning(
                "endpoint cannot be adapted",
                extra={
                    "event": "adapter.endpoint.unsupported",
                    "op": route,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            if not options.skip_unsupported:
                raise
    return adapters
