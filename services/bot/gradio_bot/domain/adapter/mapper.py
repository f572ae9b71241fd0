"""参数映射器：把端点参数列表与组件元信息转换为规范化字段映射表。"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from gradio_bot.domain.enums import ParamType
from gradio_bot.domain.errors import UnsupportedParameterType
from gradio_bot.domain.models import ComponentMeta, EndpointDescriptor, MappingEntry, MappingTable, ParameterDescriptor
from gradio_bot.domain.naming import NameTrimmer, normalize_name

logger = logging.getLogger(__name__)

ATTACHMENT_COMPONENTS = frozenset({"file", "audio", "image"})


def classify_parameter(param: ParameterDescriptor) -> ParamType:
    """按固定顺序判定参数语义类型，无法识别时抛出 UnsupportedParameterType。"""
    tag = param.type_tag
    if tag == "string":
        return ParamType.string
    if tag in ("number", "integer"):
        if tag == "integer" or param.python_type == "int":
            return ParamType.integer
        return ParamType.number
    if tag == "boolean":
        return ParamType.boolean
    # 原始类型都不匹配时才看组件种类，文件类组件的类型标记通常是对象结构。
    if (param.component or "").lower() in ATTACHMENT_COMPONENTS:
        return ParamType.attachment
    if tag == "array":
        return ParamType.array
    raise UnsupportedParameterType(tag, param.component)


def field_name_for(param: ParameterDescriptor, *, trimmer: NameTrimmer | None = None) -> str:
    """按 原始字段名 > 标签 > param-{i} 的顺序推导规范化字段名。"""
    fallback = f"param-{param.position}"
    return normalize_name(param.parameter_name or param.label or fallback, trimmer=trimmer, fallback=fallback)


class ParameterMapper:
    """参数映射器，构建结果被命令构建与调用解析共同复用。"""

    def __init__(self, components: Sequence[ComponentMeta] | None = None, *, trimmer: NameTrimmer | None = None) -> None:
        self._components = tuple(components or ())
        self._trimmer = trimmer

    def match_component(self, param: ParameterDescriptor) -> ComponentMeta | None:
        """按组件种类（忽略大小写）与标签匹配组件元信息，未命中不算错误。"""
        kind = (param.component or "").lower()
        for component in self._components:
            if component.kind.lower() == kind and component.label == param.label:
                return component
        return None

    def build(self, endpoint: EndpointDescriptor) -> MappingTable:
        entries: list[MappingEntry] = []
        used: set[str] = set()
        skipped: list[int] = []
        for param in endpoint.parameters:
            param_type = classify_parameter(param)
            name = field_name_for(param, trimmer=self._trimmer)
            if name in used:
                # 冲突时保留先出现的字段，后者只能依赖远端默认值。
                skipped.append(param.position)
                logger.warning(
                    "duplicate field name skipped",
                    extra={
                        "event": "adapter.field.duplicate_skipped",
                        "op": endpoint.route,
                        "payload_preview": {
                            "name": name,
                            "position": param.position,
                            "parameter_name": param.parameter_name,
                        },
                    },
                )
                continue
            used.add(name)
            entries.append(
                MappingEntry(
                    name=name,
                    type=param_type,
                    parameter_name=param.parameter_name,
                    position=param.position,
                    component=self.match_component(param),
                    parameter=param,
                )
            )
        return MappingTable(
            route=endpoint.route,
            convention=endpoint.calling_convention,
            entries=tuple(entries),
            arity=len(endpoint.parameters),
            skipped=tuple(skipped),
        )
