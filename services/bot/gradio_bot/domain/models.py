"""领域数据结构定义：端点描述、命令字段规格、调用负载与进度事件等值对象。"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from gradio_bot.domain.enums import CallingConvention, EventStage, ParamType


@dataclass(frozen=True, slots=True)
class ComponentMeta:
    """远端界面组件元信息，用于补充数值范围与默认值。"""
    kind: str
    label: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    value: Any = None


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """端点单个参数描述，构建后不可变。"""
    position: int
    parameter_name: str | None
    label: str | None
    description: str | None
    type_tag: str | None
    python_type: str
    component: str
    # 旧版本服务端不返回该字段，此时为 None。
    has_default: bool | None
    default: Any = None


@dataclass(frozen=True, slots=True)
class EndpointDescriptor:
    """远端端点描述：路由与有序参数列表。"""
    route: str
    parameters: tuple[ParameterDescriptor, ...]

    @property
    def calling_convention(self) -> CallingConvention:
        """任一参数缺少原始字段名时只能按位置调用。"""
        if any(not param.parameter_name for param in self.parameters):
            return CallingConvention.positional
        return CallingConvention.named


@dataclass(frozen=True, slots=True)
class FieldOverride:
    """单字段覆盖选项：显式必填标记与本地化描述。"""
    required: bool | None = None
    localizations: Mapping[str, str] | None = None


@dataclass(frozen=True, slots=True)
class MappingEntry:
    """映射表条目：规范化字段名到原始参数的对应关系。"""
    name: str
    type: ParamType
    parameter_name: str | None
    position: int
    component: ComponentMeta | None
    parameter: ParameterDescriptor


@dataclass(frozen=True, slots=True)
class MappingTable:
    """单个端点的字段映射表，构建与解析共用同一份实例。"""
    route: str
    convention: CallingConvention
    entries: tuple[MappingEntry, ...]
    # 端点参数总数，位置负载按此长度对齐。
    arity: int = 0
    # 因规范化名称冲突被跳过的参数位置。
    skipped: tuple[int, ...] = ()

    def names(self) -> list[str]:
        return [entry.name for entry in self.entries]

    def get(self, name: str) -> MappingEntry | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True, slots=True)
class CommandFieldSpec:
    """命令字段规格：名称、描述、类型、必填与取值约束。"""
    name: str
    description: str
    type: ParamType
    required: bool
    choices: tuple[str, ...] = ()
    min_value: float | None = None
    max_value: float | None = None
    description_localizations: Mapping[str, str] | None = None


@dataclass(frozen=True, slots=True)
class SubcommandSpec:
    """伞形命令下的子命令规格。"""
    name: str
    description: str
    fields: tuple[CommandFieldSpec, ...]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """顶层命令规格，字段与子命令二选一。"""
    name: str
    description: str
    fields: tuple[CommandFieldSpec, ...] = ()
    subcommands: tuple[SubcommandSpec, ...] = ()


@dataclass(frozen=True, slots=True)
class AttachmentRef:
    """用户在命令中提交的附件引用。"""
    url: str
    filename: str | None = None
    content_type: str | None = None


@dataclass(frozen=True, slots=True)
class FileReference:
    """延迟上传引用，由传输层在发送前序列化为远端文件结构。"""
    url: str
    name: str | None = None


class _Omitted:
    """位置负载中被省略的槽位标记。"""

    _instance: _Omitted | None = None

    def __new__(cls) -> _Omitted:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "OMITTED"

    def __bool__(self) -> bool:
        return False


OMITTED = _Omitted()


@dataclass(slots=True)
class InvocationPayload:
    """单次调用负载：位置数组或按原始字段名组织的映射。"""
    route: str
    convention: CallingConvention
    data: list[Any] | dict[str, Any]


@dataclass(frozen=True, slots=True)
class ProgressItem:
    """进度条目。"""
    index: int | float | None = None
    length: int | float | None = None
    unit: str | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True)
class LogEvent:
    text: str
    level: str | None = None


@dataclass(frozen=True, slots=True)
class StatusEvent:
    stage: str
    message: str | None = None
    progress_items: tuple[ProgressItem, ...] = ()

    @property
    def is_error(self) -> bool:
        return self.stage == EventStage.error.value


@dataclass(frozen=True, slots=True)
class DataEvent:
    values: list[Any] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class UnknownEvent:
    """无法识别的远端事件，状态机忽略。"""
    kind: str
    raw: Mapping[str, Any] | None = None


ProgressEvent: TypeAlias = LogEvent | StatusEvent | DataEvent | UnknownEvent


@dataclass(frozen=True, slots=True)
class AttachmentDescriptor:
    """结果中识别出的文件描述。"""
    url: str
    orig_name: str | None = None
    mime_type: str | None = None


@dataclass(slots=True)
class Attachment:
    """已拉取内容的附件。"""
    url: str
    name: str
    content: bytes
