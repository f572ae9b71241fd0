"""领域枚举定义：统一参数语义类型、调用约定与远端进度阶段取值。"""

from __future__ import annotations

from enum import Enum


class ParamType(str, Enum):
    """命令字段语义类型枚举。"""
    string = "string"
    integer = "integer"
    number = "number"
    boolean = "boolean"
    attachment = "attachment"
    array = "array"


class CallingConvention(str, Enum):
    """远端调用约定：按位置数组或按参数名映射。"""
    positional = "positional"
    named = "named"


class EventStage(str, Enum):
    """远端状态事件阶段枚举。"""
    pending = "pending"
    running = "running"
    generating = "generating"
    complete = "complete"
    error = "error"
