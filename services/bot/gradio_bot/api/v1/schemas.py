"""API 数据模型定义，约束交互请求与响应结构。"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class InteractionRequest(BaseModel):
    """交互请求模型；未声明的字段原样保留供 Worker 使用。"""
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: int
    application_id: str | None = None
    token: str | None = None
    data: dict[str, Any] | None = None


class InteractionResponseData(BaseModel):
    content: str


class InteractionResponse(BaseModel):
    """交互即时响应模型。"""
    type: int
    data: InteractionResponseData | None = None


class CommandOption(BaseModel):
    """命令选项模型，子命令选项会递归嵌套。"""
    model_config = ConfigDict(extra="allow")

    type: int
    name: str
    description: str
    required: bool | None = None
    options: list[CommandOption] | None = None


class CommandDefinition(BaseModel):
    """斜杠命令注册定义模型。"""
    type: int
    name: str
    description: str
    options: list[CommandOption]


CommandOption.model_rebuild()
