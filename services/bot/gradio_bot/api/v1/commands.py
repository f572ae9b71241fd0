"""命令定义接口：输出全部机器人的斜杠命令注册载荷。"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from gradio_bot.api.v1.schemas import CommandDefinition
from gradio_bot.application.container import get_interaction_service
from gradio_bot.application.service import InteractionService

router = APIRouter()


def _service() -> InteractionService:
    return get_interaction_service()


@router.get("/commands", response_model=list[CommandDefinition], response_model_exclude_none=True)
def list_commands(service: InteractionService = Depends(_service)) -> list[CommandDefinition]:
    return [CommandDefinition(**item) for item in service.command_definitions()]
