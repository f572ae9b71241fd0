"""交互入口接口：接收命令宿主推送的交互并给出即时响应。"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from gradio_bot.api.v1.schemas import InteractionRequest, InteractionResponse
from gradio_bot.application.container import get_interaction_service
from gradio_bot.application.service import InteractionService

router = APIRouter()


def _service() -> InteractionService:
    return get_interaction_service()


@router.post("/interactions", response_model=InteractionResponse, response_model_exclude_none=True)
def receive_interaction(
    request: InteractionRequest,
    service: InteractionService = Depends(_service),
) -> InteractionResponse:
    """应答 PING，已知命令延迟确认并投递到 Worker。
    参数:
    - request: 交互 JSON。
    - service: 交互服务。
    返回:
    - 交互响应；未知命令返回带提示文本的消息响应。
    """
    return InteractionResponse(**service.accept(request.model_dump(exclude_none=True)))
