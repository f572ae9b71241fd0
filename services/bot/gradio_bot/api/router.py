"""API 总路由配置，注册交互入口与命令定义子路由。"""

from __future__ import annotations

from fastapi import APIRouter

from gradio_bot.api.v1.commands import router as commands_router
from gradio_bot.api.v1.interactions import router as interactions_router
from gradio_bot.config import get_settings

settings = get_settings()

api_router = APIRouter(prefix=settings.api_prefix)
api_router.include_router(interactions_router, tags=["interactions"])
api_router.include_router(commands_router, tags=["commands"])
