"""全局配置加载模块：从环境变量构建运行参数并提供缓存访问。"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gradio_bot.domain.models import FieldOverride


def _csv_to_list(value: str) -> list[str]:
    """将逗号分隔字符串转换为去空白列表。"""
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """系统运行配置对象，从环境变量读取并提供类型化访问。"""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Gradio Bot"
    api_prefix: str = "/api/v1"

    discord_application_id: str = ""
    discord_api_base_url: str = "https://discord.com/api/v10"
    discord_request_timeout_seconds: int = 30

    gradio_spaces: str = ""
    gradio_ignored_endpoints: str = ""
    gradio_field_overrides: str = ""
    gradio_skip_unsupported_endpoints: bool = True
    hf_token: str | None = None
    hf_api_base_url: str = "https://huggingface.co"
    token_borrower_space: str | None = None
    attachment_proxy: str | None = None
    gradio_request_timeout_seconds: int = 30
    gradio_stream_read_timeout_seconds: int = 600

    stream_progress: bool = True
    status_update_interval_seconds: float = Field(default=5.0, ge=0)
    # 单条消息最多携带 10 个附件。
    attachment_batch_size: int = Field(default=10, ge=1, le=10)

    redis_url: str = "redis://localhost:6379/0"
    celery_task_always_eager: bool = False

    log_dir: Path = Field(default=Path("./logs"))
    log_level: str = "INFO"
    log_debug_modules: str = ""
    log_debug_interaction_ids: str = ""
    log_redaction_mode: str = "standard"
    log_payload_preview_chars: int = 512
    log_max_bytes: int = 20 * 1024 * 1024
    log_backup_count: int = 5

    def gradio_spaces_list(self) -> list[str]:
        return _csv_to_list(self.gradio_spaces)

    def gradio_ignored_endpoints_list(self) -> list[str]:
        return _csv_to_list(self.gradio_ignored_endpoints)

    def log_debug_modules_list(self) -> list[str]:
        return _csv_to_list(self.log_debug_modules)

    def log_debug_interaction_ids_list(self) -> list[str]:
        return _csv_to_list(self.log_debug_interaction_ids)

    def gradio_field_overrides_map(self) -> dict[str, dict[str, FieldOverride]]:
        """解析按子命令分组的字段覆盖配置；空串视为无覆盖。"""
        if not self.gradio_field_overrides.strip():
            return {}
        raw = json.loads(self.gradio_field_overrides)
        if not isinstance(raw, dict):
            raise ValueError("gradio_field_overrides must be a JSON object")
        overrides: dict[str, dict[str, FieldOverride]] = {}
        for subcommand, fields in raw.items():
            if not isinstance(fields, dict):
                continue
            overrides[str(subcommand)] = {
                str(name): FieldOverride(
                    required=item.get("required"),
                    localizations=item.get("localizations"),
                )
                for name, item in fields.items()
                if isinstance(item, dict)
            }
        return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """构建并缓存 Settings。"""
    settings = Settings()
    # 相对路径统一按当前工作目录解析，避免不同启动方式下语义漂移。
    if not settings.log_dir.is_absolute():
        settings.log_dir = (Path.cwd() / settings.log_dir).resolve()
    return settings
