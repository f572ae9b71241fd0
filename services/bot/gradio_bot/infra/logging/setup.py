"""日志初始化：JSON 行格式、队列异步写入、按模块或交互放行 DEBUG。"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import SimpleQueue
from typing import Any

from gradio_bot.config import Settings
from gradio_bot.infra.logging.context import CONTEXT_KEYS, get_log_context

SERVICE_NAME = "gradio-bot"

# 业务代码通过 extra 传入的字段，按输出顺序排列。
RECORD_FIELDS = ("event", "external_service", "op", "duration_ms", "status_code", "error_type")
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "celery.redirected")

_listener: QueueListener | None = None

_SENSITIVE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)(authorization\s*[:=]\s*bearer\s+)[^\s,;]+"), r"\1***"),
    (re.compile(r"(?i)\b((?:x-ip-token|token|password|secret)\s*[:=]\s*)[^\s,;]+"), r"\1***"),
    # Webhook 与回调地址的第二段是交互令牌。
    (re.compile(r"(/(?:webhooks|interactions)/\d+/)[^/\s\"']+"), r"\1***"),
)
_STRICT_PATTERN = re.compile(r"(?i)(authorization|password|token|secret)([^,\s}]*)")


def redact_text(value: str | None, mode: str) -> str | None:
    """按模式脱敏；off 原样返回，strict 额外抹掉敏感键后的全部内容。"""
    if value is None:
        return None
    text = str(value)
    mode = mode.lower()
    if mode == "off":
        return text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    if mode == "strict":
        text = _STRICT_PATTERN.sub(r"\1=***", text)
    return text


def render_payload_preview(payload: Any, *, max_chars: int, redaction_mode: str) -> str | None:
    if payload is None:
        return None
    serialized = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False, default=str)
    redacted = redact_text(serialized, redaction_mode) or ""
    if len(redacted) <= max_chars:
        return redacted
    return f"{redacted[:max_chars]}...(truncated)"


class BotRecordFilter(logging.Filter):
    """入队前把 contextvars 写入 record，并按级别、模块与交互 ID 决定是否放行。"""

    def __init__(self, *, min_level: int, debug_modules: set[str], debug_interaction_ids: set[str]) -> None:
        super().__init__()
        self._min_level = min_level
        self._debug_modules = debug_modules
        self._debug_interaction_ids = debug_interaction_ids

    def filter(self, record: logging.LogRecord) -> bool:
        # 写入目标线程读不到调用方的 contextvars。
        ctx = get_log_context()
        for key in CONTEXT_KEYS:
            if getattr(record, key, None) is None:
                setattr(record, key, ctx.get(key))

        if record.levelno >= self._min_level:
            return True
        if record.levelno != logging.DEBUG:
            return False
        if any(record.name == item or record.name.startswith(f"{item}.") for item in self._debug_modules):
            return True
        return record.interaction_id in self._debug_interaction_ids  # type: ignore[attr-defined]


class StructuredJsonFormatter(logging.Formatter):
    """每条记录输出一行 JSON，值为 None 的字段省略。"""

    def __init__(self, *, process_role: str, redaction_mode: str, payload_preview_chars: int) -> None:
        super().__init__()
        self._process_role = process_role
        self._redaction_mode = redaction_mode
        self._payload_preview_chars = payload_preview_chars

    def format(self, record: logging.LogRecord) -> str:
        error = getattr(record, "error", None)
        if error is None and record.exc_info:
            error = self.formatException(record.exc_info)

        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "process_role": self._process_role,
            "module": record.name,
            "message": redact_text(record.getMessage(), self._redaction_mode),
        }
        for key in (*CONTEXT_KEYS, *RECORD_FIELDS):
            entry[key] = getattr(record, key, None)
        entry["error"] = redact_text(str(error), self._redaction_mode) if error is not None else None
        entry["payload_preview"] = render_payload_preview(
            getattr(record, "payload_preview", None),
            max_chars=self._payload_preview_chars,
            redaction_mode=self._redaction_mode,
        )
        return json.dumps({key: value for key, value in entry.items() if value is not None}, ensure_ascii=False)


def configure_logging(settings: Settings, *, process_role: str) -> Path:
    """把根日志器接到队列上，文件写 `<log_dir>/<role>/bot.jsonl`，ERROR 同时写 stderr。
    参数:
    - settings: 日志相关配置。
    - process_role: 进程角色（api、worker），决定日志子目录。
    返回:
    - 日志文件路径。
    """
    global _listener
    shutdown_logging()

    log_root = settings.log_dir if settings.log_dir.is_absolute() else settings.log_dir.resolve()
    log_file = log_root / process_role / "bot.jsonl"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = StructuredJsonFormatter(
        process_role=process_role,
        redaction_mode=settings.log_redaction_mode,
        payload_preview_chars=settings.log_payload_preview_chars,
    )
    file_handler = RotatingFileHandler(
        str(log_file),
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(formatter)

    queue_obj: SimpleQueue[logging.LogRecord] = SimpleQueue()
    queue_handler = QueueHandler(queue_obj)
    queue_handler.addFilter(
        BotRecordFilter(
            min_level=getattr(logging, settings.log_level.upper(), logging.INFO),
            debug_modules=set(settings.log_debug_modules_list()),
            debug_interaction_ids=set(settings.log_debug_interaction_ids_list()),
        )
    )
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    root_logger.addHandler(queue_handler)
    root_logger.setLevel(logging.DEBUG)

    _listener = QueueListener(queue_obj, file_handler, stderr_handler, respect_handler_level=True)
    _listener.start()

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_file


def shutdown_logging() -> None:
    """停止队列监听器并关闭文件句柄。"""
    global _listener
    if _listener is None:
        return
    listener, _listener = _listener, None
    listener.stop()
    for handler in listener.handlers:
        handler.close()
