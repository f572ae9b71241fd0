"""日志上下文：基于 contextvars 透传 request/interaction/space/task 标识。"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Iterator

_UNSET = object()

_request_id_var: ContextVar[str | None] = ContextVar("log_request_id", default=None)
_interaction_id_var: ContextVar[str | None] = ContextVar("log_interaction_id", default=None)
_space_var: ContextVar[str | None] = ContextVar("log_space", default=None)
_task_id_var: ContextVar[str | None] = ContextVar("log_task_id", default=None)

CONTEXT_KEYS: tuple[str, ...] = ("request_id", "interaction_id", "space", "task_id")


def get_log_context() -> dict[str, str | None]:
    """返回当前协程/线程下的日志上下文字段。"""
    return {
        "request_id": _request_id_var.get(),
        "interaction_id": _interaction_id_var.get(),
        "space": _space_var.get(),
        "task_id": _task_id_var.get(),
    }


@contextmanager
def bind_log_context(
    *,
    request_id: str | None | object = _UNSET,
    interaction_id: str | None | object = _UNSET,
    space: str | None | object = _UNSET,
    task_id: str | None | object = _UNSET,
) -> Iterator[None]:
    """在上下文范围内绑定日志字段，并在退出时自动恢复。"""
    tokens: list[tuple[ContextVar[Any], Token[Any]]] = []
    if request_id is not _UNSET:
        tokens.append((_request_id_var, _request_id_var.set(request_id)))
    if interaction_id is not _UNSET:
        tokens.append((_interaction_id_var, _interaction_id_var.set(interaction_id)))
    if space is not _UNSET:
        tokens.append((_space_var, _space_var.set(space)))
    if task_id is not _UNSET:
        tokens.append((_task_id_var, _task_id_var.set(task_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
