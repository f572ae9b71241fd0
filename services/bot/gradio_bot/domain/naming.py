"""命名与类型编码工具：字段名规范化、描述截断与枚举字面量解析。"""

from __future__ import annotations

import re
from collections.abc import Callable

MAX_NAME_LENGTH = 32
MAX_DESCRIPTION_LENGTH = 100

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_LITERAL_RE = re.compile(r"^(?:List\[|list\[)?Literal\['(.*)'\]\]?$")

NameTrimmer = Callable[[str, int], str]


def normalize_name(
    name: str,
    *,
    max_length: int = MAX_NAME_LENGTH,
    trimmer: NameTrimmer | None = None,
    fallback: str | None = None,
) -> str:
    """转小写、合并非字母数字为 `-`、去掉开头的 `-`，超长时截断或交由 trimmer 处理。

    结果为空（例如名字只含非 ASCII 字符）时改用规范化后的 fallback。
    """
    normalized = _NON_ALNUM_RE.sub("-", name.lower()).lstrip("-")
    if len(normalized) > max_length:
        if trimmer is not None:
            # trimmer 由调用方提供，结果需要再走一遍规范化以保证格式。
            trimmed = trimmer(normalized, max_length)
            normalized = _NON_ALNUM_RE.sub("-", trimmed.lower()).lstrip("-")
        normalized = normalized[:max_length]
    if not normalized and fallback:
        return normalize_name(fallback, max_length=max_length)
    return normalized


def clip(text: str, limit: int = MAX_DESCRIPTION_LENGTH) -> str:
    return text[:limit]


def parse_choice(python_type: str | None) -> list[str] | None:
    """解析 `Literal['a', 'b']` 形式的枚举集合，不匹配时返回 None。"""
    if not python_type:
        return None
    match = _LITERAL_RE.match(python_type.strip())
    if not match:
        return None
    choices = match.group(1).split("', '")
    if not choices:
        return None
    return choices
