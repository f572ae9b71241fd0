"""命名工具测试：验证字段名规范化、截断与枚举字面量解析。"""

from __future__ import annotations

import re

import pytest

from gradio_bot.domain.naming import clip, normalize_name, parse_choice

NAME_RE = re.compile(r"[a-z0-9-]+")

VARIED_NAMES = [
    "/predict",
    "Image Size",
    "__Seed Value__",
    "--lead and trail--",
    "caf\u00e9 cr\u00e8me",
    "/\u751f\u6210 v2",
    "x" * 80,
    "A" + "-_-" * 20 + "B",
]


def test_normalize_name_lowercases_and_collapses_separators() -> None:
    """非字母数字的连续字符应合并为单个 `-`，开头的 `-` 被去掉。"""
    assert normalize_name("/predict") == "predict"
    assert normalize_name("Image Size") == "image-size"
    assert normalize_name("__Seed Value__") == "seed-value-"


def test_normalize_name_truncates_to_limit() -> None:
    assert normalize_name("a" * 40) == "a" * 32
    assert normalize_name("abcdef", max_length=3) == "abc"


def test_normalize_name_applies_trimmer_and_renormalizes() -> None:
    """自定义 trimmer 的结果应再次规范化并受长度约束。"""
    name = "very-long-prefix-" + "x" * 30

    trimmed = normalize_name(name, trimmer=lambda value, limit: "Tail " + value[-(limit - 5):])

    assert trimmed.startswith("tail-")
    assert len(trimmed) <= 32


def test_clip_keeps_short_text() -> None:
    assert clip("short") == "short"
    assert clip("x" * 150) == "x" * 100


def test_parse_choice_reads_literal_and_list_of_literal() -> None:
    assert parse_choice("Literal['euler', 'dpm++']") == ["euler", "dpm++"]
    assert parse_choice("List[Literal['a', 'b', 'c']]") == ["a", "b", "c"]
    assert parse_choice("list[Literal['1', '2']]") == ["1", "2"]


def test_parse_choice_returns_none_for_plain_types() -> None:
    assert parse_choice("str") is None
    assert parse_choice("") is None
    assert parse_choice(None) is None


@pytest.mark.parametrize("name", VARIED_NAMES)
def test_normalize_name_is_idempotent_and_well_formed(name: str) -> None:
    once = normalize_name(name)

    assert NAME_RE.fullmatch(once)
    assert len(once) <= 32
    assert normalize_name(once) == once


@pytest.mark.parametrize("name", ["日本語", "__", "", "/生成"])
def test_normalize_name_uses_fallback_when_nothing_is_left(name: str) -> None:
    """名字中没有 ASCII 字母数字时结果为空，提供 fallback 后改用它。"""
    assert normalize_name(name) == ""

    named = normalize_name(name, fallback="Endpoint 3")

    assert named == "endpoint-3"
    assert normalize_name(named, fallback="Endpoint 3") == named
