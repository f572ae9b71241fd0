"""命令构建测试：验证必填判定、排序、枚举、数值范围与描述回退。"""

from __future__ import annotations

from itertools import permutations
from typing import Any

from gradio_bot.domain.adapter.builder import CommandBuilder
from gradio_bot.domain.adapter.mapper import ParameterMapper
from gradio_bot.domain.enums import ParamType
from gradio_bot.domain.models import ComponentMeta, EndpointDescriptor, FieldOverride, ParameterDescriptor


def _param(
    position: int,
    name: str | None,
    tag: str = "string",
    *,
    python_type: str = "str",
    component: str = "Textbox",
    label: str | None = None,
    description: str | None = None,
    has_default: bool | None = False,
    default: Any = None,
) -> ParameterDescriptor:
    return ParameterDescriptor(
        position=position,
        parameter_name=name,
        label=label,
        description=description,
        type_tag=tag,
        python_type=python_type,
        component=component,
        has_default=has_default,
        default=default,
    )


def _fields(*params: ParameterDescriptor, components=None, overrides=None):
    table = ParameterMapper(components).build(EndpointDescriptor(route="/predict", parameters=params))
    return CommandBuilder(overrides).build_fields(table)


def test_required_fields_are_moved_first_stably() -> None:
    """必填字段排在可选字段之前，同组内保持原顺序。"""
    fields = _fields(
        _param(0, "a", has_default=True),
        _param(1, "b"),
        _param(2, "c", has_default=None),
        _param(3, "d"),
    )

    assert [item.name for item in fields] == ["b", "d", "a", "c"]
    assert [item.required for item in fields] == [True, True, False, False]


def test_override_forces_required_flag_and_localizations() -> None:
    overrides = {
        "a": FieldOverride(required=True, localizations={"zh-CN": "提示词" * 60}),
        "b": FieldOverride(required=False),
    }

    fields = {item.name: item for item in _fields(_param(0, "a", has_default=True), _param(1, "b"), overrides=overrides)}

    assert fields["a"].required is True
    assert fields["b"].required is False
    assert fields["a"].description_localizations is not None
    assert len(fields["a"].description_localizations["zh-CN"]) == 100


def test_string_choices_come_from_literal_type() -> None:
    (field,) = _fields(_param(0, "sampler", python_type="Literal['euler', 'ddim']"))

    assert field.choices == ("euler", "ddim")


def test_array_choices_are_listed_in_description() -> None:
    (field,) = _fields(
        _param(0, "tags", "array", python_type="List[Literal['red', 'blue']]", component="Dropdown", description="Tags"),
    )

    assert field.type is ParamType.array
    assert field.choices == ()
    assert field.description == "Tags (red, blue)"


def test_numeric_bounds_come_from_matched_component() -> None:
    """组件的最小值为 0 时也应保留。"""
    components = [ComponentMeta(kind="slider", label="Scale", minimum=0, maximum=20, value=7.5)]

    (field,) = _fields(
        _param(0, "scale", "number", python_type="float", component="Slider", label="Scale"),
        components=components,
    )

    assert field.min_value == 0
    assert field.max_value == 20


def test_description_fallback_chain() -> None:
    fields = {
        item.name: item
        for item in _fields(
            _param(0, "a", description="Described"),
            _param(1, "b", label="Labelled"),
            _param(2, "c"),
            _param(3, "d", description="x" * 150),
        )
    }

    assert fields["a"].description == "Described"
    assert fields["b"].description == "Labelled"
    assert fields["c"].description == "c"
    assert fields["d"].description == "x" * 100


def test_required_first_order_holds_for_every_arrangement() -> None:
    """任意 has_default 排列下，必填字段都排在前面且各组内保持声明顺序。"""
    flags = (False, True, None, False, True)
    for arrangement in set(permutations(flags)):
        params = [_param(index, f"p{index}", has_default=flag) for index, flag in enumerate(arrangement)]

        fields = _fields(*params)

        required = [f"p{index}" for index, flag in enumerate(arrangement) if flag is False]
        optional = [f"p{index}" for index, flag in enumerate(arrangement) if flag is not False]
        assert [item.name for item in fields] == required + optional
        assert [item.required for item in fields] == [True] * len(required) + [False] * len(optional)


def test_too_many_string_choices_move_to_description() -> None:
    """超过 25 个枚举值或单个值超过 100 字符时，不生成选项而写入描述。"""
    many = ", ".join(f"'s{index}'" for index in range(26))
    (crowded,) = _fields(_param(0, "style", python_type=f"Literal[{many}]", description="Style"))
    (wide,) = _fields(_param(0, "mode", python_type=f"Literal['short', '{'w' * 101}']", description="Mode"))
    (fits,) = _fields(_param(0, "size", python_type=f"Literal[{', '.join(repr(str(i)) for i in range(25))}]"))

    assert crowded.choices == ()
    assert crowded.description.startswith("Style (s0, s1, s2")
    assert len(crowded.description) <= 100
    assert wide.choices == ()
    assert wide.description.startswith("Mode (short, ")
    assert len(fits.choices) == 25
