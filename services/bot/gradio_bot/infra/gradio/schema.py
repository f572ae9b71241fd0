"""远端接口描述解码：把 info/config 响应转换为端点与组件值对象。"""

from __future__ import annotations

from typing import Any

from gradio_bot.domain.models import ComponentMeta, EndpointDescriptor, ParameterDescriptor


def _type_tag(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("type"), str):
        return value["type"]
    return None


def _python_type(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("type") or "")
    return str(value or "")


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def decode_parameter(position: int, raw: dict[str, Any]) -> ParameterDescriptor:
    has_default = raw.get("parameter_has_default")
    return ParameterDescriptor(
        position=position,
        parameter_name=raw.get("parameter_name") or None,
        label=raw.get("label") or None,
        description=raw.get("description") or None,
        type_tag=_type_tag(raw.get("type")),
        python_type=_python_type(raw.get("python_type")),
        component=str(raw.get("component") or ""),
        has_default=has_default if isinstance(has_default, bool) else None,
        default=raw.get("parameter_default"),
    )


def decode_endpoints(info: dict[str, Any]) -> dict[str, EndpointDescriptor]:
    """解码 named_endpoints，保持服务端返回顺序。"""
    endpoints: dict[str, EndpointDescriptor] = {}
    for route, payload in (info.get("named_endpoints") or {}).items():
        parameters = (payload or {}).get("parameters") or []
        endpoints[route] = EndpointDescriptor(
            route=route,
            parameters=tuple(decode_parameter(index, raw) for index, raw in enumerate(parameters)),
        )
    return endpoints


def decode_components(config: dict[str, Any]) -> list[ComponentMeta]:
    components: list[ComponentMeta] = []
    for raw in config.get("components") or []:
        props = raw.get("props") or {}
        components.append(
            ComponentMeta(
                kind=str(raw.get("type") or ""),
                label=props.get("label"),
                minimum=_number(props.get("minimum")),
                maximum=_number(props.get("maximum")),
                value=props.get("value"),
            )
        )
    return components


def resolve_fn_index(config: dict[str, Any], route: str) -> int:
    """按 api_name 在 dependencies 中定位函数序号。"""
    api_name = route.lstrip("/")
    for index, dependency in enumerate(config.get("dependencies") or []):
        if dependency.get("api_name") == api_name:
            # 新版本服务端以 id 作为 fn_index，旧版本使用数组下标。
            dependency_id = dependency.get("id")
            return dependency_id if isinstance(dependency_id, int) else index
    raise KeyError(f"unknown endpoint: {route}")
