"""领域异常定义：区分构建期致命错误与单次调用内的可恢复错误。"""

from __future__ import annotations


class BridgeError(Exception):
    """适配层异常基类，消息可直接展示给用户。"""


class UnsupportedParameterType(BridgeError):
    """端点参数超出支持的类型范围，端点无法被适配。"""

    def __init__(self, type_tag: str | None, component: str | None = None) -> None:
        super().__init__(f'Unsupported parameter type "{type_tag}"')
        self.type_tag = type_tag
        self.component = component


class UnsupportedOptionType(BridgeError):
    """解析阶段遇到未知字段类型，说明构建期约束被破坏。"""

    def __init__(self, option_type: object) -> None:
        super().__init__(f'Unsupported option type "{option_type}"')
        self.option_type = option_type


class InvalidChoice(BridgeError):
    """数组字段取值不在枚举集合内。"""

    def __init__(self, field_name: str, invalid: list[object]) -> None:
        super().__init__(f'Invalid choice for parameter "{field_name}"')
        self.field_name = field_name
        self.invalid = invalid


class UnknownSubcommand(UnsupportedOptionType):
    """调用指向的子命令未注册。"""

    def __init__(self, name: str | None) -> None:
        BridgeError.__init__(self, f'Unknown subcommand "{name}"')
        self.option_type = "subcommand"
        self.name = name
