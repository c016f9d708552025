"""cursor-cli-sdk 类型定义。

cursor-cli-sdk v0.1.0

定义发送选项以及辅助调用（version / status / help）的返回结构。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "SendOptions",
    "VersionInfo",
    "StatusInfo",
    "CommandInfo",
    "CommandListing",
    "INSTALL_HINT",
]

# cursor-agent 未安装时返回给调用方的提示
INSTALL_HINT = "Cursor CLI not found. Install with: curl https://cursor.com/install -fsS | bash"


@dataclass
class SendOptions:
    """send() 的调用选项。

    Attributes:
        model: 模型覆盖（空 = 使用 agent 默认模型）
        force: 允许 agent 直接修改文件（--force）
    """

    model: str = ""
    force: bool = True


@dataclass
class VersionInfo:
    """--version 查询结果。

    Attributes:
        version: 去除首尾空白的版本字符串（失败时为空）
        error: 错误信息（仅失败时）
    """

    version: str = ""
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """转换为字典格式。"""
        result: dict[str, Any] = {"version": self.version}
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class StatusInfo:
    """status 查询结果。

    Attributes:
        installed: cursor-agent 是否可执行
        authenticated: 输出中是否包含已登录标记
        output: status 命令的原始输出
        error: 错误信息（未安装、超时或命令失败时）
    """

    installed: bool
    authenticated: bool = False
    output: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """转换为字典格式。"""
        result: dict[str, Any] = {
            "installed": self.installed,
            "authenticated": self.authenticated,
        }
        if self.output:
            result["output"] = self.output
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class CommandInfo:
    """一个可用命令的描述。

    Attributes:
        name: 命令名
        description: 命令说明
        input_hint: 参数提示（无参数时为空）
    """

    name: str
    description: str
    input_hint: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "description": self.description}
        if self.input_hint:
            result["input"] = {"hint": self.input_hint}
        return result


@dataclass
class CommandListing:
    """--help 查询结果。

    Attributes:
        commands: 可用命令列表
        help_text: --help 的原始输出（失败时为 "Help not available"）
    """

    commands: list[CommandInfo] = field(default_factory=list)
    help_text: str = ""

    def to_dict(self) -> dict[str, Any]:
        """转换为字典格式。"""
        return {
            "commands": [command.to_dict() for command in self.commands],
            "help_text": self.help_text,
        }
