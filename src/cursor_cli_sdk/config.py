"""cursor-cli-sdk 环境变量配置管理。

环境变量:
    CURSOR_AGENT_PATH: cursor-agent 可执行文件
        - 默认 "cursor-agent"
        - 支持带参数的命令（按 shell 规则拆分），例: "npx cursor-agent"

    CURSOR_API_KEY: 透传给子进程的 API key
        - 未设置时子进程继承父进程环境

    CURSOR_AGENT_TIMEOUT: 单次交互的存活超时（秒）
        - 默认 60，限制在 1-3600 范围

    CURSOR_AGENT_TERM_TIMEOUT: SIGTERM 后等待进程退出的宽限时间（秒）
        - 默认 2.0，限制在 0.1-30 范围
        - 超时和取消共用此宽限时间

    CURSOR_AGENT_KILL_TIMEOUT: SIGKILL 后等待进程退出的时间（秒）
        - 默认 1.0，限制在 0.1-30 范围

    CURSOR_AGENT_LOG_DEBUG: 日志调试模式
        - true/1/yes = 开启 (日志输出到临时文件)
        - false/0/no = 关闭 (默认，日志输出到 stderr)
"""

from __future__ import annotations

import os
import shlex
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_AGENT_COMMAND: tuple[str, ...] = ("cursor-agent",)
DEFAULT_LIVENESS_TIMEOUT = 60.0
DEFAULT_TERM_TIMEOUT = 2.0
DEFAULT_KILL_TIMEOUT = 1.0


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_seconds(
    value: str | None,
    default: float,
    minimum: float,
    maximum: float,
) -> float:
    """解析秒数环境变量。

    Args:
        value: 环境变量值
        default: 未设置或无效时的默认值
        minimum: 下限
        maximum: 上限

    Returns:
        限制在 [minimum, maximum] 范围内的秒数
    """
    if not value or not value.strip():
        return default
    try:
        seconds = float(value)
    except ValueError:
        return default
    if seconds != seconds:  # NaN
        return default
    return max(minimum, min(seconds, maximum))


def _parse_agent_command(value: str | None) -> tuple[str, ...]:
    """解析 CURSOR_AGENT_PATH。"""
    if not value or not value.strip():
        return DEFAULT_AGENT_COMMAND
    try:
        parts = shlex.split(value)
    except ValueError:
        # 引号不匹配时按单个路径处理
        parts = [value.strip()]
    return tuple(parts) or DEFAULT_AGENT_COMMAND


@dataclass
class Config:
    """cursor-cli-sdk 配置。

    Attributes:
        agent_command: cursor-agent 命令前缀（可执行文件 + 可选参数）
        api_key: 透传给子进程的 CURSOR_API_KEY
        liveness_timeout: 单次交互的存活超时（秒）
        term_timeout: SIGTERM 后的宽限时间（秒）
        kill_timeout: SIGKILL 后的等待时间（秒）
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
    """

    agent_command: tuple[str, ...] = DEFAULT_AGENT_COMMAND
    api_key: str | None = None
    liveness_timeout: float = DEFAULT_LIVENESS_TIMEOUT
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    log_debug: bool = False
    log_file: str | None = None

    def command(self, *args: str) -> list[str]:
        """拼接 agent 命令行。"""
        return [*self.agent_command, *args]

    def child_env(self) -> dict[str, str]:
        """构建子进程环境变量：继承父进程，并覆盖 CURSOR_API_KEY。"""
        env = dict(os.environ)
        if self.api_key:
            env["CURSOR_API_KEY"] = self.api_key
        return env

    def __repr__(self) -> str:
        return (
            f"Config(agent_command={' '.join(self.agent_command)}, "
            f"api_key={'set' if self.api_key else 'unset'}, "
            f"liveness_timeout={self.liveness_timeout}, "
            f"term_timeout={self.term_timeout}, "
            f"kill_timeout={self.kill_timeout}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    log_dir = Path(tempfile.gettempdir()) / "cursor-cli-sdk"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"cursor_sdk_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("CURSOR_AGENT_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        agent_command=_parse_agent_command(os.environ.get("CURSOR_AGENT_PATH")),
        api_key=os.environ.get("CURSOR_API_KEY") or None,
        liveness_timeout=_parse_seconds(
            os.environ.get("CURSOR_AGENT_TIMEOUT"),
            DEFAULT_LIVENESS_TIMEOUT, 1.0, 3600.0,
        ),
        term_timeout=_parse_seconds(
            os.environ.get("CURSOR_AGENT_TERM_TIMEOUT"),
            DEFAULT_TERM_TIMEOUT, 0.1, 30.0,
        ),
        kill_timeout=_parse_seconds(
            os.environ.get("CURSOR_AGENT_KILL_TIMEOUT"),
            DEFAULT_KILL_TIMEOUT, 0.1, 30.0,
        ),
        log_debug=log_debug,
        log_file=log_file,
    )


# 全局配置实例（延迟加载）
_config: Config | None = None


def get_config() -> Config:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
