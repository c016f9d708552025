"""cursor-cli-sdk 异常类。

cursor-cli-sdk v0.1.0

异常层级：
- CursorAgentError: 基础异常
  - SessionCreationError: create-chat 调用失败或返回空
  - NotBoundError: 会话尚未绑定 chat ID 就发送消息
  - SessionClosedError: 会话已 cleanup，不可再使用
  - SessionBusyError: 会话已有进行中的 send
  - ProcessBusyError: 控制器已持有一个存活进程
  - SpawnError: 可执行文件不存在或无法启动
  - AgentProcessError: 子进程失败（非零退出 / result 非 success）
    - TimeoutExceeded: 存活超时触发了终止升级
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .parsers import ResultEvent

__all__ = [
    "CursorAgentError",
    "SessionCreationError",
    "NotBoundError",
    "SessionClosedError",
    "SessionBusyError",
    "ProcessBusyError",
    "SpawnError",
    "AgentProcessError",
    "TimeoutExceeded",
]


class CursorAgentError(Exception):
    """cursor-cli-sdk 基础异常。"""
    pass


class SessionCreationError(CursorAgentError):
    """create-chat 调用失败或输出为空。"""
    pass


class NotBoundError(CursorAgentError):
    """会话没有 chat ID（未调用 create()）。"""

    def __init__(self, message: str = "Session ID not available. Call create() first.") -> None:
        super().__init__(message)


class SessionClosedError(CursorAgentError):
    """会话已 cleanup。需要重新构造一个新的会话。"""

    def __init__(self, message: str = "Session has been cleaned up; create a new session") -> None:
        super().__init__(message)


class SessionBusyError(CursorAgentError):
    """会话已有进行中的 send（调用方需先等待结束或 cancel）。"""
    pass


class ProcessBusyError(CursorAgentError):
    """ProcessRunner 已持有一个存活进程。"""
    pass


class SpawnError(CursorAgentError):
    """可执行文件不存在或无法启动。

    Attributes:
        argv: 尝试执行的命令行
    """

    def __init__(self, argv: list[str], reason: str) -> None:
        self.argv = list(argv)
        self.reason = reason
        executable = argv[0] if argv else "<empty>"
        super().__init__(f"Failed to spawn {executable}: {reason}")


class AgentProcessError(CursorAgentError):
    """Agent 子进程失败。

    reason 取值：
    - "exit_code": 非零退出且没有成功的 result 事件
    - "result_error": result 事件的 subtype 不是 success
    - "timeout": 存活超时（见 TimeoutExceeded）

    Attributes:
        returncode: 子进程退出码（未知时为 None）
        stderr: 累积的 stderr 文本（用于诊断）
        reason: 失败原因代码
        result: 触发失败的 result 事件（仅 reason="result_error"）
    """

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
        reason: str = "exit_code",
        result: ResultEvent | None = None,
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        self.reason = reason
        self.result = result
        super().__init__(message)


class TimeoutExceeded(AgentProcessError):
    """存活计时器到期，进程已被 SIGTERM -> SIGKILL 终止。

    Attributes:
        timeout: 触发的超时时长（秒）
    """

    def __init__(
        self,
        timeout: float,
        *,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.timeout = timeout
        super().__init__(
            f"Cursor agent process timeout after {timeout:g}s",
            returncode=returncode,
            stderr=stderr,
            reason="timeout",
        )
