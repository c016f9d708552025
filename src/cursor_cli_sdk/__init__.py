"""cursor-cli-sdk - cursor-agent 子进程对话 SDK。

环境变量:
    CURSOR_AGENT_PATH: cursor-agent 可执行文件（默认 cursor-agent）
    CURSOR_API_KEY: 透传给子进程的 API key
    CURSOR_AGENT_TIMEOUT: 单次交互的存活超时（默认 60 秒）
    CURSOR_AGENT_LOG_DEBUG: 日志调试模式 (默认 false)

用法:
    from cursor_cli_sdk import CursorAgent

    agent = CursorAgent()
    session = await agent.create_chat(cwd="/path/to/project")
    async for event in session.send("Summarize the README"):
        print(event)
"""

__version__ = "0.1.0"

from .client import CursorAgent
from .config import Config, get_config, load_config, reload_config
from .errors import (
    AgentProcessError,
    CursorAgentError,
    NotBoundError,
    ProcessBusyError,
    SessionBusyError,
    SessionClosedError,
    SessionCreationError,
    SpawnError,
    TimeoutExceeded,
)
from .parsers import (
    AgentEvent,
    AssistantEvent,
    ErrorEvent,
    OpaqueEvent,
    ProgressEvent,
    ResultEvent,
    SystemEvent,
    UserEvent,
    decode,
    is_terminal,
)
from .session import ChatSession, SessionState
from .types import CommandInfo, CommandListing, SendOptions, StatusInfo, VersionInfo

__all__ = [
    "__version__",
    "CursorAgent",
    "ChatSession",
    "SessionState",
    "SendOptions",
    "VersionInfo",
    "StatusInfo",
    "CommandInfo",
    "CommandListing",
    "Config",
    "get_config",
    "load_config",
    "reload_config",
    "CursorAgentError",
    "SessionCreationError",
    "NotBoundError",
    "SessionClosedError",
    "SessionBusyError",
    "ProcessBusyError",
    "SpawnError",
    "AgentProcessError",
    "TimeoutExceeded",
    "AgentEvent",
    "SystemEvent",
    "UserEvent",
    "AssistantEvent",
    "ResultEvent",
    "ErrorEvent",
    "ProgressEvent",
    "OpaqueEvent",
    "decode",
    "is_terminal",
]
