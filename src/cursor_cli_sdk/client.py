"""cursor-agent 辅助调用门面。

cursor-cli-sdk v0.1.0

CursorAgent 由调用方显式构造并传递（没有全局单例）。除 create_chat 外，
所有查询都不抛异常：失败被转换为结构化结果。

Example:
    agent = CursorAgent()
    status = await agent.check_status()
    if status.installed and status.authenticated:
        session = await agent.create_chat(cwd="/path/to/project")
"""

from __future__ import annotations

import logging
from pathlib import Path

from .config import Config, get_config
from .errors import SpawnError
from .runtime import run_command
from .session import ChatSession
from .types import (
    INSTALL_HINT,
    CommandInfo,
    CommandListing,
    StatusInfo,
    VersionInfo,
)

__all__ = [
    "CursorAgent",
    "VERSION_TIMEOUT",
    "STATUS_TIMEOUT",
    "HELP_TIMEOUT",
]

logger = logging.getLogger(__name__)

# 各辅助调用的超时（秒）
VERSION_TIMEOUT = 3.0
STATUS_TIMEOUT = 10.0
HELP_TIMEOUT = 5.0

# status 输出中表示已登录的标记
_AUTHENTICATED_MARKERS = ("Logged in", "authenticated")

_HELP_COMMAND = CommandInfo(name="help", description="Show help information")
_MODEL_COMMAND = CommandInfo(
    name="model",
    description="Change the AI model",
    input_hint="model name (e.g., sonnet-4, gpt-4, claude-3)",
)
_STATUS_COMMAND = CommandInfo(
    name="status",
    description="Check authentication and connection status",
)


class CursorAgent:
    """cursor-agent 可执行文件的门面。

    Attributes:
        config: 使用的配置
    """

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()

    async def create_chat(self, cwd: str | Path | None = None) -> ChatSession:
        """新建并绑定一个会话。

        Args:
            cwd: 会话工作目录（None = 当前目录）

        Raises:
            SessionCreationError: create-chat 失败
        """
        session = ChatSession(cwd, config=self.config)
        return await session.create()

    async def get_version(self) -> VersionInfo:
        """查询 cursor-agent --version。"""
        argv = self.config.command("--version")
        try:
            output = await run_command(argv, timeout=VERSION_TIMEOUT, env=self.config.child_env())
        except SpawnError as e:
            return VersionInfo(error=f"Failed to get cursor-agent version: {e.reason}")
        except TimeoutError:
            return VersionInfo(
                error=f"Failed to get cursor-agent version: timeout after {VERSION_TIMEOUT:g}s"
            )
        except Exception as e:
            logger.exception("Unexpected error while querying cursor-agent version")
            return VersionInfo(error=f"Failed to get cursor-agent version: {e}")

        if not output.ok:
            detail = output.stderr.strip() or f"exit code {output.returncode}"
            return VersionInfo(error=f"Failed to get cursor-agent version: {detail}")
        return VersionInfo(version=output.stdout.strip())

    async def check_status(self) -> StatusInfo:
        """查询安装与登录状态（cursor-agent status）。"""
        argv = self.config.command("status")
        try:
            output = await run_command(argv, timeout=STATUS_TIMEOUT, env=self.config.child_env())
        except SpawnError as e:
            logger.debug(f"cursor-agent not available: {e}")
            return StatusInfo(installed=False, error=INSTALL_HINT)
        except TimeoutError:
            logger.warning(f"cursor-agent status timed out after {STATUS_TIMEOUT:g}s")
            return StatusInfo(installed=True, error="Cursor CLI authentication check timeout")
        except Exception as e:
            logger.exception("Unexpected error while checking cursor-agent status")
            return StatusInfo(installed=True, error=str(e))

        if not output.ok:
            return StatusInfo(
                installed=True,
                output=output.stdout,
                error=output.stderr.strip()
                or "Cursor CLI not working properly or not authenticated",
            )

        stdout = output.stdout.strip()
        return StatusInfo(
            installed=True,
            authenticated=any(marker in stdout for marker in _AUTHENTICATED_MARKERS),
            output=stdout,
            error=output.stderr.strip() or None,
        )

    async def get_available_commands(self) -> CommandListing:
        """读取 --help，失败时返回最小命令列表。"""
        argv = self.config.command("--help")
        try:
            output = await run_command(argv, timeout=HELP_TIMEOUT, env=self.config.child_env())
        except (SpawnError, TimeoutError) as e:
            logger.debug(f"cursor-agent --help failed: {e!r}")
            return _fallback_listing()
        except Exception:
            logger.exception("Unexpected error while reading cursor-agent help")
            return _fallback_listing()

        if not output.ok:
            logger.debug(f"cursor-agent --help exited with code {output.returncode}")
            return _fallback_listing()

        return CommandListing(
            commands=[_HELP_COMMAND, _MODEL_COMMAND, _STATUS_COMMAND],
            help_text=output.stdout.strip(),
        )


def _fallback_listing() -> CommandListing:
    return CommandListing(
        commands=[_HELP_COMMAND, _MODEL_COMMAND],
        help_text="Help not available",
    )
