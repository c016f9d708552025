"""CursorAgent 辅助调用测试。

辅助调用（version / status / help）永不抛异常，失败转换为结构化结果。
"""

from __future__ import annotations

from pathlib import Path
from unittest import mock

import pytest

from cursor_cli_sdk import client as client_module
from cursor_cli_sdk.client import CursorAgent
from cursor_cli_sdk.config import Config
from cursor_cli_sdk.errors import SessionCreationError
from cursor_cli_sdk.session import SessionState
from cursor_cli_sdk.types import INSTALL_HINT

MISSING = Config(agent_command=("definitely-not-a-cursor-agent-binary",))


class TestCreateChat:
    """测试 create_chat。"""

    @pytest.mark.asyncio
    async def test_create_chat(self, agent_config: Config, workspace: Path):
        agent = CursorAgent(agent_config)
        session = await agent.create_chat(cwd=workspace)
        try:
            assert session.chat_id == "chat-123"
            assert session.working_directory == workspace
            assert session.state is SessionState.BOUND
            assert session.config is agent_config
        finally:
            await session.cleanup()

    @pytest.mark.asyncio
    async def test_create_chat_failure(self, agent_config: Config, scenario):
        scenario("create_fail")
        with pytest.raises(SessionCreationError):
            await CursorAgent(agent_config).create_chat()


class TestGetVersion:
    """测试 get_version。"""

    @pytest.mark.asyncio
    async def test_version_trimmed(self, agent_config: Config):
        info = await CursorAgent(agent_config).get_version()
        assert info.version == "2025.09.18-fake"
        assert info.success
        assert info.to_dict() == {"version": "2025.09.18-fake"}

    @pytest.mark.asyncio
    async def test_version_failure(self, agent_config: Config, scenario):
        scenario("version_fail")
        info = await CursorAgent(agent_config).get_version()
        assert info.version == ""
        assert "version unavailable" in info.error

    @pytest.mark.asyncio
    async def test_version_missing_binary(self):
        info = await CursorAgent(MISSING).get_version()
        assert not info.success
        assert info.error.startswith("Failed to get cursor-agent version")

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_version_timeout(self, agent_config: Config, scenario):
        scenario("version_hang")
        with mock.patch.object(client_module, "VERSION_TIMEOUT", 0.5):
            info = await CursorAgent(agent_config).get_version()
        assert "timeout" in info.error


class TestCheckStatus:
    """测试 check_status。"""

    @pytest.mark.asyncio
    async def test_logged_in(self, agent_config: Config):
        status = await CursorAgent(agent_config).check_status()
        assert status.installed is True
        assert status.authenticated is True
        assert status.output == "Logged in as test@example.com"
        assert status.error is None

    @pytest.mark.asyncio
    async def test_logged_out(self, agent_config: Config, scenario):
        scenario("status_logged_out")
        status = await CursorAgent(agent_config).check_status()
        assert status.installed is True
        assert status.authenticated is False

    @pytest.mark.asyncio
    async def test_not_installed(self):
        status = await CursorAgent(MISSING).check_status()
        assert status.installed is False
        assert status.authenticated is False
        assert status.error == INSTALL_HINT
        assert status.to_dict() == {
            "installed": False,
            "authenticated": False,
            "error": INSTALL_HINT,
        }

    @pytest.mark.asyncio
    async def test_command_failure(self, agent_config: Config, scenario):
        scenario("status_fail")
        status = await CursorAgent(agent_config).check_status()
        assert status.installed is True
        assert status.authenticated is False
        assert "partial output" in status.output
        assert status.error == "network unreachable"

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_timeout(self, agent_config: Config, scenario):
        scenario("status_hang")
        with mock.patch.object(client_module, "STATUS_TIMEOUT", 0.5):
            status = await CursorAgent(agent_config).check_status()
        assert status.installed is True
        assert status.authenticated is False
        assert status.error == "Cursor CLI authentication check timeout"


class TestAvailableCommands:
    """测试 get_available_commands。"""

    @pytest.mark.asyncio
    async def test_help_available(self, agent_config: Config):
        listing = await CursorAgent(agent_config).get_available_commands()
        assert [c.name for c in listing.commands] == ["help", "model", "status"]
        assert listing.help_text.startswith("Usage: cursor-agent")

        data = listing.to_dict()
        assert data["commands"][1]["input"] == {
            "hint": "model name (e.g., sonnet-4, gpt-4, claude-3)"
        }
        assert "input" not in data["commands"][0]

    @pytest.mark.asyncio
    async def test_help_failure_falls_back(self, agent_config: Config, scenario):
        scenario("help_fail")
        listing = await CursorAgent(agent_config).get_available_commands()
        assert [c.name for c in listing.commands] == ["help", "model"]
        assert listing.help_text == "Help not available"

    @pytest.mark.asyncio
    async def test_help_missing_binary(self):
        listing = await CursorAgent(MISSING).get_available_commands()
        assert listing.help_text == "Help not available"
