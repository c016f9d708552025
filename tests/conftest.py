"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from cursor_cli_sdk.config import Config  # noqa: E402

# 模拟 cursor-agent 的脚本
FAKE_AGENT = Path(__file__).parent / "fixtures" / "fake_cursor_agent.py"

IS_WINDOWS = sys.platform == "win32"


@pytest.fixture
def fake_agent() -> Path:
    """fake cursor-agent 脚本路径。"""
    return FAKE_AGENT


@pytest.fixture
def agent_config() -> Config:
    """指向 fake cursor-agent 的配置（短超时）。"""
    return Config(
        agent_command=(sys.executable, str(FAKE_AGENT)),
        liveness_timeout=10.0,
        term_timeout=0.5,
        kill_timeout=0.5,
    )


@pytest.fixture
def scenario(monkeypatch: pytest.MonkeyPatch):
    """设置 fake cursor-agent 的场景。"""

    def _set(name: str) -> None:
        monkeypatch.setenv("FAKE_AGENT_SCENARIO", name)

    return _set


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """临时工作目录。"""
    path = tmp_path / "workspace"
    path.mkdir()
    return path
