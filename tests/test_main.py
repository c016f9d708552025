"""开发者命令行测试。"""

from __future__ import annotations

import json
import logging
from unittest import mock

import pytest

from cursor_cli_sdk import __main__ as cli
from cursor_cli_sdk.config import Config


@pytest.fixture
def use_config(agent_config: Config):
    """让命令行使用 fake cursor-agent。"""
    with mock.patch.object(cli, "get_config", return_value=agent_config), \
            mock.patch.object(cli, "configure_logging"):
        yield agent_config


class TestParser:
    """测试参数解析。"""

    def test_send_arguments(self):
        args = cli.build_parser().parse_args(
            ["send", "hello", "--cwd", "/tmp", "--model", "gpt-5", "--no-force"]
        )
        assert args.command == "send"
        assert args.message == "hello"
        assert args.cwd == "/tmp"
        assert args.model == "gpt-5"
        assert args.no_force is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestCommands:
    """测试子命令输出。"""

    def test_version(self, use_config, capsys):
        assert cli.main(["version"]) == 0
        assert json.loads(capsys.readouterr().out) == {"version": "2025.09.18-fake"}

    def test_status(self, use_config, capsys):
        assert cli.main(["status"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["installed"] is True
        assert data["authenticated"] is True

    def test_send_prints_events(self, use_config, scenario, capsys):
        scenario("success")
        assert cli.main(["send", "hello"]) == 0

        lines = capsys.readouterr().out.strip().splitlines()
        events = [json.loads(line) for line in lines]
        assert [e["type"] for e in events] == ["system", "result"]
        assert events[0]["apiKeySource"] in ("env", "login")

    def test_send_failure_exit_code(self, use_config, scenario, capsys):
        scenario("crash")
        assert cli.main(["send", "hello"]) == 1
        assert "exited with code 3" in capsys.readouterr().err


class TestLogging:
    """测试日志配置。"""

    def test_debug_log_file(self, tmp_path, monkeypatch):
        log_file = tmp_path / "debug.log"
        root = logging.getLogger()
        package_logger = logging.getLogger("cursor_cli_sdk")
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)
        monkeypatch.setattr(package_logger, "level", package_logger.level)

        cli.configure_logging(Config(log_debug=True, log_file=str(log_file)))
        logging.getLogger("cursor_cli_sdk.test").debug("hello debug")
        for handler in root.handlers:
            handler.flush()
            handler.close()

        assert package_logger.level == logging.DEBUG
        assert "hello debug" in log_file.read_text(encoding="utf-8")
