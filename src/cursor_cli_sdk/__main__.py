"""cursor-cli-sdk 开发者命令行。

支持: python -m cursor_cli_sdk <command>

命令:
    version                 打印 cursor-agent 版本（JSON）
    status                  打印安装与登录状态（JSON）
    commands                打印可用命令（JSON）
    send MESSAGE            新建会话并发送消息，每个事件输出一行 JSON
        --cwd DIR           会话工作目录
        --model MODEL       模型覆盖
        --no-force          不传 --force
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from typing import Any

from .client import CursorAgent
from .config import Config, get_config
from .errors import CursorAgentError
from .types import SendOptions

logger = logging.getLogger(__name__)


def configure_logging(config: Config) -> None:
    """配置日志输出。

    LOG_DEBUG 模式写入临时文件（DEBUG），否则输出到 stderr（INFO）。
    """
    log_handlers: list[logging.Handler] = []
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # 配置 root logger（第三方库）为 WARNING，减少噪音
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers)
    # 只对 cursor_cli_sdk 命名空间启用详细日志
    logging.getLogger("cursor_cli_sdk").setLevel(log_level)


def _print_json(data: dict[str, Any]) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


async def _run_send(agent: CursorAgent, args: argparse.Namespace) -> int:
    session = await agent.create_chat(cwd=args.cwd)
    options = SendOptions(model=args.model or "", force=not args.no_force)

    loop = asyncio.get_running_loop()
    cancel_tasks: set[asyncio.Task[None]] = set()

    def _on_sigint() -> None:
        logger.info("SIGINT received, cancelling session")
        task = loop.create_task(session.cancel())
        cancel_tasks.add(task)
        task.add_done_callback(cancel_tasks.discard)

    # Windows 不支持 add_signal_handler，保持默认的 KeyboardInterrupt
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, _on_sigint)

    try:
        async with session:
            async for event in session.send(args.message, options):
                print(event.model_dump_json(by_alias=True), flush=True)
            cancelled = session.is_cancelled
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)
        if cancel_tasks:
            await asyncio.gather(*cancel_tasks, return_exceptions=True)

    # 128 + SIGINT(2) = 130
    return 130 if cancelled else 0


async def _run(args: argparse.Namespace, config: Config) -> int:
    agent = CursorAgent(config)

    if args.command == "version":
        _print_json((await agent.get_version()).to_dict())
    elif args.command == "status":
        _print_json((await agent.check_status()).to_dict())
    elif args.command == "commands":
        _print_json((await agent.get_available_commands()).to_dict())
    elif args.command == "send":
        return await _run_send(agent, args)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cursor-cli-sdk",
        description="Drive the cursor-agent CLI from the command line.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("version", help="Print the cursor-agent version")
    subparsers.add_parser("status", help="Print installation and authentication status")
    subparsers.add_parser("commands", help="Print the available commands")

    send = subparsers.add_parser("send", help="Send a message in a new chat")
    send.add_argument("message", help="Message text")
    send.add_argument("--cwd", default=None, help="Working directory for the agent")
    send.add_argument("--model", default=None, help="Model override")
    send.add_argument(
        "--no-force",
        action="store_true",
        help="Do not allow file modifications without prompts",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """主入口点。"""
    args = build_parser().parse_args(argv)
    config = get_config()
    configure_logging(config)

    try:
        return asyncio.run(_run(args, config))
    except CursorAgentError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
