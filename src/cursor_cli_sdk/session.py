"""cursor-agent 会话。

cursor-cli-sdk v0.1.0

ChatSession 是对外的会话单元：持有 chat ID、工作目录和取消状态，
把一次 send() 编排为 spawn -> 分帧 -> 解码 -> 按序产出事件 -> 退出对账。

状态机：
    UNBOUND --create()--> BOUND --send()--> SENDING --结束--> BOUND
    任意状态 --cleanup()--> CLOSED（终态，不可重新绑定）

Example:
    async with ChatSession(cwd="/path/to/project") as session:
        await session.create()
        async for event in session.send("Explain this repo"):
            print(event)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from enum import Enum
from pathlib import Path

from .config import Config, get_config
from .errors import (
    AgentProcessError,
    NotBoundError,
    SessionBusyError,
    SessionClosedError,
    SessionCreationError,
    SpawnError,
    TimeoutExceeded,
)
from .parsers import AgentEvent, ResultEvent, decode
from .runtime import ExitOutcome, ProcessRunner, ProcessSpec, run_command
from .types import SendOptions

__all__ = [
    "ChatSession",
    "SessionState",
    "DEFAULT_CREATE_TIMEOUT",
]

logger = logging.getLogger(__name__)

# create-chat 是一次性调用，超过此时长视为失败
DEFAULT_CREATE_TIMEOUT = 30.0

# 被直接 break 丢弃的 send() 由事件循环的 asyncgen finalizer 在随后几轮中 aclose()
_FINALIZER_TICKS = 10


class SessionState(str, Enum):
    """会话状态。"""

    UNBOUND = "unbound"
    BOUND = "bound"
    SENDING = "sending"
    CLOSED = "closed"


class ChatSession:
    """一个 cursor-agent 对话。

    一个会话同一时间最多驱动一个子进程。cleanup() 之后会话进入 CLOSED，
    需要新建会话而不是再次 create()。

    Attributes:
        config: 使用的配置
    """

    def __init__(
        self,
        cwd: str | Path | None = None,
        *,
        config: Config | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        self.config = config or get_config()
        self._working_directory = Path(cwd) if cwd is not None else None
        self._chat_id: str | None = None
        self._cancelled = False
        self._state = SessionState.UNBOUND
        # 调用方停止迭代后、回收完成前的 send() 完成事件
        self._send_closing: asyncio.Event | None = None
        self._runner = runner or ProcessRunner(
            liveness_timeout=self.config.liveness_timeout,
            term_timeout=self.config.term_timeout,
            kill_timeout=self.config.kill_timeout,
        )

    # =========================================================================
    # 属性
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def chat_id(self) -> str:
        """chat ID。

        Raises:
            NotBoundError: 尚未 create()
        """
        if not self._chat_id:
            raise NotBoundError()
        return self._chat_id

    @property
    def working_directory(self) -> Path | None:
        """子进程工作目录（None = 当前目录）。"""
        return self._working_directory

    @working_directory.setter
    def working_directory(self, value: str | Path | None) -> None:
        if self._state is SessionState.SENDING:
            raise SessionBusyError("Cannot change working directory while a message is being sent")
        self._working_directory = Path(value) if value is not None else None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_process_running(self) -> bool:
        return self._runner.is_running

    @property
    def process_id(self) -> int | None:
        return self._runner.pid

    # =========================================================================
    # 生命周期
    # =========================================================================

    async def create(self, *, timeout: float = DEFAULT_CREATE_TIMEOUT) -> ChatSession:
        """调用 create-chat 并绑定返回的 chat ID。

        Args:
            timeout: create-chat 的最长等待时间（秒）

        Returns:
            self（便于链式调用）

        Raises:
            SessionClosedError: 会话已 cleanup
            SessionCreationError: 调用失败、超时、非零退出或输出为空
        """
        if self._state is SessionState.CLOSED:
            raise SessionClosedError()
        if self._chat_id:
            raise SessionCreationError(f"Session is already bound to chat {self._chat_id}")

        argv = self.config.command("create-chat")
        try:
            output = await run_command(argv, timeout=timeout, env=self.config.child_env())
        except SpawnError as e:
            logger.warning(f"create-chat failed: {e}")
            raise SessionCreationError(f"Failed to create session: {e}") from e
        except TimeoutError as e:
            logger.warning(f"create-chat timed out after {timeout:g}s")
            raise SessionCreationError(
                f"Failed to create session: create-chat timed out after {timeout:g}s"
            ) from e

        if not output.ok:
            detail = output.stderr.strip() or output.stdout.strip()
            logger.warning(f"create-chat exited with code {output.returncode}: {detail[:500]}")
            raise SessionCreationError(
                f"Failed to create session: create-chat exited with code "
                f"{output.returncode}" + (f": {detail}" if detail else "")
            )

        chat_id = output.stdout.strip()
        if not chat_id:
            raise SessionCreationError("Failed to create session: empty chat ID")

        # 被并发 cleanup 时不再绑定
        if self._state is SessionState.CLOSED:
            raise SessionClosedError()

        self._chat_id = chat_id
        self._state = SessionState.BOUND
        logger.info(f"Created chat session {chat_id}")
        return self

    def build_command(self, message: str, options: SendOptions | None = None) -> list[str]:
        """构建一次交互的完整命令行。

        Raises:
            NotBoundError: 尚未 create()
        """
        options = options or SendOptions()
        args = ["-p", "--output-format", "stream-json"]

        # 默认允许修改文件，不弹出确认
        if options.force:
            args.append("--force")

        args.append(message)
        args.extend(["--resume", self.chat_id])

        if options.model:
            args.extend(["--model", options.model])

        return self.config.command(*args)

    async def send(
        self,
        message: str,
        options: SendOptions | None = None,
        *,
        model: str | None = None,
        force: bool | None = None,
    ) -> AsyncIterator[AgentEvent]:
        """发送一条消息，按到达顺序产出事件。

        result 事件总是最后一个事件。result 的 subtype 非 success 时，
        先产出该事件，再抛出 AgentProcessError。取消导致的退出不抛异常。
        调用方提前停止迭代时，子进程会被终止并回收；没有用 aclosing 而直接
        break 时，下一次 send() 会先等待上一次的回收完成。

        Args:
            message: 消息文本
            options: 发送选项
            model: 覆盖 options.model
            force: 覆盖 options.force

        Yields:
            解码后的事件

        Raises:
            SessionClosedError: 会话已 cleanup
            NotBoundError: 尚未 create()
            SessionBusyError: 已有进行中的 send
            SpawnError: cursor-agent 无法启动
            AgentProcessError: 非零退出或 result 失败
            TimeoutExceeded: 存活超时
        """
        options = options or SendOptions()
        if model is not None or force is not None:
            options = SendOptions(
                model=options.model if model is None else model,
                force=options.force if force is None else force,
            )

        if self._state is SessionState.CLOSED:
            raise SessionClosedError()
        if self._state is SessionState.SENDING:
            await self._wait_abandoned_send()
        if self._state is SessionState.CLOSED:
            raise SessionClosedError()
        if self._state is SessionState.SENDING:
            raise SessionBusyError("A message is already being sent in this session")
        argv = self.build_command(message, options)

        if self._cancelled:
            logger.info("Chat session was cancelled, not sending message")
            return

        self._state = SessionState.SENDING
        closed = asyncio.Event()
        try:
            async with contextlib.aclosing(self._interact(argv)) as events:
                async for event in events:
                    try:
                        yield event
                    except GeneratorExit:
                        # 调用方停止迭代：显式 aclose() 或生成器被回收
                        self._send_closing = closed
                        raise
        finally:
            if self._state is SessionState.SENDING:
                self._state = SessionState.BOUND
            self._send_closing = None
            closed.set()

    async def _wait_abandoned_send(self) -> None:
        """等待被调用方丢弃的上一个 send() 回收完毕。

        Raises:
            SessionBusyError: 上一个 send() 仍在被消费
        """
        for _ in range(_FINALIZER_TICKS):
            if self._send_closing is not None:
                break
            await asyncio.sleep(0)

        closing = self._send_closing
        if closing is None:
            raise SessionBusyError("A message is already being sent in this session")
        logger.debug("Waiting for the previous message stream to shut down")
        await closing.wait()

    async def _interact(self, argv: list[str]) -> AsyncIterator[AgentEvent]:
        runner = self._runner
        spec = ProcessSpec(
            argv=argv,
            cwd=self._working_directory,
            env=self.config.child_env(),
        )
        logger.debug(f"Spawning cursor-agent with args: {argv[len(self.config.agent_command):]}")
        await runner.spawn(spec)

        failure: AgentProcessError | None = None
        terminal_seen = False
        completed = False
        try:
            # cancel() 可能发生在 spawn 期间
            if self._cancelled:
                await runner.cancel()

            async with contextlib.aclosing(runner.iter_lines()) as lines:
                async for line in lines:
                    if self._cancelled:
                        logger.info("Chat session was cancelled, stopping message processing")
                        break
                    if not line.strip():
                        continue

                    event = decode(line)
                    if isinstance(event, ResultEvent):
                        runner.mark_terminal()
                        terminal_seen = True
                        yield event
                        if not event.is_success:
                            failure = AgentProcessError(
                                f"Cursor agent failed: {event.subtype}"
                                + (f": {event.result}" if event.result else ""),
                                reason="result_error",
                                result=event,
                            )
                        break
                    yield event
            completed = True
        finally:
            if not completed and not terminal_seen:
                # 调用方停止迭代或任务被取消
                await runner.terminate()
            exit_status = await runner.finish()

        if failure is not None:
            failure.returncode = exit_status.returncode
            failure.stderr = exit_status.stderr
            logger.warning(str(failure))
            raise failure

        if exit_status.outcome is ExitOutcome.TIMED_OUT:
            raise TimeoutExceeded(
                runner.liveness_timeout,
                returncode=exit_status.returncode,
                stderr=exit_status.stderr,
            )

        if exit_status.outcome is ExitOutcome.FAILED:
            error_msg = f"Cursor agent exited with code {exit_status.returncode}"
            tail = exit_status.stderr_tail()
            if tail:
                error_msg += f"\n\nStderr output:\n{tail}"
            logger.warning(error_msg)
            raise AgentProcessError(
                error_msg,
                returncode=exit_status.returncode,
                stderr=exit_status.stderr,
                reason="exit_code",
            )

    async def cancel(self) -> None:
        """请求取消；有存活进程时走 SIGTERM -> SIGKILL 升级。可重复调用。"""
        if not self._cancelled:
            logger.info("Cancelling chat session")
        self._cancelled = True
        await self._runner.cancel()

    def reset_cancelled(self) -> None:
        """清除取消标记（仅在两次 send 之间调用）。"""
        if self._state is SessionState.SENDING:
            raise SessionBusyError("Cannot reset cancellation while a message is being sent")
        self._cancelled = False

    async def cleanup(self) -> None:
        """取消并回收子进程，清除 chat ID。之后会话不可再用。"""
        await self.cancel()
        await self._runner.release()
        if self._chat_id:
            logger.debug(f"Cleaned up chat session {self._chat_id}")
        self._chat_id = None
        self._state = SessionState.CLOSED

    async def __aenter__(self) -> ChatSession:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    def __repr__(self) -> str:
        return (
            f"ChatSession(chat_id={self._chat_id}, state={self._state.value}, "
            f"cwd={self._working_directory})"
        )
