"""Process runner with liveness timeout, cancellation and exit reconciliation.

cursor-cli-sdk runtime module v0.1.0

This module owns one child process for the duration of one interaction:
- Spawn in an isolated process group/session with stdin disabled
- Stdout framing (single consumer) raced against a stop event
- Stderr draining into a bounded buffer for diagnostics
- Liveness watchdog (disarmed by a terminal result)
- Escalation shared by timeout, cancel and cleanup
  (SIGTERM -> term_timeout -> SIGKILL -> kill_timeout)
- Exit classification once the process is gone

Key design points:
- POSIX: start_new_session=True, signals go to the whole process group
- Windows: CREATE_NEW_PROCESS_GROUP, CTRL_BREAK_EVENT then kill()
- Only one escalation and one release run per process; both are shielded
  from caller cancellation so no child is left behind
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import subprocess
import sys
import time
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import ProcessBusyError, SpawnError
from .line_framer import LineFramer

__all__ = [
    "ExitOutcome",
    "ProcessExit",
    "ProcessHandle",
    "ProcessRunner",
    "ProcessSpec",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# Default timeouts
DEFAULT_LIVENESS_TIMEOUT = 60.0  # seconds before an idle interaction is escalated
DEFAULT_TERM_TIMEOUT = 2.0  # seconds to wait after SIGTERM
DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL

# Ring buffer limit for stderr kept for diagnostics
STDERR_MAX_SIZE = 4 * 1024 * 1024

# Return codes of a process killed by one of the escalation signals
_TERMINATION_RETURNCODES = frozenset(
    {-signal.SIGTERM, -getattr(signal, "SIGKILL", 9)}
)


class ExitOutcome(str, Enum):
    """Classification of a finished interaction process."""

    SUCCESS = "success"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process (None = current directory)
        env: Environment variables (None = inherit parent)
    """

    argv: list[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None


@dataclass(frozen=True)
class ProcessExit:
    """Reconciled exit of an interaction process.

    Attributes:
        outcome: Exit classification
        returncode: Process exit code (negative signal number when killed)
        stderr: Accumulated stderr text
        duration_sec: Time between spawn and release
    """

    outcome: ExitOutcome
    returncode: int | None = None
    stderr: str = ""
    duration_sec: float = 0.0

    @property
    def ok(self) -> bool:
        """True when no error should be surfaced to the caller."""
        return self.outcome in (ExitOutcome.SUCCESS, ExitOutcome.CANCELLED)

    def stderr_tail(self, lines: int = 5) -> str:
        """Last lines of stderr, where API errors usually show up."""
        stripped = self.stderr.strip()
        if not stripped:
            return ""
        return "\n".join(stripped.split("\n")[-lines:])


@dataclass
class ProcessHandle:
    """Per-interaction process state, owned by ProcessRunner.

    Attributes:
        process: The child process
        argv: Command line the process was started with
        started_at: Monotonic spawn time
        terminal_seen: A terminal result event was observed
        cancel_requested: cancel() was called for this process
        timed_out: The liveness watchdog fired
        stop_event: Set when reading should stop (cancel or timeout)
    """

    process: asyncio.subprocess.Process
    argv: list[str]
    started_at: float = field(default_factory=time.monotonic)

    terminal_seen: bool = False
    cancel_requested: bool = False
    timed_out: bool = False
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)

    framer: LineFramer | None = None
    stderr_chunks: list[bytes] = field(default_factory=list)
    stderr_size: int = 0

    stderr_task: asyncio.Task[None] | None = None
    watchdog_task: asyncio.Task[None] | None = None
    escalation_task: asyncio.Task[None] | None = None
    release_task: asyncio.Task[ProcessExit] | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def running(self) -> bool:
        return self.process.returncode is None

    def append_stderr(self, chunk: bytes) -> None:
        """Store a stderr chunk, dropping the oldest data past the limit."""
        self.stderr_chunks.append(chunk)
        self.stderr_size += len(chunk)
        while self.stderr_size > STDERR_MAX_SIZE and len(self.stderr_chunks) > 1:
            removed = self.stderr_chunks.pop(0)
            self.stderr_size -= len(removed)

    def stderr_text(self) -> str:
        return b"".join(self.stderr_chunks).decode("utf-8", errors="replace")


@dataclass
class ProcessRunner:
    """Process lifecycle controller for one interaction at a time.

    At most one process handle is owned between spawn() and release; a
    second spawn() while one is owned raises ProcessBusyError.

    Example:
        runner = ProcessRunner(liveness_timeout=60.0)
        await runner.spawn(ProcessSpec(argv=["cursor-agent", "-p", ...]))
        try:
            async for line in runner.iter_lines():
                if is_result(line):
                    runner.mark_terminal()
                    break
        finally:
            exit_status = await runner.finish()
    """

    liveness_timeout: float = DEFAULT_LIVENESS_TIMEOUT
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT

    _handle: ProcessHandle | None = field(default=None, init=False, repr=False)
    _spawning: bool = field(default=False, init=False, repr=False)
    _last_exit: ProcessExit | None = field(default=None, init=False, repr=False)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def handle(self) -> ProcessHandle | None:
        """Currently owned handle (None once the process is released)."""
        return self._handle

    @property
    def is_running(self) -> bool:
        return self._handle is not None and self._handle.running

    @property
    def pid(self) -> int | None:
        return self._handle.pid if self._handle else None

    @property
    def last_exit(self) -> ProcessExit | None:
        """Exit of the most recently released process."""
        return self._last_exit

    # =========================================================================
    # Spawn
    # =========================================================================

    async def spawn(self, spec: ProcessSpec) -> ProcessHandle:
        """Start the child process and its helper tasks.

        Args:
            spec: Process specification

        Returns:
            The owned process handle

        Raises:
            ProcessBusyError: If a process is already owned
            SpawnError: If the executable is missing or not executable
        """
        if self._handle is not None or self._spawning:
            raise ProcessBusyError(
                f"A process is already running (pid={self.pid}); "
                f"await or cancel it before starting another"
            )

        kwargs = self._build_subprocess_kwargs(spec)
        cwd = spec.cwd if spec.cwd is not None else Path.cwd()

        self._spawning = True
        try:
            # stdin=DEVNULL: the agent never receives interactive input, and
            # an inherited stdin would keep it waiting for a terminal
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                **kwargs,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
            raise SpawnError(spec.argv, str(e)) from e
        finally:
            self._spawning = False

        handle = ProcessHandle(process=process, argv=list(spec.argv))
        assert process.stdout is not None
        handle.framer = LineFramer(process.stdout)
        handle.stderr_task = asyncio.create_task(self._drain_stderr(handle))
        if self.liveness_timeout > 0:
            handle.watchdog_task = asyncio.create_task(self._watchdog(handle))

        self._handle = handle
        self._last_exit = None

        logger.debug(
            f"Started subprocess pid={process.pid} "
            f"argv={spec.argv[0]} cwd={cwd}"
        )
        return handle

    def _build_subprocess_kwargs(self, spec: ProcessSpec) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs."""
        kwargs: dict[str, Any] = {}

        if spec.env is not None:
            kwargs["env"] = dict(spec.env)

        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            # POSIX: start_new_session (equivalent to setsid)
            kwargs["start_new_session"] = True

        return kwargs

    # =========================================================================
    # Output
    # =========================================================================

    async def iter_lines(self) -> AsyncIterator[str]:
        """Yield stdout lines until EOF or until reading is stopped.

        Each read is raced against the handle's stop event so cancellation
        and timeout are observed even while the child is silent.
        Ends immediately when no process is owned.
        """
        handle = self._handle
        if handle is None or handle.framer is None:
            return
        framer = handle.framer

        stop_wait = asyncio.create_task(handle.stop_event.wait())
        read_task: asyncio.Task[str | None] | None = None
        try:
            while not handle.stop_event.is_set():
                read_task = asyncio.create_task(framer.next_line())
                done, _ = await asyncio.wait(
                    [read_task, stop_wait],
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if read_task not in done:
                    break

                line = read_task.result()
                read_task = None
                # the read and the stop may complete in the same round
                if line is None or handle.stop_event.is_set():
                    break
                yield line
        finally:
            for task in (read_task, stop_wait):
                if task is not None and not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

    async def _drain_stderr(self, handle: ProcessHandle) -> None:
        """Drain stderr to prevent pipe deadlock and keep it for diagnostics."""
        stream = handle.process.stderr
        if stream is None:
            return
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                break
            handle.append_stderr(chunk)
            logger.debug(
                f"Cursor agent stderr pid={handle.pid}: "
                f"{chunk.decode('utf-8', errors='replace').rstrip()[:500]}"
            )

    # =========================================================================
    # Liveness / cancellation
    # =========================================================================

    def mark_terminal(self) -> None:
        """Record a terminal result and disarm the liveness watchdog."""
        handle = self._handle
        if handle is None:
            return
        handle.terminal_seen = True
        if handle.watchdog_task is not None and not handle.watchdog_task.done():
            handle.watchdog_task.cancel()

    async def _watchdog(self, handle: ProcessHandle) -> None:
        await asyncio.sleep(self.liveness_timeout)
        if handle.terminal_seen or not handle.running:
            return
        logger.warning(
            f"Cursor agent process timeout after {self.liveness_timeout:g}s, "
            f"terminating pid={handle.pid}"
        )
        handle.timed_out = True
        handle.stop_event.set()
        await self._escalate(handle)

    async def cancel(self) -> None:
        """Cancel the owned process.

        Idempotent: a no-op without an owned process, and repeated calls
        only wait for the escalation that is already running.
        """
        handle = self._handle
        if handle is None:
            return
        if not handle.cancel_requested:
            handle.cancel_requested = True
            handle.stop_event.set()
            if handle.running:
                logger.info(f"Cancelling cursor-agent process (pid={handle.pid})")
        if handle.running or handle.escalation_task is not None:
            await self._escalate(handle)

    async def terminate(self) -> None:
        """Stop reading and escalate now (the consumer went away)."""
        handle = self._handle
        if handle is None:
            return
        handle.stop_event.set()
        if handle.running:
            logger.debug(f"Terminating abandoned subprocess pid={handle.pid}")
            await self._escalate(handle)

    async def _escalate(self, handle: ProcessHandle) -> None:
        """Start (once) and await the termination sequence."""
        if handle.escalation_task is None:
            handle.escalation_task = asyncio.create_task(
                self._terminate_process(handle.process)
            )
        await asyncio.shield(handle.escalation_task)

    async def _terminate_process(
        self,
        process: asyncio.subprocess.Process,
    ) -> None:
        """Terminate subprocess gracefully, then forcefully if needed.

        Termination strategy:
        1. Send SIGTERM (or CTRL_BREAK_EVENT on Windows)
        2. Wait up to term_timeout for graceful exit
        3. If still running, send SIGKILL (or kill() on Windows)
        4. Wait up to kill_timeout for forced exit
        """
        pid = process.pid
        if process.returncode is not None:
            return
        logger.debug(f"Terminating subprocess pid={pid}")

        try:
            if IS_WINDOWS:
                self._windows_terminate(process)
            else:
                self._posix_signal(process, signal.SIGTERM)

            try:
                await asyncio.wait_for(process.wait(), timeout=self.term_timeout)
                logger.debug(
                    f"Subprocess terminated gracefully pid={pid} "
                    f"returncode={process.returncode}"
                )
                return
            except asyncio.TimeoutError:
                pass

            logger.debug(f"Force killing subprocess pid={pid}")
            if IS_WINDOWS:
                process.kill()
            else:
                self._posix_signal(process, signal.SIGKILL)

            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
                logger.debug(
                    f"Subprocess killed pid={pid} "
                    f"returncode={process.returncode}"
                )
            except asyncio.TimeoutError:
                logger.warning(f"Subprocess did not exit after kill pid={pid}")

        except ProcessLookupError:
            logger.debug(f"Subprocess already exited pid={pid}")

    def _posix_signal(
        self,
        process: asyncio.subprocess.Process,
        sig: signal.Signals,
    ) -> None:
        """Send a signal to the process group on POSIX systems.

        With start_new_session the process group id equals the pid.
        """
        try:
            os.killpg(process.pid, sig)
            logger.debug(f"Sent {sig.name} to process group pgid={process.pid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to send_signal: {e}")
            process.send_signal(sig)

    def _windows_terminate(self, process: asyncio.subprocess.Process) -> None:
        """Send CTRL_BREAK_EVENT on Windows."""
        try:
            # Works because of CREATE_NEW_PROCESS_GROUP
            os.kill(process.pid, signal.CTRL_BREAK_EVENT)  # type: ignore[attr-defined]
            logger.debug(f"Sent CTRL_BREAK_EVENT to pid={process.pid}")
        except OSError as e:
            logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
            process.terminate()

    # =========================================================================
    # Exit reconciliation
    # =========================================================================

    async def finish(self) -> ProcessExit:
        """Wait for the owned process to exit, release it and classify.

        After a terminal result or a stop, the process gets term_timeout to
        exit on its own before it is escalated. Otherwise the process is
        awaited with the watchdog still armed.
        """
        handle = self._handle
        if handle is None:
            return self._last_exit or ProcessExit(outcome=ExitOutcome.CANCELLED)

        exit_status: ProcessExit
        try:
            process = handle.process
            if process.returncode is None:
                if handle.terminal_seen or handle.stop_event.is_set():
                    if handle.escalation_task is None:
                        try:
                            await asyncio.wait_for(
                                process.wait(), timeout=self.term_timeout
                            )
                        except asyncio.TimeoutError:
                            logger.debug(
                                f"Subprocess still running after terminal result "
                                f"pid={handle.pid}"
                            )
                    if process.returncode is None:
                        await self._escalate(handle)
                else:
                    await process.wait()
        finally:
            exit_status = await self._release(handle)
        return exit_status

    async def release(self) -> None:
        """Release the owned process (terminating it if still running)."""
        if self._handle is not None:
            await self._release(self._handle)

    async def _release(self, handle: ProcessHandle) -> ProcessExit:
        """Run the release sequence once, shielded from cancellation."""
        if handle.release_task is None:
            handle.release_task = asyncio.create_task(self._do_release(handle))
        task = handle.release_task
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # Caller cancelled: finish cleanup before propagating
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                logger.debug(f"Double cancel during subprocess release pid={handle.pid}")
            raise

    async def _do_release(self, handle: ProcessHandle) -> ProcessExit:
        if handle.watchdog_task is not None and not handle.watchdog_task.done():
            handle.watchdog_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await handle.watchdog_task

        if handle.running:
            await self._escalate(handle)
        elif handle.escalation_task is not None:
            await asyncio.shield(handle.escalation_task)

        # Process is gone; stderr reaches EOF unless a grandchild holds it
        if handle.stderr_task is not None:
            await asyncio.wait([handle.stderr_task], timeout=self.kill_timeout)
            if not handle.stderr_task.done():
                handle.stderr_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await handle.stderr_task

        exit_status = self._classify(handle)
        self._last_exit = exit_status
        if self._handle is handle:
            self._handle = None

        logger.debug(
            f"Subprocess released pid={handle.pid} "
            f"returncode={exit_status.returncode} outcome={exit_status.outcome.value}"
        )
        return exit_status

    def _classify(self, handle: ProcessHandle) -> ProcessExit:
        """Classify the exit.

        Order:
        1. Liveness timeout without a terminal result -> TIMED_OUT
        2. Cancellation requested -> CANCELLED
        3. Terminal result observed -> SUCCESS (wins over the exit code)
        4. Killed by SIGTERM/SIGKILL -> CANCELLED
        5. Exit code 0 -> SUCCESS
        6. Otherwise -> FAILED
        """
        returncode = handle.process.returncode
        stderr = handle.stderr_text()
        duration = time.monotonic() - handle.started_at

        if handle.timed_out and not handle.terminal_seen:
            outcome = ExitOutcome.TIMED_OUT
        elif handle.cancel_requested:
            outcome = ExitOutcome.CANCELLED
        elif handle.terminal_seen:
            if returncode not in (0, None):
                logger.warning(
                    f"Cursor agent exited with code {returncode} after a terminal "
                    f"result; treating as success (pid={handle.pid})"
                )
            outcome = ExitOutcome.SUCCESS
        elif returncode in _TERMINATION_RETURNCODES:
            logger.info(f"Cursor agent process was terminated (pid={handle.pid})")
            outcome = ExitOutcome.CANCELLED
        elif returncode == 0:
            outcome = ExitOutcome.SUCCESS
        else:
            outcome = ExitOutcome.FAILED

        return ProcessExit(
            outcome=outcome,
            returncode=returncode,
            stderr=stderr,
            duration_sec=duration,
        )
