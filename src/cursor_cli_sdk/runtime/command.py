"""One-shot (request/response) command execution.

cursor-cli-sdk runtime module v0.1.0

Used for calls that need no streaming or cooperative cancellation:
create-chat, --version, status and --help. The whole call is bounded by a
timeout; on expiry anyio kills the child and TimeoutError is raised.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import anyio

from ..errors import SpawnError

__all__ = [
    "CommandOutput",
    "run_command",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of a finished command.

    Attributes:
        returncode: Process exit code
        stdout: Decoded stdout
        stderr: Decoded stderr
    """

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(
    argv: list[str],
    *,
    timeout: float,
    env: Mapping[str, str] | None = None,
    cwd: Path | str | None = None,
) -> CommandOutput:
    """Run a command to completion and capture its output.

    Args:
        argv: Command line arguments (first element is the executable)
        timeout: Upper bound for the whole call in seconds
        env: Environment variables (None = inherit parent)
        cwd: Working directory (None = current directory)

    Returns:
        CommandOutput with the exit code and decoded streams

    Raises:
        SpawnError: If the executable is missing or not executable
        TimeoutError: If the command did not finish within timeout
    """
    logger.debug(f"Running command argv={argv} timeout={timeout}")
    try:
        with anyio.fail_after(timeout):
            completed = await anyio.run_process(
                argv,
                stdin=subprocess.DEVNULL,
                check=False,
                cwd=cwd,
                env=dict(env) if env is not None else None,
            )
    except (FileNotFoundError, PermissionError) as e:
        raise SpawnError(argv, str(e)) from e

    output = CommandOutput(
        returncode=completed.returncode,
        stdout=completed.stdout.decode("utf-8", errors="replace"),
        stderr=completed.stderr.decode("utf-8", errors="replace"),
    )
    logger.debug(
        f"Command finished argv={argv[0]} returncode={output.returncode} "
        f"stdout={len(output.stdout)} chars stderr={len(output.stderr)} chars"
    )
    return output
