"""Runtime module for subprocess management and line streaming.

This module provides isolated process execution with proper signal handling,
liveness timeouts and reliable termination for the cursor-agent subprocess.
"""

from __future__ import annotations

from .command import CommandOutput, run_command
from .line_framer import LineFramer
from .process_runner import (
    ExitOutcome,
    ProcessExit,
    ProcessHandle,
    ProcessRunner,
    ProcessSpec,
)

__all__ = [
    "CommandOutput",
    "ExitOutcome",
    "LineFramer",
    "ProcessExit",
    "ProcessHandle",
    "ProcessRunner",
    "ProcessSpec",
    "run_command",
]
