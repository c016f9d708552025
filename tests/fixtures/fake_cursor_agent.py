#!/usr/bin/env python3
"""Fake cursor-agent for integration testing.

This script mimics the cursor-agent command line closely enough for the
session and facade tests: the one-shot calls (create-chat, --version,
status, --help) and the streaming "-p --output-format stream-json" run.

Usage:
    python fake_cursor_agent.py create-chat
    python fake_cursor_agent.py --version
    python fake_cursor_agent.py status
    python fake_cursor_agent.py --help
    python fake_cursor_agent.py -p --output-format stream-json [--force] MESSAGE --resume ID

Behaviour is selected with environment variables:
    FAKE_AGENT_SCENARIO: scenario name (see SCENARIOS below, default "success")
    FAKE_AGENT_CHAT_ID: chat ID printed by create-chat (default "chat-123")
"""

from __future__ import annotations

import json
import os
import signal
import sys
import time

SCENARIO = os.environ.get("FAKE_AGENT_SCENARIO", "success")
CHAT_ID = os.environ.get("FAKE_AGENT_CHAT_ID", "chat-123")


def emit_event(data: dict) -> None:
    """Emit a JSONL event to stdout."""
    print(json.dumps(data, ensure_ascii=False), flush=True)


def system_init(session_id: str) -> dict:
    return {
        "type": "system",
        "subtype": "init",
        "apiKeySource": "env" if os.environ.get("CURSOR_API_KEY") else "login",
        "cwd": os.getcwd(),
        "session_id": session_id,
        "model": "fake-model",
        "permissionMode": "default",
    }


def assistant(session_id: str, text: str) -> dict:
    return {
        "type": "assistant",
        "message": {"role": "assistant", "content": [{"type": "text", "text": text}]},
        "session_id": session_id,
    }


def result(session_id: str, subtype: str = "success", text: str = "ok") -> dict:
    return {
        "type": "result",
        "subtype": subtype,
        "duration_ms": 12,
        "duration_api_ms": 10,
        "is_error": subtype != "success",
        "result": text,
        "session_id": session_id,
        "request_id": "req-1",
    }


# =============================================================================
# One-shot commands
# =============================================================================


def create_chat() -> int:
    if SCENARIO == "create_fail":
        print("not logged in", file=sys.stderr)
        return 1
    if SCENARIO == "create_empty":
        return 0
    if SCENARIO == "create_hang":
        time.sleep(60)
    print(CHAT_ID)
    return 0


def version() -> int:
    if SCENARIO == "version_fail":
        print("version unavailable", file=sys.stderr)
        return 2
    if SCENARIO == "version_hang":
        time.sleep(60)
    print("  2025.09.18-fake  ")
    return 0


def status() -> int:
    if SCENARIO == "status_hang":
        time.sleep(60)
    if SCENARIO == "status_fail":
        print("partial output")
        print("network unreachable", file=sys.stderr)
        return 1
    if SCENARIO == "status_logged_out":
        print("Not logged in")
        return 0
    print("Logged in as test@example.com")
    return 0


def help_text() -> int:
    if SCENARIO == "help_fail":
        print("unknown option", file=sys.stderr)
        return 1
    print("Usage: cursor-agent [options] [prompt]\n")
    print("Commands:\n  status  Check authentication status")
    return 0


# =============================================================================
# Streaming run
# =============================================================================


def run(argv: list[str]) -> int:
    session_id = CHAT_ID
    if "--resume" in argv:
        session_id = argv[argv.index("--resume") + 1]

    if SCENARIO == "success":
        emit_event(system_init(session_id))
        emit_event(result(session_id))
        return 0

    if SCENARIO == "conversation":
        emit_event(system_init(session_id))
        emit_event({
            "type": "user",
            "message": {"role": "user", "content": [{"type": "text", "text": "hi"}]},
            "session_id": session_id,
        })
        emit_event(assistant(session_id, "Hello"))
        print("")
        emit_event(assistant(session_id, ", world"))
        emit_event(result(session_id, text="Hello, world"))
        return 0

    if SCENARIO == "empty":
        return 0

    if SCENARIO == "malformed":
        print("not json", flush=True)
        return 0

    if SCENARIO == "result_error":
        emit_event(assistant(session_id, "trying"))
        emit_event(result(session_id, subtype="error", text="model refused"))
        print("request failed", file=sys.stderr, flush=True)
        return 1

    if SCENARIO == "result_nulls":
        emit_event(assistant(session_id, "trying"))
        broken = result(session_id, subtype="error")
        broken.update(result=None, request_id=None)
        emit_event(broken)
        emit_event(assistant(session_id, "should never be seen"))
        return 1

    if SCENARIO == "after_result":
        emit_event(result(session_id))
        emit_event(assistant(session_id, "should never be seen"))
        return 0

    if SCENARIO == "crash":
        emit_event(system_init(session_id))
        print("boom", file=sys.stderr, flush=True)
        return 3

    if SCENARIO == "success_nonzero":
        emit_event(system_init(session_id))
        emit_event(result(session_id))
        return 2

    if SCENARIO == "linger":
        emit_event(result(session_id))
        time.sleep(30)
        return 0

    if SCENARIO == "hang":
        time.sleep(60)
        return 0

    if SCENARIO == "hang_ignore_term":
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
        emit_event(system_init(session_id))
        time.sleep(60)
        return 0

    if SCENARIO == "stream":
        emit_event(system_init(session_id))
        for i in range(200):
            emit_event(assistant(session_id, f"chunk {i}"))
            time.sleep(0.1)
        emit_event(result(session_id))
        return 0

    if SCENARIO == "stdin":
        data = sys.stdin.read()
        emit_event(assistant(session_id, f"stdin={len(data)}"))
        emit_event(result(session_id))
        return 0

    if SCENARIO == "echo_args":
        emit_event(system_init(session_id))
        emit_event(assistant(session_id, json.dumps(argv)))
        emit_event(result(session_id))
        return 0

    print(f"unknown scenario: {SCENARIO}", file=sys.stderr)
    return 64


def main() -> int:
    argv = sys.argv[1:]
    if argv[:1] == ["create-chat"]:
        return create_chat()
    if argv[:1] == ["--version"]:
        return version()
    if argv[:1] == ["status"]:
        return status()
    if argv[:1] == ["--help"]:
        return help_text()
    return run(argv)


if __name__ == "__main__":
    sys.exit(main())
