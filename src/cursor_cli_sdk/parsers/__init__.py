"""cursor-agent stream-json 事件解析。

cursor-cli-sdk parsers v0.1.0

Example:
    from cursor_cli_sdk.parsers import decode, ResultEvent

    event = decode('{"type": "result", "subtype": "success", "result": "ok"}')
    assert isinstance(event, ResultEvent) and event.is_success
"""

from __future__ import annotations

from .base import VERSION, EventType, ResultSubtype
from .decoder import decode, decode_object
from .events import (
    AgentEvent,
    AgentEventBase,
    AssistantEvent,
    ErrorDetail,
    ErrorEvent,
    ImageContent,
    ImageSource,
    Message,
    MessageContent,
    OpaqueEvent,
    ProgressEvent,
    ProgressInfo,
    ResultEvent,
    SystemEvent,
    TextContent,
    UserEvent,
    WireEvent,
    is_terminal,
)

__all__ = [
    "VERSION",
    "EventType",
    "ResultSubtype",
    "decode",
    "decode_object",
    "AgentEvent",
    "AgentEventBase",
    "AssistantEvent",
    "ErrorDetail",
    "ErrorEvent",
    "ImageContent",
    "ImageSource",
    "Message",
    "MessageContent",
    "OpaqueEvent",
    "ProgressEvent",
    "ProgressInfo",
    "ResultEvent",
    "SystemEvent",
    "TextContent",
    "UserEvent",
    "WireEvent",
    "is_terminal",
]
