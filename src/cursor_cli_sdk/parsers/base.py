"""基础类型和枚举定义。

cursor-cli-sdk parsers v0.1.0

本模块定义了 cursor-agent stream-json 事件的基础枚举：
- 事件类型（顶层 type 判别字段）
- result 子类型
"""

from __future__ import annotations

from enum import Enum
from typing import Final

__all__ = [
    "EventType",
    "ResultSubtype",
    "VERSION",
]

# 模块版本，用于分发追踪
VERSION: Final[str] = "0.1.0"


class EventType(str, Enum):
    """事件类型。

    前六个值对应 cursor-agent 输出中的 type 字段；
    RAW 是无法解析的行的 fallback，不会出现在 wire 上。
    """

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    RESULT = "result"
    ERROR = "error"
    PROGRESS = "progress"
    RAW = "raw"


class ResultSubtype(str, Enum):
    """result 事件的 subtype。"""

    SUCCESS = "success"
    ERROR = "error"
