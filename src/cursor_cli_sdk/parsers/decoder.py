"""cursor-agent 事件解码器。

cursor-cli-sdk parsers v0.1.0

decode() 将一行文本映射为一个事件：
- 可识别的 JSON 对象 -> 对应的事件类型
- type 为 result 但字段校验失败 -> 由可识别字段重建的 ResultEvent（仍是终止事件）
- 其他情况（非 JSON、非对象、未知 type、字段校验失败）-> OpaqueEvent

decode() 是纯函数且是全函数：永不抛出异常。
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import TypeAdapter

from .base import EventType
from .events import AgentEvent, OpaqueEvent, ResultEvent, WireEvent

__all__ = [
    "decode",
    "decode_object",
]

logger = logging.getLogger(__name__)

_WIRE_ADAPTER: TypeAdapter[Any] = TypeAdapter(WireEvent)


def _recover_result(fields: dict[str, Any]) -> ResultEvent:
    """从校验失败的 result 对象中取出类型正确的字段。"""

    def text(key: str) -> str:
        value = fields.get(key)
        return value if isinstance(value, str) else ""

    return ResultEvent(
        subtype=text("subtype"),
        result=text("result"),
        session_id=text("session_id"),
        request_id=text("request_id"),
        is_error=fields.get("is_error") is True,
    )


def decode_object(data: Any, line: str) -> AgentEvent:
    """将已解析的 JSON 值映射为事件。

    Args:
        data: json.loads 的结果
        line: 原始行，校验失败时原样保存到 OpaqueEvent

    Returns:
        类型化事件，或 OpaqueEvent
    """
    if not isinstance(data, dict):
        return OpaqueEvent(data=line)

    # raw 由解码器填充，不接受 wire 上的同名字段
    fields = {key: value for key, value in data.items() if key != "raw"}
    try:
        event = _WIRE_ADAPTER.validate_python(fields)
    except (ValueError, RecursionError) as e:
        # pydantic.ValidationError 是 ValueError 的子类
        if fields.get("type") != EventType.RESULT.value:
            logger.debug(f"Unrecognized event (type={data.get('type')!r}): {str(e)[:200]}")
            return OpaqueEvent(data=line)
        logger.debug(f"Malformed result event, keeping recognizable fields: {str(e)[:200]}")
        event = _recover_result(fields)

    event.raw = data
    return event


def decode(line: str) -> AgentEvent:
    """解析单行 cursor-agent 输出。

    Args:
        line: 一行文本（不含换行符）

    Returns:
        解析后的事件；无法解析时返回携带原文的 OpaqueEvent
    """
    try:
        data = json.loads(line)
    except (ValueError, RecursionError):
        return OpaqueEvent(data=line)
    return decode_object(data, line)
