"""cursor-agent 事件模型定义。

cursor-cli-sdk parsers v0.1.0

将 cursor-agent 的 stream-json 输出映射为类型化的事件。
设计原则：
1. 封闭的 tagged union - 以 type 字段为判别字段
2. 向前兼容 - 使用 extra='ignore' 忽略未知字段
3. Fallback 友好 - 保留 raw 字段；无法识别的行变为 OpaqueEvent
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base import ResultSubtype

__all__ = [
    # 内容
    "TextContent",
    "ImageSource",
    "ImageContent",
    "MessageContent",
    "Message",
    "ErrorDetail",
    "ProgressInfo",
    # 事件
    "AgentEventBase",
    "SystemEvent",
    "UserEvent",
    "AssistantEvent",
    "ResultEvent",
    "ErrorEvent",
    "ProgressEvent",
    "OpaqueEvent",
    # 联合类型
    "WireEvent",
    "AgentEvent",
    # 工具函数
    "is_terminal",
]


class _Model(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # null 字段按缺失处理，取默认值
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


# =============================================================================
# 消息内容
# =============================================================================


class TextContent(_Model):
    """文本内容块。"""

    type: Literal["text"] = "text"
    text: str = ""


class ImageSource(_Model):
    """图片来源（base64 编码）。"""

    type: Literal["base64"] = "base64"
    media_type: str
    data: str


class ImageContent(_Model):
    """图片内容块。"""

    type: Literal["image"] = "image"
    source: ImageSource


MessageContent = Annotated[
    Union[TextContent, ImageContent],
    Field(discriminator="type"),
]


class Message(_Model):
    """消息体：角色 + 有序内容块列表。"""

    role: Literal["user", "assistant", "system"]
    content: list[MessageContent] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """拼接所有文本块。"""
        return "".join(part.text for part in self.content if isinstance(part, TextContent))


class ErrorDetail(_Model):
    """error 事件的错误详情。"""

    message: str = ""
    code: str | int | None = None
    details: Any = None


class ProgressInfo(_Model):
    """progress 事件的进度信息。"""

    current: float = 0
    total: float = 0
    message: str | None = None


# =============================================================================
# 事件
# =============================================================================


class AgentEventBase(_Model):
    """所有 wire 事件的基类。

    Attributes:
        session_id: 所属会话 ID
        raw: 解析前的原始 JSON 对象，用于 Debug
    """

    session_id: str = ""
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)


class SystemEvent(AgentEventBase):
    """system 事件（通常为 subtype=init 的配置快照）。"""

    type: Literal["system"] = "system"
    subtype: str = "init"
    api_key_source: str | None = Field(default=None, alias="apiKeySource")
    cwd: str | None = None
    model: str | None = None
    permission_mode: str | None = Field(default=None, alias="permissionMode")


class UserEvent(AgentEventBase):
    """user 事件：用户输入回显。"""

    type: Literal["user"] = "user"
    message: Message

    @property
    def text(self) -> str:
        return self.message.text


class AssistantEvent(AgentEventBase):
    """assistant 事件：流式的部分或完整助手消息。"""

    type: Literal["assistant"] = "assistant"
    message: Message

    @property
    def text(self) -> str:
        return self.message.text


class ResultEvent(AgentEventBase):
    """result 事件：一次交互的终止事件。

    subtype=success 表示正常完成，其他值（包括缺失）表示失败完成。
    """

    type: Literal["result"] = "result"
    subtype: str = ""
    duration_ms: float = 0
    duration_api_ms: float = 0
    is_error: bool = False
    result: str = ""
    request_id: str = ""

    @property
    def is_success(self) -> bool:
        return self.subtype == ResultSubtype.SUCCESS.value


class ErrorEvent(AgentEventBase):
    """error 事件。"""

    type: Literal["error"] = "error"
    error: ErrorDetail = Field(default_factory=ErrorDetail)


class ProgressEvent(AgentEventBase):
    """progress 事件：长时间操作的进度。"""

    type: Literal["progress"] = "progress"
    progress: ProgressInfo = Field(default_factory=ProgressInfo)


class OpaqueEvent(_Model):
    """无法解析的行，原样保留。"""

    type: Literal["raw"] = "raw"
    data: str


# wire 上可能出现的事件（OpaqueEvent 只由解码失败产生）
WireEvent = Annotated[
    Union[SystemEvent, UserEvent, AssistantEvent, ResultEvent, ErrorEvent, ProgressEvent],
    Field(discriminator="type"),
]

# 统一联合类型
AgentEvent = Union[
    SystemEvent,
    UserEvent,
    AssistantEvent,
    ResultEvent,
    ErrorEvent,
    ProgressEvent,
    OpaqueEvent,
]


def is_terminal(event: AgentEvent) -> bool:
    """事件是否为终止事件（result）。"""
    return isinstance(event, ResultEvent)
