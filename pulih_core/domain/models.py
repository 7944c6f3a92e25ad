"""统一的对话与流式事件数据模型。

本模块定义了核心管线在各组件之间共享的标准数据结构：

- Message: 一条对话消息（system/user/assistant），写入历史后不可变。
- StreamEvent: 从一行 data: 协议文本中解析出的事件（增量/结束/可忽略）。
- ExchangeResult: 一次交互（用户消息 + 助手回复）的最终结果。

StreamEvent 只在单次流式交互的生命周期内存在，从不持久化。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional


# 消息角色（与 OpenAI 兼容接口的 role 字段对应）
Role = Literal["system", "user", "assistant"]

ROLES = ("system", "user", "assistant")

# 流式事件类型
EventKind = Literal["delta", "terminal", "ignorable"]

# 单次交互的状态机：idle -> sending -> streaming -> committed | failed | abandoned
ExchangeState = Literal["idle", "sending", "streaming", "committed", "failed", "abandoned"]


@dataclass(frozen=True)
class Message:
    """一条对话消息。

    - role: 消息角色，user/assistant/system。
    - content: 纯文本内容。
    """

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown role: {self.role!r}")

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Message":
        return cls(role=data["role"], content=data.get("content") or "")


@dataclass(frozen=True)
class StreamEvent:
    """流式协议事件。

    kind:
        - "delta": 回复内容增量，text 为本次片段（可以是空串）。
        - "terminal": 收到结束标记 [DONE]，之后的字节不再影响结果。
        - "ignorable": 非 data: 行、格式错误或缺少增量字段的行。
    """

    kind: EventKind
    text: str = ""

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(kind="delta", text=text)

    @property
    def is_delta(self) -> bool:
        return self.kind == "delta"

    @property
    def is_terminal(self) -> bool:
        return self.kind == "terminal"


TERMINAL = StreamEvent(kind="terminal")
IGNORABLE = StreamEvent(kind="ignorable")


@dataclass
class SaveResult:
    """持久化协作方 save() 的返回值。"""

    id: str


@dataclass
class SuggestionResult:
    """后续话题建议。"""

    suggestions: List[str] = field(default_factory=list)


@dataclass
class ExchangeResult:
    """一次交互结束后的汇总信息。

    - state: 终态，committed / failed / abandoned。
    - reply: 助手回复全文；失败时为已累积的部分回复（可能为空）。
    - session_id: 交互结束后界面持有的会话 ID（可能仍为 None）。
    - session_created: 本次提交是否新建了会话（UI 应刷新历史列表）。
    - suggestions: 后续话题建议，获取失败时为空列表。
    - crisis_detected: 发送前危机关键词扫描是否命中。
    - error: 导致 failed 的传输错误。
    - persistence_error: 回复已提交但保存失败时的错误。
    """

    state: ExchangeState
    reply: str = ""
    session_id: Optional[str] = None
    session_created: bool = False
    suggestions: List[str] = field(default_factory=list)
    crisis_detected: bool = False
    error: Optional[Exception] = None
    persistence_error: Optional[Exception] = None

    @property
    def committed(self) -> bool:
        return self.state == "committed"
