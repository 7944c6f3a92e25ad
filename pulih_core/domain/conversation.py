from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .models import Message, SaveResult, SuggestionResult


@dataclass
class SessionRecord:
    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    messages: List[Message] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


class SessionStore(Protocol):
    """持久化协作方。每次提交的交互调用一次 save()。"""

    def save(self, session_id: Optional[str], history: Sequence[Message]) -> SaveResult:
        ...

    def get_session(self, session_id: str) -> SessionRecord:
        ...

    def list_sessions(self) -> List[SessionRecord]:
        ...

    def delete_session(self, session_id: str) -> None:
        ...


class SuggestionsProvider(Protocol):
    def suggest(self, history: Sequence[Message]) -> SuggestionResult:
        ...


class SessionSummarizer(Protocol):
    def summarize(self, history: Sequence[Message]) -> str:
        ...


class ChatView(Protocol):
    """渲染协作方。

    render() 接收的是当前累积的完整回复快照，而不是单个增量；
    具体的 Markdown/纯文本格式化由实现方自行决定。
    """

    def show_user_message(self, text: str) -> None:
        ...

    def render(self, snapshot: str) -> None:
        ...

    def finalize(self, final_text: str) -> None:
        ...

    def show_suggestions(self, suggestions: List[str]) -> None:
        ...

    def show_notice(self, text: str) -> None:
        ...

    def session_created(self, session_id: str) -> None:
        ...


class CrisisAdvisorySink(Protocol):
    def fire(self) -> None:
        ...
