"""后续话题建议服务。

让模型根据最近的对话给出几条用户可能想发的简短回复，
UI 把它们渲染成可点击的按钮。该服务是尽力而为的：
任何失败都以 SuggestionError 抛出，由会话管理器记录后忽略。
"""

import json
from typing import Any, List, Sequence

from pulih_core.domain.exceptions import SuggestionError, TransportError
from pulih_core.domain.models import Message, SuggestionResult
from pulih_core.prompts import load_prompt
from pulih_core.providers.base import CompletionClient

# 建议只需要最近几轮上下文
RECENT_MESSAGES = 10


class SuggestionService:
    def __init__(self, client: CompletionClient, count: int = 3, locale: str = "id"):
        self._client = client
        self._count = count
        self._locale = locale

    def suggest(self, history: Sequence[Message]) -> SuggestionResult:
        recent = [m for m in history if m.role != "system"][-RECENT_MESSAGES:]
        if not recent:
            return SuggestionResult()
        instruction = load_prompt("suggestions_system", self._locale).format(count=self._count)
        messages = list(recent) + [Message(role="system", content=instruction)]
        try:
            raw = self._client.complete(messages, max_tokens=200)
        except TransportError as e:
            raise SuggestionError(code="SUGGESTION_FAILED", message=e.message)
        return SuggestionResult(suggestions=self._parse(raw))

    def _parse(self, raw: str) -> List[str]:
        """从模型输出中取出 JSON 字符串数组，容忍外层的 ``` 包裹或多余文字。"""

        start = raw.find("[")
        end = raw.rfind("]")
        if start < 0 or end <= start:
            raise SuggestionError(code="SUGGESTION_PARSE_ERROR", message="no JSON array in reply")
        try:
            data: Any = json.loads(raw[start:end + 1])
        except json.JSONDecodeError as e:
            raise SuggestionError(code="SUGGESTION_PARSE_ERROR", message=str(e))
        if not isinstance(data, list):
            raise SuggestionError(code="SUGGESTION_PARSE_ERROR", message="reply is not a list")
        items = [item.strip() for item in data if isinstance(item, str) and item.strip()]
        return items[: self._count]
