"""会话总结服务（“结束会话并生成总结”）。"""

from typing import Sequence

from pulih_core.domain.exceptions import BusinessError
from pulih_core.domain.models import Message
from pulih_core.prompts import load_prompt
from pulih_core.providers.base import CompletionClient


class SummaryService:
    def __init__(self, client: CompletionClient, locale: str = "id"):
        self._client = client
        self._locale = locale

    def summarize(self, history: Sequence[Message]) -> str:
        """传输错误原样抛出，由调用方决定如何提示。"""

        conversation = [m for m in history if m.role != "system"]
        if not conversation:
            raise BusinessError(code="EMPTY_SESSION", message="Nothing to summarize")
        instruction = Message(role="system", content=load_prompt("summary_system", self._locale))
        summary = self._client.complete(conversation + [instruction], max_tokens=600).strip()
        if not summary:
            raise BusinessError(code="EMPTY_SUMMARY", message="Inference returned an empty summary")
        return summary
