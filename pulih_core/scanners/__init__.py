"""危机关键词扫描。

对每条即将发出的用户消息做一次不区分大小写的子串匹配；
命中只会触发旁路提示（例如弹出求助资源面板），
不会阻断正常的发送与流式回复。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from pulih_core.config.settings import DEFAULT_CRISIS_KEYWORDS, settings


@dataclass
class CrisisMatch:
    """一次扫描的结果。"""

    triggered: bool
    keywords: List[str] = field(default_factory=list)


class CrisisScanner:
    name = "crisis"

    def __init__(self, keywords: Optional[Iterable[str]] = None):
        source = DEFAULT_CRISIS_KEYWORDS if keywords is None else keywords
        self._keywords = [k.strip().lower() for k in source if k and k.strip()]

    @property
    def keywords(self) -> List[str]:
        return list(self._keywords)

    def scan(self, text: Optional[str]) -> bool:
        return self.match(text).triggered

    def match(self, text: Optional[str]) -> CrisisMatch:
        if not text:
            return CrisisMatch(triggered=False)
        lower = text.lower()
        hits = [k for k in self._keywords if k in lower]
        return CrisisMatch(triggered=bool(hits), keywords=hits)


def default_scanner() -> CrisisScanner:
    """按当前配置构造扫描器。"""

    return CrisisScanner(settings.crisis_keywords)
