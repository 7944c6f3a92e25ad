"""建立在非流式补全之上的辅助服务（后续话题建议、会话总结）。"""

from pulih_core.services.suggestions import SuggestionService
from pulih_core.services.summary import SummaryService

__all__ = ["SuggestionService", "SummaryService"]
