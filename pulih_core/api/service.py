"""对外 API 服务模块。

提供简化的函数接口供上层应用（控制台、桌面或 Web 外壳）调用：
按当前配置装配一个聊天界面的 ConversationManager，以及会话列表的查询与删除。
"""

from typing import Any, Dict, Optional

from pulih_core.config.settings import settings
from pulih_core.domain.conversation import ChatView, CrisisAdvisorySink
from pulih_core.infrastructure.logging.logger import logger
from pulih_core.infrastructure.storage.json_store import JsonSessionStore
from pulih_core.providers import InferenceClient, create_inference_client
from pulih_core.scanners import default_scanner
from pulih_core.services import SuggestionService, SummaryService
from pulih_core.sessions import ConversationManager


_store: Optional[JsonSessionStore] = None
_client: Optional[InferenceClient] = None


def get_default_store() -> JsonSessionStore:
    """获取默认的会话存储实例（单例）。"""
    global _store
    if _store is None:
        _store = JsonSessionStore(root=settings.storage_root)
    return _store


def get_default_client() -> InferenceClient:
    global _client
    if _client is None:
        _client = create_inference_client()
    return _client


def create_chat_screen(view: ChatView, advisory: Optional[CrisisAdvisorySink] = None) -> ConversationManager:
    """为一个聊天界面创建独立的 ConversationManager。

    每个界面各自持有会话历史与会话 ID，互不共享；
    推理端客户端与存储是无状态的，可以共享。
    """
    client = get_default_client()
    return ConversationManager(
        transport=client,
        store=get_default_store(),
        view=view,
        suggester=SuggestionService(client, count=settings.suggestion_count, locale=settings.locale),
        summarizer=SummaryService(client, locale=settings.locale),
        advisory=advisory,
        scanner=default_scanner(),
    )


def list_sessions() -> list[Dict[str, Any]]:
    """列出所有会话（最近更新在前）。

    Returns:
        会话列表，每项包含 id, title, created_at, updated_at, meta
    """
    return [
        {
            "id": r.id,
            "title": r.title,
            "created_at": r.created_at.isoformat(),
            "updated_at": r.updated_at.isoformat(),
            "meta": r.meta,
        }
        for r in get_default_store().list_sessions()
    ]


def get_session_messages(session_id: str) -> list[Dict[str, str]]:
    """获取会话的所有消息。

    Args:
        session_id: 会话ID

    Returns:
        消息列表，每项包含 role 与 content
    """
    record = get_default_store().get_session(session_id)
    return [m.to_payload() for m in record.messages]


def delete_session(session_id: str) -> None:
    try:
        get_default_store().delete_session(session_id)
    except Exception as e:
        logger.error(f"Delete session failed: {e}", extra={"extra": {
            "session_id": session_id,
            "error": str(e),
        }})
        raise
