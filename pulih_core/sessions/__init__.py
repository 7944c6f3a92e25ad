"""会话连续性管理：一个聊天界面一个 ConversationManager。"""

from pulih_core.sessions.manager import ConversationManager, ConversationSession

__all__ = ["ConversationManager", "ConversationSession"]
