"""Pulih 核心包。

该包实现心理陪伴聊天客户端的核心：流式响应协议解析、
回复增量累积、会话连续性管理（新建/续写/持久化）以及
对用户输入的危机关键词提示。
"""

from pulih_core.sessions import ConversationManager, ConversationSession

__all__ = ["ConversationManager", "ConversationSession"]
