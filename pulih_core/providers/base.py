"""推理端抽象接口。

会话管理器不直接依赖 httpx，而是依赖此协议：

- open_stream(history, session_id): 建立流式连接，返回字节块迭代器；
  连接失败或非成功状态码时直接抛出 TransportError。返回的迭代器
  若带有 close()，会话管理器在取消交互时会从其他线程调用它，
  实现应当借此中断阻塞中的读取。
- complete(messages): 一次非流式补全，供建议与总结服务使用。

这样测试里可以用简单的假对象替换真实网络调用。
"""

from typing import Iterator, Optional, Protocol, Sequence

from pulih_core.domain.models import Message


class InferenceTransport(Protocol):
    def open_stream(self, history: Sequence[Message], session_id: Optional[str]) -> Iterator[bytes]:
        """history 已包含本次新的用户消息。"""

        ...


class CompletionClient(Protocol):
    def complete(self, messages: Sequence[Message], max_tokens: Optional[int] = None) -> str:
        ...
