"""OpenAI 兼容推理端适配器。

本模块负责：

1. 把会话历史转换为 chat/completions 请求（前置陪伴人设 system prompt）。
2. 以流式方式发起请求，把响应体按原始字节块交给上层管线。
3. 处理网络/API 异常，统一包装为 TransportError 的子类。
4. 为建议与总结服务提供一次性的非流式补全。

这里只做传输，不解析 data: 行；协议解析在 pulih_core.streaming 中完成，
这样分块边界的处理可以独立测试。
"""

from typing import Any, Dict, Iterator, List, Optional, Sequence

import httpx

from pulih_core.domain.exceptions import ApiError, NetworkError, RateLimitError
from pulih_core.domain.models import Message
from pulih_core.prompts import load_system_prompt


class ResponseStream:
    """流式响应体的字节块迭代器。

    close() 可以在另一个线程里调用：关闭底层连接后，阻塞中的读取
    会失败或结束，此时迭代按正常结束处理而不是报告网络错误。
    """

    def __init__(self, client: httpx.Client, resp: httpx.Response):
        self._client = client
        self._resp = resp
        self._chunks = resp.iter_bytes()
        self.closed = False

    def __iter__(self) -> "ResponseStream":
        return self

    def __next__(self) -> bytes:
        if self.closed:
            raise StopIteration
        try:
            return next(self._chunks)
        except StopIteration:
            self.close()
            raise
        except (httpx.RequestError, httpx.StreamError) as e:
            was_closed = self.closed
            self.close()
            if was_closed:
                raise StopIteration
            raise NetworkError(code="STREAM_INTERRUPTED", message=str(e))

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._resp.close()
        self._client.close()


class InferenceClient:
    """推理端客户端实现。

    - open_stream: 流式对话入口，返回字节块迭代器。
    - complete: 非流式补全，返回回复文本。
    """

    name = "inference"

    def __init__(self, settings):
        # Settings 里包含 inference_url、密钥、超时等配置
        self._settings = settings

    def open_stream(self, history: Sequence[Message], session_id: Optional[str] = None) -> Iterator[bytes]:
        """建立流式连接。

        连接失败或状态码不成功时在这里直接抛出；返回后得到的迭代器
        在读取过程中断开时抛出 NetworkError。迭代器被 close() 时
        会释放底层连接。
        """

        payload = self._build_payload(history, stream=True)
        headers = self._headers()
        if session_id:
            headers["X-Pulih-Session"] = session_id
        client = httpx.Client(timeout=self._settings.http_timeout, trust_env=False)
        try:
            request = client.build_request("POST", self._url(), json=payload, headers=headers)
            resp = client.send(request, stream=True)
        except httpx.RequestError as e:
            client.close()
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        try:
            self._check_status(resp, streaming=True)
        except (ApiError, RateLimitError):
            resp.close()
            client.close()
            raise
        return ResponseStream(client, resp)

    def complete(self, messages: Sequence[Message], max_tokens: Optional[int] = None) -> str:
        """执行一次非流式补全，messages 原样发送（不追加人设 prompt）。"""

        payload = {
            "model": self._settings.inference_model_id,
            "messages": [m.to_payload() for m in messages],
            "temperature": self._settings.temperature,
            "max_tokens": max_tokens or self._settings.max_tokens,
            "stream": False,
        }
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(self._url(), json=payload, headers=self._headers())
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        self._check_status(resp)
        return self._parse_completion(resp.json())

    def _build_payload(self, history: Sequence[Message], stream: bool) -> Dict[str, Any]:
        """把会话历史转成 chat/completions 请求 JSON。"""

        window = [m for m in history if m.role != "system"]
        max_context = getattr(self._settings, "max_context_messages", 40)
        if len(window) > max_context:
            window = window[-max_context:]
        locale = getattr(self._settings, "locale", "id")
        msgs: List[Dict[str, str]] = [{"role": "system", "content": load_system_prompt(locale)}]
        msgs.extend(m.to_payload() for m in window)
        return {
            "model": self._settings.inference_model_id,
            "messages": msgs,
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "stream": stream,
        }

    def _url(self) -> str:
        base = self._settings.inference_url.rstrip("/")
        return f"{base}{self._settings.inference_chat_path}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        key = getattr(self._settings, "inference_key", None)
        # 本地部署的推理端可以不需要密钥
        if key:
            headers["Authorization"] = f"Bearer {key}"
        return headers

    @staticmethod
    def _check_status(resp: httpx.Response, streaming: bool = False) -> None:
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="Inference rate limit", http_status=429)
        if resp.status_code >= 400:
            if streaming:
                resp.read()
            raise ApiError(code="API_ERROR", message=resp.text[:500], http_status=resp.status_code)

    @staticmethod
    def _parse_completion(data: Dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not choices:
            raise ApiError(code="EMPTY_COMPLETION", message="Inference returned no choices")
        message = choices[0].get("message") or {}
        return message.get("content") or ""
