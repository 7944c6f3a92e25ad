"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
便于在 API 层或 UI 层做统一捕获与用户提示。

只有 TransportError 会让一次交互进入 Failed 状态；
其余错误都在管线内部降级处理。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、session_id 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """推理端流式连接失败：无法建立、非 2xx 状态或中途断开。"""


class NetworkError(TransportError):
    """网络层错误，例如连接失败、读取超时等。"""


class ApiError(TransportError):
    """推理端返回非 2xx/429 错误时抛出。"""


class RateLimitError(TransportError):
    """推理端限流。核心不做自动重试，由用户重新发送。"""


class MalformedEventError(BusinessError):
    """单行 data: 载荷无法解析或缺少增量字段，仅在解析器内部使用。"""


class PersistenceError(BusinessError):
    """会话保存/读取失败。"""


class SuggestionError(BusinessError):
    """后续话题建议获取失败，管理器会忽略该错误。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class ExchangeInProgressError(BusinessError):
    """同一聊天界面上已有一次交互处于 Sending/Streaming 状态。"""
