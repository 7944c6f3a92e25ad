"""推理端集成层。

该包下的模块负责：
- 定义推理端传输协议 (base)。
- 提供 OpenAI 兼容推理端的 httpx 实现 (inference_client)。
"""

from pulih_core.config.settings import settings
from pulih_core.providers.base import CompletionClient, InferenceTransport
from pulih_core.providers.inference_client import InferenceClient


def create_inference_client() -> InferenceClient:
    """根据当前配置创建推理端客户端。"""

    return InferenceClient(settings)


__all__ = ["CompletionClient", "InferenceClient", "InferenceTransport", "create_inference_client"]
