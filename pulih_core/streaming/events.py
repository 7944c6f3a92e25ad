"""data: 行协议解析。

只处理 OpenAI 兼容流的一个子集：

    data: {"choices": [{"delta": {"content": "..."}}]}
    data: [DONE]

其他行一律视为可忽略。格式错误的片段直接丢弃而不是中断整个流，
尽量把已收到的部分回复交给用户。
"""

import json
from typing import Any

from pulih_core.domain.exceptions import MalformedEventError
from pulih_core.domain.models import IGNORABLE, TERMINAL, StreamEvent
from pulih_core.infrastructure.logging.logger import logger

EVENT_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def classify(line: str) -> StreamEvent:
    """把一行文本分类为 StreamEvent，从不抛出异常。"""

    stripped = line.strip()
    if not stripped.startswith(EVENT_PREFIX):
        return IGNORABLE
    payload = stripped[len(EVENT_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return TERMINAL
    try:
        fragment = extract_fragment(payload)
    except MalformedEventError as e:
        logger.debug("Dropped malformed event", extra={"extra": {"code": e.code}})
        return IGNORABLE
    return StreamEvent.delta(fragment)


def extract_fragment(payload: str) -> str:
    """从 JSON 载荷中取出 choices[0].delta.content。"""

    try:
        data: Any = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedEventError(code="EVENT_NOT_JSON", message=str(e))
    try:
        content = data["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        raise MalformedEventError(code="EVENT_NO_CONTENT", message="choices[0].delta.content missing")
    # 部分服务端在角色帧或结束帧里给出 "content": null
    if not isinstance(content, str):
        raise MalformedEventError(code="EVENT_NO_CONTENT", message="content is not a string")
    return content
