"""按行切分字节流。"""

from typing import List, Union


class LineFramer:
    """把分块到达的字节流重组为完整的文本行。

    每个 chunk 的最后一段（可能不完整）会被暂存，直到后续字节
    或流结束时才作为一行交出。按整行解码 UTF-8，因此多字节字符
    被切在 chunk 边界上也不会损坏。
    """

    def __init__(self, encoding: str = "utf-8"):
        self._encoding = encoding
        self._pending = b""

    @property
    def pending(self) -> bytes:
        return self._pending

    def feed(self, chunk: Union[bytes, str]) -> List[str]:
        """喂入一个 chunk，返回其中已完整的行（可能为空列表）。"""

        if isinstance(chunk, str):
            chunk = chunk.encode(self._encoding)
        if not chunk:
            return []
        data = self._pending + chunk
        parts = data.split(b"\n")
        self._pending = parts.pop()
        return [self._decode(part) for part in parts]

    def flush(self) -> str:
        """流结束时交出暂存的最后一行；没有剩余内容时返回空串。"""

        rest, self._pending = self._pending, b""
        return self._decode(rest)

    def _decode(self, raw: bytes) -> str:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        return raw.decode(self._encoding, errors="replace")
