"""回复增量累积器。"""

from typing import Tuple

from pulih_core.domain.models import StreamEvent


class DeltaAccumulator:
    """按到达顺序拼接 delta，始终维护完整回复文本。

    - apply() 返回 (当前全文, 是否有可见更新)。
    - 收到 terminal 之后不再接受任何增量。
    """

    def __init__(self) -> None:
        self._text = ""
        self._finished = False
        self.delta_count = 0

    @property
    def text(self) -> str:
        return self._text

    @property
    def finished(self) -> bool:
        return self._finished

    def apply(self, event: StreamEvent) -> Tuple[str, bool]:
        if self._finished:
            return self._text, False
        if event.is_terminal:
            self._finished = True
            return self._text, False
        if not event.is_delta:
            return self._text, False
        self.delta_count += 1
        if not event.text:
            # 空片段合法，但没有可见变化
            return self._text, False
        self._text += event.text
        return self._text, True
