"""字节流 -> 行 -> 事件 -> 回复全文 的完整读取管线。"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from pulih_core.streaming.accumulator import DeltaAccumulator
from pulih_core.streaming.events import classify
from pulih_core.streaming.framer import LineFramer

SnapshotCallback = Callable[[str], None]
StopCheck = Callable[[], bool]


@dataclass
class StreamOutcome:
    """一次流读取的结果。

    - text: 权威的最终回复全文。
    - terminated: 是否收到了 [DONE]（否则是传输自然关闭）。
    - abandoned: 是否因外部取消而提前放弃。
    - delta_count: 解析出的增量事件数量（含空片段）。
    """

    text: str
    terminated: bool = False
    abandoned: bool = False
    delta_count: int = 0


class StreamPipeline:
    """单次交互使用的管线实例，不可复用。

    传输层抛出的异常原样向上传播；此时 text 属性仍保留
    已经累积的部分回复，调用方可以据此展示。
    """

    def __init__(self) -> None:
        self.framer = LineFramer()
        self.accumulator = DeltaAccumulator()

    @property
    def text(self) -> str:
        return self.accumulator.text

    def consume(
        self,
        chunks: Iterable[Union[bytes, str]],
        on_snapshot: Optional[SnapshotCallback] = None,
        should_stop: Optional[StopCheck] = None,
    ) -> StreamOutcome:
        iterator = iter(chunks)
        try:
            if should_stop and should_stop():
                return self._outcome(abandoned=True)
            for chunk in iterator:
                if should_stop and should_stop():
                    return self._outcome(abandoned=True)
                for line in self.framer.feed(chunk):
                    self._apply_line(line, on_snapshot)
                    if self.accumulator.finished:
                        return self._outcome()
            if should_stop and should_stop():
                return self._outcome(abandoned=True)
            # 流结束时剩余的半行也要解析一次
            self._apply_line(self.framer.flush(), on_snapshot)
            return self._outcome()
        finally:
            close = getattr(iterator, "close", None)
            if close is not None:
                close()

    def _apply_line(self, line: str, on_snapshot: Optional[SnapshotCallback]) -> None:
        text, updated = self.accumulator.apply(classify(line))
        if updated and on_snapshot is not None:
            on_snapshot(text)

    def _outcome(self, abandoned: bool = False) -> StreamOutcome:
        return StreamOutcome(
            text=self.accumulator.text,
            terminated=self.accumulator.finished,
            abandoned=abandoned,
            delta_count=self.accumulator.delta_count,
        )
