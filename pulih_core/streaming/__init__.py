"""流式响应协议处理。

- framer: 把任意切分的字节流重新拼成按换行分隔的完整行。
- events: 把一行文本分类为增量 / 结束 / 可忽略事件。
- accumulator: 按顺序累积增量，得到完整回复并提供实时快照。
- pipeline: 串联以上三者，驱动一次完整的流读取。
"""

from pulih_core.streaming.accumulator import DeltaAccumulator
from pulih_core.streaming.events import classify
from pulih_core.streaming.framer import LineFramer
from pulih_core.streaming.pipeline import StreamOutcome, StreamPipeline

__all__ = ["DeltaAccumulator", "LineFramer", "StreamOutcome", "StreamPipeline", "classify"]
