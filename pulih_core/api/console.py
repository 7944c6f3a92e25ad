"""控制台视图。

把快照渲染到终端：每次只打印相对上一次快照新增的部分，
最终文本与快照一致时不重复输出。格式化函数由调用方注入，默认原样输出。
"""

import sys
from typing import Callable, List, Optional, TextIO

Formatter = Callable[[str], str]

CRISIS_RESOURCES = (
    "Kamu tidak sendirian. Jika kamu dalam bahaya atau ingin menyakiti diri sendiri, "
    "segera hubungi layanan darurat 112 atau orang yang kamu percaya."
)


def plain(text: str) -> str:
    return text


class ConsoleView:
    def __init__(self, out: Optional[TextIO] = None, formatter: Formatter = plain):
        self._out = out or sys.stdout
        self._format = formatter
        self._shown = ""
        self.last_suggestions: List[str] = []

    def show_user_message(self, text: str) -> None:
        self._write(f"\nAnda: {self._format(text)}\n")
        self._shown = ""

    def render(self, snapshot: str) -> None:
        text = self._format(snapshot)
        if not self._shown:
            self._write("Pulih: ")
        if text.startswith(self._shown):
            self._write(text[len(self._shown):])
        else:
            # 快照被整体改写（例如附加错误标记前的格式化差异），重新输出一行
            self._write(f"\nPulih: {text}")
        self._shown = text

    def finalize(self, final_text: str) -> None:
        text = self._format(final_text)
        if text != self._shown:
            self.render(final_text)
        self._write("\n")
        self._shown = ""

    def show_suggestions(self, suggestions: List[str]) -> None:
        self.last_suggestions = list(suggestions)
        for i, s in enumerate(suggestions, start=1):
            self._write(f"  [{i}] {s}\n")

    def show_notice(self, text: str) -> None:
        self._write(f"\n{self._format(text)}\n")
        self._shown = ""

    def session_created(self, session_id: str) -> None:
        self._write(f"(sesi tersimpan: {session_id})\n")

    def _write(self, text: str) -> None:
        self._out.write(text)
        self._out.flush()


class ConsoleAdvisory:
    def __init__(self, out: Optional[TextIO] = None):
        self._out = out or sys.stdout

    def fire(self) -> None:
        self._out.write(f"\n*** {CRISIS_RESOURCES} ***\n")
        self._out.flush()
