"""提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取提示词文本：
- counselor_system.md: 陪伴咨询人设的 system prompt。
- suggestions_system.md: 生成后续话题建议的指令。
- summary_system.md: 生成会话总结的指令。
"""

from functools import lru_cache
from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent

GREETING = (
    "Halo, saya di sini untuk mendengarkan. Bagaimana perasaanmu hari ini? "
    "Apakah ada sesuatu yang mengganggu pikiranmu?"
)

SUMMARY_HEADING = "**Ringkasan Sesi:**"

MOOD_SCALE = "1 = Sangat Sedih/Buruk, 5 = Sangat Senang/Baik"


@lru_cache(maxsize=None)
def load_prompt(name: str, locale: str = "id") -> str:
    """读取 prompts/<locale>/<name>.md 的内容。"""

    fname = PROMPTS_DIR / locale / f"{name}.md"
    return fname.read_text(encoding="utf-8").strip()


def load_system_prompt(locale: str = "id") -> str:
    return load_prompt("counselor_system", locale)


def build_mood_prompt(level: int, note: str) -> str:
    """心情记录更新后自动发给模型的系统提示。"""

    return (
        f"[SYSTEM UPDATE: User recorded Mood Level {level}/5 (Scale: {MOOD_SCALE}). "
        f'Note: "{note}". Respond accordingly.]'
    )
