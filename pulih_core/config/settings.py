"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
环境变量名沿用推理端部署时的命名（INFERENCE_URL、INFERENCE_KEY 等）。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# 原产品使用的危机关键词（印尼语），匹配时不区分大小写
DEFAULT_CRISIS_KEYWORDS = [
    "bunuh diri",
    "ingin mati",
    "lukai diri",
    "tidak kuat lagi",
    "akhiri hidup",
    "gantung diri",
    "minum racun",
]


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("PULIH_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 推理端 ----
    inference_url: str = Field(
        default="http://localhost:8000/v1",
        description="OpenAI 兼容推理端的基础 URL",
    )
    inference_chat_path: str = Field(
        default="/chat/completions",
        description="对话补全接口路径，拼接在 inference_url 之后",
    )
    inference_key: Optional[str] = Field(default=None, description="推理端 API 密钥")
    inference_model_id: str = Field(default="pulih-counselor", description="推理端模型 ID")
    temperature: float = Field(default=1.0, ge=0.0, le=2.0, description="生成温度，偏高以获得更有同理心的回复")
    max_tokens: int = Field(default=5000, ge=1, description="单次回复最大 token 数")
    http_timeout: float = Field(default=60.0, ge=1.0, description="HTTP 超时时间（秒）")
    max_context_messages: int = Field(default=40, ge=1, le=200, description="发送给推理端的最大历史消息数")

    # ---- 存储与日志 ----
    storage_root: str = Field(default=".storage", description="会话存储根目录")
    log_level: str = Field(default="INFO", description="日志级别，DEBUG 时记录被丢弃的流事件")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否截断日志内容")

    # ---- 会话辅助 ----
    crisis_keywords: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CRISIS_KEYWORDS),
        description="触发危机提示面板的关键词",
    )
    suggestion_count: int = Field(default=3, ge=1, le=6, description="每次给出的后续话题建议数")
    locale: str = Field(default="id", description="提示词语言目录")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("inference_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @field_validator("inference_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
