"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置，优先级依次降低。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("AGENT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
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

    app_name: str = Field(default="Olly", description="提示用户授权时显示的应用名称")

    # ---- 模型 Provider ----
    ollama_host: str = Field(
        default="http://localhost:11434",
        description="本地 Ollama 服务地址",
    )
    default_model: str = Field(default="llama3.1:8b", description="默认对话模型")
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")
    max_tool_rounds: int = Field(
        default=5,
        ge=1,
        le=20,
        description="单轮对话内工具调用最大轮数（硬上限 20）",
    )
    extra_tool_model_patterns: List[str] = Field(
        default_factory=list,
        description="额外视为支持工具调用的模型正则，追加在内置规则之后",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- 天气 ----
    geocoding_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        description="地理编码查询端点",
    )
    weather_points_url: str = Field(
        default="https://api.weather.gov/points",
        description="weather.gov 网格点端点",
    )
    weather_user_agent: str = Field(
        default="Olly Weather App/1.0",
        description="天气相关请求使用的 User-Agent",
    )

    # ---- 日历 ----
    calendar_helper_command: Optional[str] = Field(
        default=None,
        description="原生日历辅助程序路径；为空时日历工具报告权限未知",
    )
    calendar_helper_timeout: float = Field(default=30.0, ge=1.0, description="日历辅助程序超时（秒）")
    default_calendar_days: int = Field(default=14, ge=1, le=90, description="默认查询天数")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("ollama_host", "geocoding_url", "weather_points_url")
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
