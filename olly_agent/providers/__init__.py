"""外部能力集成层。

该包下的模块负责：
- 定义模型 Provider 抽象接口 (base) 与 Ollama 实现 (ollama_client)。
- 维护模型工具调用能力规则 (registry)。
- 系统日历 (calendar) 与天气服务 (weather) 的适配器。
"""

from typing import Optional

from olly_agent.config.settings import settings
from olly_agent.providers.base import ProviderClient
from olly_agent.providers.ollama_client import OllamaClient


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，目前仅支持本地 Ollama。"""

    provider_name = (name or "ollama").lower()
    if provider_name != "ollama":
        raise KeyError(f"Unknown provider: {name!r}")
    return OllamaClient(settings)
