"""Provider 抽象接口。

上层 Agent 不直接依赖具体的模型服务 HTTP 接口，而是依赖此协议：

- 每个模型服务实现一个 ProviderClient（如 OllamaClient）。
- 负责：将 ChatRequest 转成具体 API 请求，并把响应 JSON 解析为 ChatResult。
"""

from typing import List, Protocol
from olly_agent.domain.models import ChatRequest, ChatResult


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志。
    - chat(req): 执行一次非流式对话调用，返回统一的 ChatResult。
    - list_models(): 列出本地可用模型名。
    """

    name: str

    async def chat(self, req: ChatRequest) -> ChatResult:
        ...

    async def list_models(self) -> List[str]:
        ...
