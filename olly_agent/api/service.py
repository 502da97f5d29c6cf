"""对外 API 服务模块。

提供简化的异步函数接口供上层应用（聊天界面）调用。
"""

from typing import Optional, Dict, Any, List

from olly_agent.agents.tool_agent import AgentConfig, ToolCallingAgent
from olly_agent.config.settings import settings
from olly_agent.domain.models import ChatMessage
from olly_agent.infrastructure.logging.logger import logger
from olly_agent.providers import create_provider
from olly_agent.providers.base import ProviderClient
from olly_agent.providers.registry import supports_tool_calling
from olly_agent.tools.executor import ToolArgs, ToolExecutor, create_executor


_executor: Optional[ToolExecutor] = None
_provider: Optional[ProviderClient] = None


def get_default_executor() -> ToolExecutor:
    """获取默认的工具分发器实例（单例）。"""
    global _executor
    if _executor is None:
        _executor = create_executor()
    return _executor


def get_default_provider() -> ProviderClient:
    global _provider
    if _provider is None:
        _provider = create_provider()
    return _provider


async def execute_tool(name: str, args: ToolArgs = None) -> str:
    """执行单个工具调用，返回 JSON 字符串。

    args 可以是 dict，也可以是模型给出的 JSON 字符串。

    Raises:
        UnknownToolError: 工具名未注册。
    """
    return await get_default_executor().dispatch(name, args)


async def list_models() -> List[Dict[str, Any]]:
    """列出本地 Ollama 模型，并标注是否支持工具调用。"""
    names = await get_default_provider().list_models()
    return [{"name": n, "supportsTools": supports_tool_calling(n)} for n in names]


async def run_chat(
    user_input: str,
    model: Optional[str] = None,
    history: Optional[List[ChatMessage]] = None,
) -> Dict[str, Any]:
    """运行一次带工具调用的聊天。

    Args:
        user_input: 用户输入内容
        model: 模型名（可选，默认取配置）
        history: 之前的对话消息（可选）

    Returns:
        包含助手回复、工具调用记录和使用统计的字典
    """
    config = AgentConfig(
        model=model or settings.default_model,
        max_tool_rounds=settings.max_tool_rounds,
    )
    agent = ToolCallingAgent(
        provider_client=get_default_provider(),
        tool_executor=get_default_executor(),
        config=config,
    )
    messages = list(history or []) + [ChatMessage(role="user", content=user_input)]
    try:
        reply = await agent.run(messages)
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {"model": config.model, "error": str(e)}})
        raise
    return {
        "model": config.model,
        "content": reply.message.content,
        "toolCalls": [{"name": r.name, "result": r.content} for r in reply.tool_results],
        "toolRounds": reply.tool_rounds,
        "usage": reply.usage,
    }
