"""工具调用对话循环。

把本地模型返回的 tool_calls 交给 ToolExecutor 执行，再把 JSON 结果作为
role="tool" 消息回传给模型，直到模型给出最终回答或达到轮数上限。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4
import json
import logging
import time

from olly_agent.config.settings import settings
from olly_agent.domain.models import ChatMessage, ChatRequest, ChatResult, ChatUsage
from olly_agent.infrastructure.logging.logger import logger
from olly_agent.providers.base import ProviderClient
from olly_agent.providers.registry import supports_tool_calling
from olly_agent.tools.definitions import ToolCall, ToolResult
from olly_agent.tools.executor import ToolExecutor


@dataclass
class AgentConfig:
    model: str
    max_tool_rounds: int = 5  # 最大工具调用轮次（硬上限由配置控制）
    temperature: float = 0.7


@dataclass
class AgentReply:
    message: ChatMessage
    messages: List[ChatMessage]
    tool_results: List[ToolResult] = field(default_factory=list)
    tool_rounds: int = 0
    forced_final: bool = False
    usage: Dict[str, Any] = field(default_factory=dict)


class ToolCallingAgent:
    def __init__(
        self,
        provider_client: ProviderClient,
        tool_executor: Optional[ToolExecutor] = None,
        config: Optional[AgentConfig] = None,
    ):
        self._provider_client = provider_client
        self._tool_executor = tool_executor
        self._config = config or AgentConfig(
            model=settings.default_model,
            max_tool_rounds=settings.max_tool_rounds,
        )

    @property
    def tools_enabled(self) -> bool:
        return self._tool_executor is not None and supports_tool_calling(self._config.model)

    async def run(self, messages: List[ChatMessage]) -> AgentReply:
        """执行一次对话：必要时进行多轮工具调用，返回最终助手消息。"""

        start_time = time.time()
        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}", "model": self._config.model}
        current_messages = list(messages)

        if not self.tools_enabled:
            result = await self._call(current_messages, log_ctx, with_tools=False)
            current_messages.append(result.message)
            return AgentReply(
                message=result.message,
                messages=current_messages,
                usage=self._usage_meta_from_usage(result.usage),
            )

        tool_results: List[ToolResult] = []
        max_rounds = self._config.max_tool_rounds
        for round_num in range(1, max_rounds + 1):
            self._log(logging.INFO, "Tool round", log_ctx, round=round_num, max_rounds=max_rounds)
            result = await self._call(current_messages, log_ctx, with_tools=True)
            assistant_msg = result.message
            current_messages.append(assistant_msg)

            if not assistant_msg.tool_calls:
                self._log(
                    logging.INFO,
                    "Completed agent run",
                    log_ctx,
                    tool_rounds=round_num,
                    elapsed_seconds=round(time.time() - start_time, 2),
                )
                return AgentReply(
                    message=assistant_msg,
                    messages=current_messages,
                    tool_results=tool_results,
                    tool_rounds=round_num,
                    usage=self._usage_meta_from_usage(result.usage),
                )

            self._log(logging.INFO, "Executing tool calls", log_ctx, call_count=len(assistant_msg.tool_calls))
            for tool_call in assistant_msg.tool_calls:
                tool_result = await self._execute(tool_call, log_ctx)
                tool_results.append(tool_result)
                current_messages.append(
                    ChatMessage(role="tool", content=tool_result.content, tool_name=tool_call.name)
                )

        self._log(logging.WARNING, "Reached max tool rounds", log_ctx, max_rounds=max_rounds)
        result = await self._call(current_messages, log_ctx, with_tools=False)
        current_messages.append(result.message)
        return AgentReply(
            message=result.message,
            messages=current_messages,
            tool_results=tool_results,
            tool_rounds=max_rounds,
            forced_final=True,
            usage=self._usage_meta_from_usage(result.usage),
        )

    async def _call(self, messages: List[ChatMessage], log_ctx: Dict[str, Any], with_tools: bool) -> ChatResult:
        req = ChatRequest(
            model=self._config.model,
            messages=list(messages),
            temperature=self._config.temperature,
            tools=self._tool_executor.tool_defs if with_tools and self._tool_executor else None,
        )
        self._log(
            logging.INFO,
            "Calling provider",
            log_ctx,
            provider=self._provider_client.name,
            message_count=len(messages),
            with_tools=with_tools,
        )
        return await self._provider_client.chat(req)

    async def _execute(self, tool_call: ToolCall, log_ctx: Dict[str, Any]) -> ToolResult:
        self._log(
            logging.INFO,
            "Tool call received",
            log_ctx,
            tool_name=tool_call.name,
            tool_args=tool_call.arguments,
        )
        if not self._tool_executor.has_tool(tool_call.name):
            # 模型编造了不存在的工具名：告知模型，而不是中断对话
            self._log(logging.WARNING, "Model requested unknown tool", log_ctx, tool_name=tool_call.name)
            content = json.dumps(
                {"error": "Unknown tool", "message": f"Unknown tool: {tool_call.name}"},
                ensure_ascii=False,
            )
            return ToolResult(call_id=tool_call.id, name=tool_call.name, content=content)
        tool_result = await self._tool_executor.execute(tool_call)
        self._log(
            logging.INFO,
            "Tool execution finished",
            log_ctx,
            tool_name=tool_call.name,
            result_preview=tool_result.content[:200],
        )
        return tool_result

    @staticmethod
    def _usage_meta_from_usage(usage: Optional[ChatUsage]) -> Dict[str, Any]:
        if not usage:
            return {}
        return {
            "prompt_tokens": usage.prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "total_tokens": usage.total_tokens,
        }

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
