"""Ollama Provider 适配器。

使用本地 Ollama 的原生 HTTP 接口：
- 模型列表: GET {host}/api/tags
- 对话: POST {host}/api/chat（非流式，stream=false）

工具调用结果位于 message.tool_calls，arguments 通常已是 JSON 对象。
"""

import json
from typing import Any, Dict, List

import httpx

from olly_agent.config.settings import settings
from olly_agent.domain.exceptions import ApiError, NetworkError, RateLimitError
from olly_agent.domain.models import ChatMessage, ChatRequest, ChatResult, ChatUsage
from olly_agent.tools.definitions import ToolCall


class OllamaClient:
    """Ollama Provider 客户端实现。"""

    name = "ollama"

    def __init__(self, cfg=settings):
        self._settings = cfg

    async def list_models(self) -> List[str]:
        data = await self._request("GET", "/api/tags")
        return [m.get("name") or m.get("model") or "" for m in data.get("models", [])]

    async def chat(self, req: ChatRequest) -> ChatResult:
        payload = self._build_payload(req)
        data = await self._request("POST", "/api/chat", json=payload)
        return self._parse_response(data, req)

    # ---- 辅助方法 ----

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.request(method, f"{self._settings.ollama_host}{path}", **kwargs)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="Ollama rate limit")
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        return resp.json()

    def _build_payload(self, req: ChatRequest) -> dict:
        payload: Dict[str, Any] = {
            "model": req.model,
            "messages": [self._message_to_payload(m) for m in req.messages],
            "stream": False,
            "options": {"temperature": req.temperature},
        }
        if req.tools:
            payload["tools"] = [tool.to_schema() for tool in req.tools]
        return payload

    def _parse_response(self, data: dict, req: ChatRequest) -> ChatResult:
        message = self._build_chat_message(data.get("message") or {})
        usage = None
        if "prompt_eval_count" in data or "eval_count" in data:
            prompt_tokens = int(data.get("prompt_eval_count") or 0)
            completion_tokens = int(data.get("eval_count") or 0)
            usage = ChatUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            )
        return ChatResult(
            model=data.get("model") or req.model,
            message=message,
            done_reason=data.get("done_reason"),
            usage=usage,
            raw=data,
        )

    def _build_chat_message(self, payload: Dict[str, Any]) -> ChatMessage:
        tool_calls: List[ToolCall] = []
        for idx, call in enumerate(payload.get("tool_calls") or []):
            func = call.get("function") or {}
            tool_calls.append(
                ToolCall(
                    id=call.get("id") or f"tool_call_{idx}",
                    name=func.get("name") or "",
                    arguments=self._parse_arguments(func.get("arguments")),
                )
            )
        return ChatMessage(
            role=payload.get("role") or "assistant",
            content=payload.get("content") or "",
            tool_calls=tool_calls or None,
        )

    def _message_to_payload(self, message: ChatMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": message.role, "content": message.content}
        if message.tool_calls:
            payload["tool_calls"] = [
                {"function": {"name": call.name, "arguments": call.arguments}}
                for call in message.tool_calls
            ]
        if message.tool_name:
            payload["tool_name"] = message.tool_name
        return payload

    @staticmethod
    def _parse_arguments(raw: Any) -> Dict[str, Any]:
        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                return {"_raw": raw}
            return parsed if isinstance(parsed, dict) else {"_raw": raw}
        return {}
