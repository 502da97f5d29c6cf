"""Olly Agent 顶层包。

该包提供本地模型（Ollama）工具调用的核心实现，
包括配置加载、领域模型、日历与天气适配器、
日历授权状态机、工具分发器以及工具调用对话循环。
"""

from olly_agent.api.service import execute_tool, list_models, run_chat

__all__ = ["execute_tool", "list_models", "run_chat"]
