"""模型能力登记。

本地 Ollama 模型并非都支持结构化工具调用。这里用一组有序的
(正则, 说明) 规则描述已知支持的模型族，首个匹配即判定为支持；
新增模型族只需在 TOOL_CALLING_RULES 末尾追加一条规则，
或通过配置项 extra_tool_model_patterns 追加。
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern

from olly_agent.config.settings import settings
from olly_agent.infrastructure.logging.logger import logger


@dataclass(frozen=True)
class CapabilityRule:
    pattern: Pattern[str]
    note: str

    def matches(self, model: str) -> bool:
        return self.pattern.search(model) is not None


def rule(pattern: str, note: str = "") -> CapabilityRule:
    return CapabilityRule(pattern=re.compile(pattern, re.IGNORECASE), note=note)


TOOL_CALLING_RULES: List[CapabilityRule] = [
    # Llama 3.1+（工具调用从 3.1 起提供）
    rule(r"llama-?3\.[1-9]", "Llama 3.1+"),
    # Qwen 2.5+ / Qwen 3
    rule(r"qwen-?2\.[5-9]", "Qwen 2.5+"),
    rule(r"qwen-?3", "Qwen 3"),
    # Mistral 全系列
    rule(r"mistral", "Mistral family"),
    rule(r"mixtral", "Mixtral"),
    rule(r"ministral", "Ministral"),
    rule(r"command-?r", "Command R family"),
    # 专门针对工具调用微调的模型
    rule(r"firefunction", "FireFunction"),
    rule(r"functionary", "Functionary"),
    rule(r"hermes.*tool", "Hermes tool-use"),
    rule(r"nous.*hermes", "Nous Hermes"),
    rule(r"functiongemma", "FunctionGemma"),
    rule(r"granite", "Granite family"),
    # Gemma 2 仅 9B/27B
    rule(r"gemma-?2.*9b", "Gemma 2 9B"),
    rule(r"gemma-?2.*27b", "Gemma 2 27B"),
    rule(r"deepseek", "DeepSeek family"),
    rule(r"phi-?3.*medium", "Phi-3 medium"),
    rule(r"phi-?3.*large", "Phi-3 large"),
    rule(r"aya-?23", "Aya 23"),
    rule(r"aya.*expanse", "Aya Expanse"),
    rule(r"smol", "SmolLM family"),
]


def _configured_rules() -> List[CapabilityRule]:
    return [rule(p, "configured") for p in getattr(settings, "extra_tool_model_patterns", None) or []]


def match_rule(model: str, rules: Optional[Iterable[CapabilityRule]] = None) -> Optional[CapabilityRule]:
    candidates = list(rules) if rules is not None else TOOL_CALLING_RULES + _configured_rules()
    for r in candidates:
        if r.matches(model):
            return r
    return None


def supports_tool_calling(model: str, rules: Optional[Iterable[CapabilityRule]] = None) -> bool:
    """判断模型是否支持结构化工具调用（不区分大小写，首个匹配生效）。"""

    matched = match_rule(model or "", rules)
    if matched:
        logger.info(f'Model "{model}" detected as tool-capable ({matched.note})')
        return True
    logger.info(f'Model "{model}" not detected as tool-capable. Tools disabled.')
    return False
