import pytest

from olly_agent.providers.registry import TOOL_CALLING_RULES, match_rule, rule, supports_tool_calling


@pytest.mark.parametrize(
    "model, expected",
    [
        ("llama3.1:8b", True),
        ("llama3.2:3b", True),
        ("Llama-3.3-70B", True),
        ("llama3:8b", False),
        ("llama2:7b", False),
        ("mistral:7b", True),
        ("MISTRAL-NEMO:12b", True),
        ("qwen2.5:14b", True),
        ("qwen2:7b", False),
        ("qwen3:8b", True),
        ("gemma2:9b", True),
        ("gemma2:2b", False),
        ("phi3:mini", False),
        ("phi3:medium", True),
        ("deepseek-r1:7b", True),
        ("smollm2:1.7b", True),
        ("", False),
    ],
)
def test_supports_tool_calling(model, expected):
    assert supports_tool_calling(model) is expected


def test_first_match_wins_and_rules_are_data():
    assert match_rule("mistral:7b").note == "Mistral family"
    custom = TOOL_CALLING_RULES + [rule(r"my-finetune", "local finetune")]
    assert not supports_tool_calling("my-finetune:latest")
    assert supports_tool_calling("my-finetune:latest", custom)


def test_configured_patterns_extend_rules(monkeypatch):
    class DummySettings:
        extra_tool_model_patterns = [r"^olly-"]

    monkeypatch.setattr("olly_agent.providers.registry.settings", DummySettings())
    assert supports_tool_calling("Olly-Local:1b")
