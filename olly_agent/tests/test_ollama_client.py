import pytest

from olly_agent.domain.exceptions import ApiError
from olly_agent.domain.models import ChatMessage, ChatRequest
from olly_agent.providers.ollama_client import OllamaClient
from olly_agent.tools.definitions import ToolCall, ToolDef, ToolParam


class SettingsStub:
    http_timeout = 1.0
    ollama_host = "http://ollama.test"


def install_client(monkeypatch, status_code, payload, captured):
    class Resp:
        def __init__(self):
            self.status_code = status_code
            self.text = str(payload)

        def json(self):
            return payload

    class Client:
        def __init__(self, *a, **kw):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def request(self, method, url, **kw):
            captured["method"] = method
            captured["url"] = url
            captured["json"] = kw.get("json")
            return Resp()

    monkeypatch.setattr("httpx.AsyncClient", Client)


@pytest.mark.asyncio
async def test_list_models(monkeypatch):
    captured = {}
    install_client(monkeypatch, 200, {"models": [{"name": "llama3.1:8b"}, {"model": "gemma2:2b"}]}, captured)
    names = await OllamaClient(SettingsStub()).list_models()
    assert names == ["llama3.1:8b", "gemma2:2b"]
    assert captured["url"] == "http://ollama.test/api/tags"


@pytest.mark.asyncio
async def test_chat_parses_tool_calls_and_sends_tools(monkeypatch):
    captured = {}
    install_client(
        monkeypatch,
        200,
        {
            "model": "llama3.1:8b",
            "message": {
                "role": "assistant",
                "content": "",
                "tool_calls": [{"function": {"name": "getWeather", "arguments": {"location": "Boston, MA"}}}],
            },
            "done_reason": "stop",
            "prompt_eval_count": 10,
            "eval_count": 5,
        },
        captured,
    )
    tool = ToolDef(
        name="getWeather",
        description="weather",
        params={"location": ToolParam(name="location", description="City", required=True, schema={"type": "string"})},
    )
    history = [
        ChatMessage(role="user", content="weather?"),
        ChatMessage(
            role="assistant",
            content="",
            tool_calls=[ToolCall(id="t0", name="getWeather", arguments={"location": "NYC"})],
        ),
        ChatMessage(role="tool", content="{}", tool_name="getWeather"),
    ]
    req = ChatRequest(model="llama3.1:8b", messages=history, tools=[tool])
    res = await OllamaClient(SettingsStub()).chat(req)

    assert captured["url"] == "http://ollama.test/api/chat"
    body = captured["json"]
    assert body["stream"] is False
    assert body["tools"][0]["function"]["name"] == "getWeather"
    assert body["tools"][0]["function"]["parameters"]["required"] == ["location"]
    assert body["messages"][1]["tool_calls"][0]["function"]["arguments"] == {"location": "NYC"}
    assert body["messages"][2]["tool_name"] == "getWeather"

    call = res.message.tool_calls[0]
    assert call.name == "getWeather"
    assert call.arguments == {"location": "Boston, MA"}
    assert res.usage.total_tokens == 15


@pytest.mark.asyncio
async def test_chat_http_error(monkeypatch):
    install_client(monkeypatch, 404, {"error": "model not found"}, {})
    req = ChatRequest(model="missing", messages=[ChatMessage(role="user", content="hi")])
    with pytest.raises(ApiError) as info:
        await OllamaClient(SettingsStub()).chat(req)
    assert info.value.http_status == 404


def test_parse_string_arguments():
    assert OllamaClient._parse_arguments('{"days": 3}') == {"days": 3}
    assert OllamaClient._parse_arguments("not json") == {"_raw": "not json"}
    assert OllamaClient._parse_arguments(None) == {}
