"""统一的对话与工具结果数据模型。

本模块定义了在 Provider、工具处理器与 Agent 之间共享的标准数据结构：

- ChatMessage / ChatRequest / ChatResult: 与本地模型（Ollama）交互的消息与响应。
- PermissionStatus: 系统日历授权状态。
- CalendarEvent / WeatherPeriod: 工具返回给模型前的规范化记录。

所有 Provider 适配器只依赖这些模型，并负责在各自的 JSON 与这些模型之间做转换。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional, Any, Dict, List, TYPE_CHECKING

if TYPE_CHECKING:
    # 仅在类型检查时导入，避免运行时循环依赖
    from olly_agent.tools.definitions import ToolCall, ToolDef


# LLM 消息角色类型（与 Ollama / OpenAI 的 role 字段对应）
Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class ChatMessage:
    """一条对话消息，既可用于请求，也可用于响应。

    - tool_calls: 当 role 为 "assistant" 且模型触发工具调用时，保存调用列表。
    - tool_name: 当 role 为 "tool" 时，标记该结果来自哪个工具。
    """

    role: Role
    content: str
    meta: Dict[str, Any] = field(default_factory=dict)
    tool_calls: Optional[List["ToolCall"]] = None
    tool_name: Optional[str] = None


@dataclass
class ChatRequest:
    """一次完整的聊天请求。"""

    model: str
    messages: List[ChatMessage]
    temperature: float = 0.7
    # 仅当模型支持工具调用时才会携带
    tools: Optional[List["ToolDef"]] = None


@dataclass
class ChatUsage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatResult:
    """一次对话调用的最终结果。

    - raw: 原始响应 JSON，用于调试或日志记录。
    """

    model: str
    message: ChatMessage
    done_reason: Optional[str] = None
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None


class PermissionStatus(str, Enum):
    """系统日历授权状态，每次操作前实时查询，不做缓存。"""

    AUTHORIZED = "authorized"
    DENIED = "denied"
    PROMPT = "prompt"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "PermissionStatus":
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class CalendarEvent:
    """规范化后的日历事件，生命周期仅限一次工具响应。"""

    title: str
    start_date: str
    end_date: str
    location: Optional[str] = None
    notes: Optional[str] = None
    is_all_day: bool = False
    is_recurring: bool = False
    calendar_title: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "CalendarEvent":
        return cls(
            title=str(raw.get("title") or ""),
            start_date=str(raw.get("startDate") or ""),
            end_date=str(raw.get("endDate") or ""),
            location=raw.get("location") or None,
            notes=raw.get("notes") or None,
            is_all_day=bool(raw.get("isAllDay")),
            is_recurring=bool(raw.get("isRecurring")),
            calendar_title=raw.get("calendarTitle") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "location": self.location,
            "notes": self.notes,
            "isAllDay": self.is_all_day,
            "isRecurring": self.is_recurring,
            "calendarTitle": self.calendar_title,
        }


@dataclass(frozen=True)
class WeatherPeriod:
    """weather.gov 预报时段的规范化形式。"""

    name: str
    temperature: float
    temperature_unit: str
    is_daytime: bool
    wind_speed: str
    wind_direction: str
    short_forecast: str
    detailed_forecast: str
    precipitation_probability: float = 0

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "WeatherPeriod":
        precipitation = raw.get("probabilityOfPrecipitation")
        if not isinstance(precipitation, dict):
            precipitation = {}
        return cls(
            name=str(raw.get("name") or ""),
            temperature=raw.get("temperature"),
            temperature_unit=str(raw.get("temperatureUnit") or ""),
            is_daytime=bool(raw.get("isDaytime")),
            wind_speed=str(raw.get("windSpeed") or ""),
            wind_direction=str(raw.get("windDirection") or ""),
            short_forecast=str(raw.get("shortForecast") or ""),
            detailed_forecast=str(raw.get("detailedForecast") or ""),
            precipitation_probability=precipitation.get("value") or 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "temperature": self.temperature,
            "temperatureUnit": self.temperature_unit,
            "isDaytime": self.is_daytime,
            "windSpeed": self.wind_speed,
            "windDirection": self.wind_direction,
            "shortForecast": self.short_forecast,
            "detailedForecast": self.detailed_forecast,
            "precipitationProbability": self.precipitation_probability,
        }
