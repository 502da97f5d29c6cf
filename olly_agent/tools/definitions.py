"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的 schema，既用于：
- 将可用工具列表暴露给本地模型（ToolDef / ToolParam），这是模型绑定的调用契约，
  字段名与取值范围的变化都属于破坏性变更。
- 在分发器与 Agent 中保存和执行模型触发的工具调用（ToolCall / ToolResult）。
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List

from olly_agent.domain.exceptions import ValidationError


MIN_CALENDAR_DAYS = 1
MAX_CALENDAR_DAYS = 90
MIN_WEATHER_DAYS = 1
MAX_WEATHER_DAYS = 7


@dataclass
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass
class ToolDef:
    """一个可供模型调用的工具定义。"""

    name: str
    description: str
    params: Dict[str, ToolParam] = field(default_factory=dict)

    def to_schema(self) -> Dict[str, Any]:
        """序列化为 Ollama/OpenAI function calling 格式。"""

        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in self.params.items():
            schema = param.schema or {"type": "string"}
            if param.description:
                schema = {**schema, "description": param.description}
            properties[name] = schema
            if param.required:
                required.append(name)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "required": required,
                    "properties": properties,
                },
            },
        }


@dataclass
class ToolCall:
    """模型发起的一次工具调用请求。"""

    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass
class ToolResult:
    """工具执行结果的封装，content 始终是 JSON 字符串。"""

    call_id: str
    name: str
    content: str


def index_tool_defs(defs: Iterable[ToolDef]) -> Dict[str, ToolDef]:
    """按名称建立索引，工具名必须全局唯一。"""

    indexed: Dict[str, ToolDef] = {}
    for tool in defs:
        if tool.name in indexed:
            raise ValidationError(
                code="DUPLICATE_TOOL",
                message=f"Tool {tool.name!r} is registered more than once",
            )
        indexed[tool.name] = tool
    return indexed


def default_tool_defs() -> List[ToolDef]:
    return [
        ToolDef(
            name="getCalendarEvents",
            description=(
                "Fetch upcoming calendar events from the user's macOS Calendar. Use this when the "
                "user asks about their schedule, meetings, appointments, or what's on their "
                "calendar. If the user's request involves traveling, additionally use the "
                "getWeather tool to determine good or bad travel conditions."
            ),
            params={
                "daysAhead": ToolParam(
                    name="daysAhead",
                    description=(
                        "Number of days ahead to fetch events. Default is 14 days (2 weeks). "
                        "Use 1 for today, 7 for this week, etc."
                    ),
                    required=True,
                    schema={
                        "type": "integer",
                        "default": 14,
                        "minimum": MIN_CALENDAR_DAYS,
                        "maximum": MAX_CALENDAR_DAYS,
                    },
                ),
            },
        ),
        ToolDef(
            name="createCalendarEvent",
            description=(
                "Create a new calendar event in the user's macOS Calendar. Use this when the user "
                "asks to schedule, create, or add a meeting, appointment, or event. Requires title "
                "and date/time information."
            ),
            params={
                "title": ToolParam(
                    name="title",
                    description='Title/name of the event (e.g., "Meeting with Bob", "Dentist Appointment")',
                    required=True,
                    schema={"type": "string"},
                ),
                "startDate": ToolParam(
                    name="startDate",
                    description=(
                        'Event start date and time in ISO8601 format (e.g., "2026-01-15T14:00:00Z" '
                        'or "2026-01-15T14:00:00-05:00"). Must include timezone.'
                    ),
                    required=True,
                    schema={"type": "string"},
                ),
                "endDate": ToolParam(
                    name="endDate",
                    description=(
                        'Event end date and time in ISO8601 format (e.g., "2026-01-15T15:00:00Z"). '
                        "Must be after startDate. Must include timezone."
                    ),
                    required=True,
                    schema={"type": "string"},
                ),
                "location": ToolParam(
                    name="location",
                    description='Optional location of the event (e.g., "Conference Room A", "123 Main St, Boston, MA")',
                    required=False,
                    schema={"type": "string"},
                ),
                "notes": ToolParam(
                    name="notes",
                    description="Optional notes or description for the event",
                    required=False,
                    schema={"type": "string"},
                ),
                "isAllDay": ToolParam(
                    name="isAllDay",
                    description="Whether this is an all-day event. Default is false.",
                    required=False,
                    schema={"type": "boolean", "default": False},
                ),
            },
        ),
        ToolDef(
            name="checkCalendarStatus",
            description=(
                "Check the status of calendar permissions and available calendars. Use this when "
                "the user reports issues with calendar access or creating events, or asks to "
                '"check calendar status" or "debug calendar".'
            ),
        ),
        ToolDef(
            name="getWeather",
            description=(
                "Get weather forecast for a specific location. Returns current weather or multi-day "
                "forecast based on user intent. Use this when the user asks about weather, "
                "temperature, forecast, or conditions for any location."
            ),
            params={
                "location": ToolParam(
                    name="location",
                    description=(
                        'Location in "City, State" format (e.g., "Boston, MA" or "New York, NY"). '
                        'Can also accept full city names like "San Francisco, California".'
                    ),
                    required=True,
                    schema={"type": "string"},
                ),
                "days": ToolParam(
                    name="days",
                    description=(
                        "Number of forecast days to return. Use 1 for current/today only, 2-7 for "
                        "multi-day forecast. Default is 1 (current weather only)."
                    ),
                    required=False,
                    schema={
                        "type": "integer",
                        "default": 1,
                        "minimum": MIN_WEATHER_DAYS,
                        "maximum": MAX_WEATHER_DAYS,
                    },
                ),
            },
        ),
    ]
