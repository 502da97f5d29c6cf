from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
import json

from olly_agent.domain.exceptions import UnknownToolError, ValidationError
from olly_agent.infrastructure.logging.logger import logger, tool_scope
from olly_agent.providers.calendar import CalendarProvider, create_calendar_provider
from olly_agent.providers.weather import WeatherClient
from .calendar import calendar_tools
from .definitions import ToolCall, ToolDef, ToolResult, default_tool_defs, index_tool_defs
from .weather import weather_tools


ToolFunc = Callable[[Dict[str, Any]], Awaitable[str]]
ToolArgs = Union[Mapping[str, Any], str, None]


def coerce_arguments(args: ToolArgs) -> Dict[str, Any]:
    """把调用参数规整为 dict；模型常把参数作为 JSON 字符串给出。"""

    if args is None:
        return {}
    if isinstance(args, str):
        if not args.strip():
            return {}
        try:
            args = json.loads(args)
        except json.JSONDecodeError as e:
            raise ValidationError(code="INVALID_ARGUMENTS", message=f"Arguments are not valid JSON: {e}")
    if not isinstance(args, Mapping):
        raise ValidationError(
            code="INVALID_ARGUMENTS",
            message=f"Arguments must be a JSON object, got {type(args).__name__}",
        )
    return dict(args)


class ToolExecutor:
    """工具分发器：唯一入口，保证返回 JSON 字符串。

    未注册的工具名抛出 UnknownToolError（调用方错误）；处理器内部逃逸的
    任何异常都会在这里被转换为 {"error", "message"} 结果。
    """

    def __init__(self, tools: Dict[str, ToolFunc], tool_defs: Optional[List[ToolDef]] = None):
        self._tools = tools
        self._defs = index_tool_defs(tool_defs if tool_defs is not None else default_tool_defs())

    @property
    def tool_defs(self) -> List[ToolDef]:
        return [d for name, d in self._defs.items() if name in self._tools]

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    async def dispatch(self, name: str, args: ToolArgs = None) -> str:
        func = self._tools.get(name)
        if func is None:
            logger.error(f"Unknown tool: {name}")
            raise UnknownToolError(name)

        with tool_scope(name):
            try:
                arguments = coerce_arguments(args)
            except ValidationError as e:
                logger.warning(f"Invalid arguments for {name}: {e.message}")
                return json.dumps({"error": "Invalid arguments", "message": e.message}, ensure_ascii=False)

            logger.info(f"Executing tool: {name}", extra={"extra": {"arguments": arguments}})
            try:
                result = await func(arguments)
            except Exception as exc:
                logger.exception(f"Tool {name} failed")
                return json.dumps({
                    "error": "Tool execution failed",
                    "message": str(exc) or exc.__class__.__name__,
                }, ensure_ascii=False)
        if not isinstance(result, str):
            result = json.dumps(result, ensure_ascii=False, default=str)
        return result

    async def execute(self, call: ToolCall) -> ToolResult:
        content = await self.dispatch(call.name, call.arguments)
        return ToolResult(call_id=call.id, name=call.name, content=content)


def default_tools(
    calendar: Optional[CalendarProvider] = None,
    weather: Optional[WeatherClient] = None,
) -> Dict[str, ToolFunc]:
    tools: Dict[str, ToolFunc] = {}
    tools.update(calendar_tools(calendar or create_calendar_provider()))
    tools.update(weather_tools(weather or WeatherClient()))
    return tools


def create_executor(
    calendar: Optional[CalendarProvider] = None,
    weather: Optional[WeatherClient] = None,
) -> ToolExecutor:
    return ToolExecutor(default_tools(calendar, weather))
