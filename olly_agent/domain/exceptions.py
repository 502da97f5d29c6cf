"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在工具分发层或 API 层做统一捕获，并转换为模型可读的 JSON 结果。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "UNKNOWN_TOOL"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 tool、stage 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(BusinessError):
    """Provider 限流错误，由上层负责重试/退避策略。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class UnknownToolError(BusinessError):
    """请求的工具名未注册。

    这是调用方/集成错误，而非工具运行时失败，因此由分发器直接抛出，
    不会被包装成 JSON 结果。
    """

    def __init__(self, name: str):
        super().__init__(code="UNKNOWN_TOOL", message=f"Unknown tool: {name}", tool=name)
        self.tool_name = name


class CalendarProviderError(BusinessError):
    """原生日历辅助程序调用失败（进程异常、输出无法解析等）。"""


class WeatherLookupError(BusinessError):
    """天气三段式查询中某一阶段失败。"""


class GeocodeError(WeatherLookupError):
    """地理编码阶段失败。"""


class GridPointError(WeatherLookupError):
    """网格点解析阶段失败。"""


class ForecastError(WeatherLookupError):
    """预报获取阶段失败。"""


class LocationNotSupported(GridPointError):
    """网格点接口返回 404：位置不在 weather.gov 覆盖范围内。"""

    def __init__(self, url: str):
        super().__init__(
            code="LOCATION_NOT_SUPPORTED",
            message=f"No weather.gov grid point for {url}",
            http_status=404,
            url=url,
        )
