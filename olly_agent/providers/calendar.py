"""系统日历能力适配层。

工具处理器不直接接触操作系统，而是依赖 CalendarProvider 协议：

- HelperCalendarProvider: 调用原生辅助程序（例如基于 EventKit 的可执行文件），
  每个操作对应一个子命令，请求体经 stdin 传入，结果以 JSON 从 stdout 返回。
- UnavailableCalendarProvider: 未配置辅助程序时使用，权限状态恒为 "unknown"。

测试中可以用实现同样方法的 Fake 对象替换。
"""

from __future__ import annotations

import asyncio
import json
import platform
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from olly_agent.config.settings import settings
from olly_agent.domain.exceptions import CalendarProviderError
from olly_agent.infrastructure.logging.logger import logger


@dataclass
class PermissionResponse:
    granted: bool
    message: Optional[str] = None


class CalendarProvider(Protocol):
    """系统日历 Provider 协议。"""

    async def check_permission(self) -> str:
        ...

    async def request_permission(self) -> PermissionResponse:
        ...

    async def fetch_events(self, days_ahead: int) -> Dict[str, Any]:
        """返回 {"events": [...]}，事件字段为 camelCase 原始记录。"""

        ...

    async def create_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """返回 {"success": bool, "eventId"?, "calendarTitle"?, "error"?}。"""

        ...

    async def get_diagnostics(self) -> Dict[str, Any]:
        ...


class HelperCalendarProvider:
    name = "helper"

    def __init__(self, command: str, timeout: Optional[float] = None):
        self._command = command
        self._timeout = timeout or settings.calendar_helper_timeout

    async def check_permission(self) -> str:
        data = await self._invoke("check-permission")
        return str(data.get("status") or "unknown")

    async def request_permission(self) -> PermissionResponse:
        data = await self._invoke("request-permission")
        return PermissionResponse(granted=bool(data.get("granted")), message=data.get("message"))

    async def fetch_events(self, days_ahead: int) -> Dict[str, Any]:
        return await self._invoke("fetch-events", {"daysAhead": days_ahead})

    async def create_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._invoke("create-event", payload, allow_failure_payload=True)

    async def get_diagnostics(self) -> Dict[str, Any]:
        return await self._invoke("diagnostics")

    async def _invoke(
        self,
        subcommand: str,
        payload: Optional[Dict[str, Any]] = None,
        allow_failure_payload: bool = False,
    ) -> Dict[str, Any]:
        stdin = json.dumps(payload, ensure_ascii=False).encode("utf-8") if payload is not None else None
        try:
            proc = await asyncio.create_subprocess_exec(
                self._command,
                subcommand,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise CalendarProviderError(
                code="CALENDAR_HELPER_MISSING",
                message=f"Calendar helper not found: {self._command}",
            ) from exc
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(stdin), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise CalendarProviderError(
                code="CALENDAR_HELPER_TIMEOUT",
                message=f"Calendar helper timed out running {subcommand}",
            ) from exc

        try:
            data = json.loads(stdout.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CalendarProviderError(
                code="CALENDAR_HELPER_OUTPUT",
                message=f"Failed to parse {subcommand} output: {exc}",
            ) from exc
        if not isinstance(data, dict):
            raise CalendarProviderError(
                code="CALENDAR_HELPER_OUTPUT",
                message=f"Unexpected {subcommand} output: expected a JSON object",
            )

        if proc.returncode != 0 and not (allow_failure_payload and "success" in data):
            detail = stderr.decode("utf-8", errors="replace").strip() or data.get("error")
            raise CalendarProviderError(
                code="CALENDAR_HELPER_FAILED",
                message=f"Calendar helper {subcommand} failed: {detail or proc.returncode}",
            )
        return data


class UnavailableCalendarProvider:
    """没有原生日历桥接时的占位实现。"""

    name = "unavailable"

    async def check_permission(self) -> str:
        return "unknown"

    async def request_permission(self) -> PermissionResponse:
        return PermissionResponse(granted=False, message="Calendar integration is not available")

    async def fetch_events(self, days_ahead: int) -> Dict[str, Any]:
        raise CalendarProviderError(code="CALENDAR_UNAVAILABLE", message="Calendar integration is not available")

    async def create_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {"success": False, "error": "Calendar integration is not available"}

    async def get_diagnostics(self) -> Dict[str, Any]:
        return {
            "permissionStatus": "unknown",
            "platform": platform.system(),
            "helperConfigured": False,
            "calendars": [],
        }


def create_calendar_provider(command: Optional[str] = None) -> CalendarProvider:
    """根据配置创建日历 Provider，未配置辅助程序时退化为 UnavailableCalendarProvider。"""

    helper = command or settings.calendar_helper_command
    if helper:
        return HelperCalendarProvider(helper)
    logger.warning("No calendar helper configured; calendar tools will report unknown permission")
    return UnavailableCalendarProvider()
