"""日历工具处理器：checkCalendarStatus / getCalendarEvents / createCalendarEvent。

每个处理器都返回 JSON 字符串，所有 Provider 失败都在这里转换为结果信封。
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from olly_agent.config.settings import settings
from olly_agent.domain.models import CalendarEvent
from olly_agent.infrastructure.logging.logger import logger
from olly_agent.providers.calendar import CalendarProvider
from olly_agent.tools.definitions import MAX_CALENDAR_DAYS, MIN_CALENDAR_DAYS
from olly_agent.tools.permissions import ensure_calendar_access


ToolFunc = Callable[[Dict[str, Any]], Awaitable[str]]

CREATE_FAILURE_SUGGESTION = (
    "Please ensure you have at least one writable calendar and {app} has Full Access in System Settings."
)


def _dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False)


def _clamp_days(raw: Any, default: int) -> int:
    try:
        days = int(raw) if raw is not None else default
    except (TypeError, ValueError):
        days = default
    return max(MIN_CALENDAR_DAYS, min(days, MAX_CALENDAR_DAYS))


def _parse_iso(value: str) -> Optional[datetime]:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _validate_event_args(args: Dict[str, Any]) -> Optional[str]:
    """在任何 I/O 之前校验创建参数，返回错误描述或 None。"""

    title, start, end = args.get("title"), args.get("startDate"), args.get("endDate")
    if not title or not start or not end:
        return "Missing required fields: title, startDate, and endDate are required"
    is_all_day = bool(args.get("isAllDay"))
    start_dt, end_dt = _parse_iso(str(start)), _parse_iso(str(end))
    if start_dt is None or end_dt is None:
        return "startDate and endDate must be valid ISO8601 date-times"
    if not is_all_day and (start_dt.tzinfo is None or end_dt.tzinfo is None):
        return "startDate and endDate must include a timezone offset (e.g. 2026-01-15T14:00:00-05:00)"
    if (start_dt.tzinfo is None) != (end_dt.tzinfo is None):
        return "startDate and endDate must both include or both omit a timezone offset"
    if end_dt < start_dt or (end_dt == start_dt and not is_all_day):
        return "endDate must be after startDate"
    return None


def _make_check_status_tool(provider: CalendarProvider) -> ToolFunc:
    async def _run(args: Dict[str, Any]) -> str:
        try:
            logger.info("Checking calendar diagnostics")
            diagnostics = await provider.get_diagnostics()
        except Exception as exc:
            logger.error(f"Error checking calendar status: {exc}")
            return _dumps({
                "status": "error",
                "message": "Failed to run diagnostics",
                "error": str(exc),
            })
        return _dumps({
            "status": "success",
            "message": (
                "Here is the current calendar system status. Analyze this to help the user debug "
                "permission issues."
            ),
            "diagnostics": diagnostics,
        })

    return _run


def _make_get_events_tool(provider: CalendarProvider) -> ToolFunc:
    async def _run(args: Dict[str, Any]) -> str:
        days_ahead = _clamp_days(args.get("daysAhead"), settings.default_calendar_days)
        try:
            decision = await ensure_calendar_access(provider, allow_prompt=True)
            if not decision.allowed:
                return _dumps(decision.to_payload())

            response = await provider.fetch_events(days_ahead)
            raw_events = response.get("events") or []
            if not raw_events:
                return _dumps({
                    "message": f"No events found in the next {days_ahead} days.",
                    "events": [],
                })

            events: List[CalendarEvent] = [CalendarEvent.from_raw(e) for e in raw_events]
            recurring = [e for e in events if e.is_recurring]
            one_time = [e for e in events if not e.is_recurring]
        except Exception as exc:
            logger.error(f"Error fetching calendar events: {exc}")
            return _dumps({
                "error": "Failed to fetch calendar events",
                "message": str(exc),
            })

        logger.info(
            "Calendar events fetched",
            extra={"extra": {
                "days_ahead": days_ahead,
                "recurring": len(recurring),
                "one_time": len(one_time),
            }},
        )
        return _dumps({
            "message": (
                f"Found {len(events)} event(s) in the next {days_ahead} days: {len(recurring)} "
                f"recurring and {len(one_time)} one-time events. When summarizing, make sure to "
                "include BOTH recurring and one-time events. Format any event data you show using "
                "code blocks for better readability."
            ),
            "daysAhead": days_ahead,
            "totalEvents": len(events),
            "recurringCount": len(recurring),
            "oneTimeCount": len(one_time),
            "events": [e.to_dict() for e in events],
        })

    return _run


def _make_create_event_tool(provider: CalendarProvider) -> ToolFunc:
    async def _run(args: Dict[str, Any]) -> str:
        invalid = _validate_event_args(args)
        if invalid:
            return _dumps({"success": False, "error": invalid})

        title = str(args["title"])
        try:
            logger.info(f"Creating calendar event: {title}")
            decision = await ensure_calendar_access(provider, allow_prompt=False)
            if not decision.allowed:
                return _dumps({
                    "success": False,
                    "error": "Calendar access not granted. Please grant calendar permission first.",
                    "permissionStatus": decision.permission_status,
                })

            response = await provider.create_event({
                "title": title,
                "startDate": args["startDate"],
                "endDate": args["endDate"],
                "location": args.get("location") or None,
                "notes": args.get("notes") or None,
                "isAllDay": bool(args.get("isAllDay")),
            })
        except Exception as exc:
            logger.error(f"Error creating calendar event: {exc}")
            return _dumps({
                "success": False,
                "error": str(exc),
                "message": (
                    "Failed to create calendar event. Please ensure calendar access is granted and "
                    "dates are in valid ISO8601 format."
                ),
            })

        if response.get("success"):
            calendar_title = response.get("calendarTitle")
            logger.info(f"Event created successfully: {response.get('eventId')}")
            return _dumps({
                "success": True,
                "message": f'Event "{title}" created successfully in {calendar_title or "your calendar"}',
                "eventId": response.get("eventId"),
                "calendarTitle": calendar_title,
            })

        error = response.get("error") or "Failed to create event"
        logger.error(f"Failed to create event: {error}")
        try:
            diagnostics = await provider.get_diagnostics()
        except Exception as exc:
            logger.warning(f"Diagnostics unavailable after create failure: {exc}")
            return _dumps({"success": False, "error": error})
        return _dumps({
            "success": False,
            "error": error,
            "diagnostics": diagnostics,
            "suggestion": CREATE_FAILURE_SUGGESTION.format(app=settings.app_name),
        })

    return _run


def calendar_tools(provider: CalendarProvider) -> Dict[str, ToolFunc]:
    return {
        "getCalendarEvents": _make_get_events_tool(provider),
        "createCalendarEvent": _make_create_event_tool(provider),
        "checkCalendarStatus": _make_check_status_tool(provider),
    }
