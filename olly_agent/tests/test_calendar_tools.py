import json

import pytest

from olly_agent.domain.exceptions import CalendarProviderError
from olly_agent.providers.calendar import PermissionResponse
from olly_agent.tools.calendar import calendar_tools


class FakeCalendar:
    """记录每次调用的日历 Provider。"""

    def __init__(self, status="authorized", granted=True, events=None, create_response=None, diagnostics=None):
        self.status = status
        self.granted = granted
        self.events = events or []
        self.create_response = create_response or {"success": True, "eventId": "E1", "calendarTitle": "Work"}
        self.diagnostics = diagnostics
        self.calls = []

    async def check_permission(self):
        self.calls.append("check_permission")
        return self.status

    async def request_permission(self):
        self.calls.append("request_permission")
        return PermissionResponse(granted=self.granted)

    async def fetch_events(self, days_ahead):
        self.calls.append(("fetch_events", days_ahead))
        return {"events": self.events}

    async def create_event(self, payload):
        self.calls.append(("create_event", payload))
        return self.create_response

    async def get_diagnostics(self):
        self.calls.append("get_diagnostics")
        if isinstance(self.diagnostics, Exception):
            raise self.diagnostics
        return self.diagnostics or {"calendars": [{"title": "Work", "writable": True}]}


RAW_EVENTS = [
    {
        "title": "Standup",
        "startDate": "2026-01-15T09:00:00-05:00",
        "endDate": "2026-01-15T09:15:00-05:00",
        "isAllDay": False,
        "isRecurring": True,
        "calendarTitle": "Work",
    },
    {
        "title": "Dentist",
        "startDate": "2026-01-16T14:00:00-05:00",
        "endDate": "2026-01-16T15:00:00-05:00",
        "location": "123 Main St",
        "notes": "",
        "isAllDay": False,
        "isRecurring": False,
    },
]


@pytest.mark.asyncio
async def test_get_events_returns_both_recurring_and_one_time():
    cal = FakeCalendar(events=RAW_EVENTS)
    out = json.loads(await calendar_tools(cal)["getCalendarEvents"]({"daysAhead": 7}))
    assert out["totalEvents"] == 2
    assert out["recurringCount"] == 1
    assert out["oneTimeCount"] == 1
    assert out["daysAhead"] == 7
    assert [e["title"] for e in out["events"]] == ["Standup", "Dentist"]
    assert out["events"][0]["calendarTitle"] == "Work"
    assert out["events"][1]["notes"] is None
    assert "BOTH recurring and one-time" in out["message"]
    assert ("fetch_events", 7) in cal.calls


@pytest.mark.asyncio
async def test_get_events_denied_skips_fetch():
    cal = FakeCalendar(status="denied")
    out = json.loads(await calendar_tools(cal)["getCalendarEvents"]({"daysAhead": 14}))
    assert out["permissionStatus"] == "denied"
    assert "error" in out
    assert cal.calls == ["check_permission"]


@pytest.mark.asyncio
async def test_get_events_prompt_then_granted_fetches_in_same_call():
    cal = FakeCalendar(status="prompt", granted=True, events=RAW_EVENTS[:1])
    out = json.loads(await calendar_tools(cal)["getCalendarEvents"]({}))
    assert out["totalEvents"] == 1
    assert cal.calls[:2] == ["check_permission", "request_permission"]
    assert ("fetch_events", 14) in cal.calls


@pytest.mark.asyncio
async def test_get_events_prompt_then_refused():
    cal = FakeCalendar(status="prompt", granted=False)
    out = json.loads(await calendar_tools(cal)["getCalendarEvents"]({}))
    assert out["permissionStatus"] == "denied"
    assert not any(isinstance(c, tuple) for c in cal.calls)


@pytest.mark.asyncio
async def test_get_events_empty_is_not_an_error():
    cal = FakeCalendar(events=[])
    out = json.loads(await calendar_tools(cal)["getCalendarEvents"]({"daysAhead": 3}))
    assert out["events"] == []
    assert "error" not in out
    assert "3 days" in out["message"]


@pytest.mark.asyncio
async def test_get_events_clamps_days():
    cal = FakeCalendar()
    await calendar_tools(cal)["getCalendarEvents"]({"daysAhead": 500})
    assert ("fetch_events", 90) in cal.calls


@pytest.mark.asyncio
async def test_get_events_fetch_failure_becomes_envelope():
    cal = FakeCalendar()

    async def broken(days_ahead):
        raise CalendarProviderError(code="X", message="helper crashed")

    cal.fetch_events = broken
    out = json.loads(await calendar_tools(cal)["getCalendarEvents"]({}))
    assert out == {"error": "Failed to fetch calendar events", "message": "helper crashed"}


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["title", "startDate", "endDate"])
async def test_create_event_missing_field_skips_permission(missing):
    args = {"title": "Lunch", "startDate": "2026-01-15T12:00:00Z", "endDate": "2026-01-15T13:00:00Z"}
    args.pop(missing)
    cal = FakeCalendar()
    out = json.loads(await calendar_tools(cal)["createCalendarEvent"](args))
    assert out["success"] is False
    assert "Missing required fields" in out["error"]
    assert cal.calls == []


@pytest.mark.asyncio
async def test_create_event_rejects_bad_dates_before_io():
    cal = FakeCalendar()
    tool = calendar_tools(cal)["createCalendarEvent"]
    no_tz = json.loads(await tool({"title": "x", "startDate": "2026-01-15T12:00:00", "endDate": "2026-01-15T13:00:00"}))
    backwards = json.loads(await tool({"title": "x", "startDate": "2026-01-15T13:00:00Z", "endDate": "2026-01-15T12:00:00Z"}))
    garbage = json.loads(await tool({"title": "x", "startDate": "tomorrow", "endDate": "2026-01-15T12:00:00Z"}))
    assert no_tz["success"] is False and "timezone" in no_tz["error"]
    assert backwards["success"] is False and "after" in backwards["error"]
    assert garbage["success"] is False and "ISO8601" in garbage["error"]
    assert cal.calls == []


@pytest.mark.asyncio
async def test_create_event_success():
    cal = FakeCalendar()
    out = json.loads(await calendar_tools(cal)["createCalendarEvent"]({
        "title": "Lunch",
        "startDate": "2026-01-15T12:00:00-05:00",
        "endDate": "2026-01-15T13:00:00-05:00",
        "location": "Cafe",
    }))
    assert out["success"] is True
    assert out["eventId"] == "E1"
    assert 'Event "Lunch" created successfully in Work' == out["message"]
    _, payload = cal.calls[-1]
    assert payload["location"] == "Cafe"
    assert payload["notes"] is None
    assert payload["isAllDay"] is False


@pytest.mark.asyncio
async def test_create_event_does_not_prompt():
    cal = FakeCalendar(status="prompt")
    out = json.loads(await calendar_tools(cal)["createCalendarEvent"]({
        "title": "Lunch", "startDate": "2026-01-15T12:00:00Z", "endDate": "2026-01-15T13:00:00Z",
    }))
    assert out["success"] is False
    assert out["permissionStatus"] == "prompt"
    assert "request_permission" not in cal.calls


@pytest.mark.asyncio
async def test_create_event_failure_attaches_diagnostics():
    cal = FakeCalendar(create_response={"success": False, "error": "No writable calendar"})
    out = json.loads(await calendar_tools(cal)["createCalendarEvent"]({
        "title": "Lunch", "startDate": "2026-01-15T12:00:00Z", "endDate": "2026-01-15T13:00:00Z",
    }))
    assert out["success"] is False
    assert out["error"] == "No writable calendar"
    assert out["diagnostics"]["calendars"][0]["title"] == "Work"
    assert "writable calendar" in out["suggestion"]


@pytest.mark.asyncio
async def test_create_event_failure_survives_diagnostics_failure():
    cal = FakeCalendar(
        create_response={"success": False},
        diagnostics=CalendarProviderError(code="X", message="no diagnostics"),
    )
    out = json.loads(await calendar_tools(cal)["createCalendarEvent"]({
        "title": "Lunch", "startDate": "2026-01-15T12:00:00Z", "endDate": "2026-01-15T13:00:00Z",
    }))
    assert out == {"success": False, "error": "Failed to create event"}


@pytest.mark.asyncio
async def test_check_status_wraps_diagnostics_and_errors():
    ok = json.loads(await calendar_tools(FakeCalendar())["checkCalendarStatus"]({}))
    assert ok["status"] == "success"
    assert ok["diagnostics"]["calendars"]

    broken = FakeCalendar(diagnostics=CalendarProviderError(code="X", message="boom"))
    err = json.loads(await calendar_tools(broken)["checkCalendarStatus"]({}))
    assert err == {"status": "error", "message": "Failed to run diagnostics", "error": "boom"}
