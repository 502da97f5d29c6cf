import pytest

from olly_agent.providers.calendar import PermissionResponse
from olly_agent.tools.permissions import SETTINGS_PATH, ensure_calendar_access, evaluate


class FakeCalendar:
    def __init__(self, status, granted=True):
        self.status = status
        self.granted = granted
        self.requests = 0

    async def check_permission(self):
        return self.status

    async def request_permission(self):
        self.requests += 1
        return PermissionResponse(granted=self.granted)


def test_evaluate_authorized_proceeds():
    decision = evaluate("authorized")
    assert decision.allowed
    assert decision.permission_status == "authorized"


def test_evaluate_prompt_requests_then_follows_answer():
    assert evaluate("prompt").action == "request"
    assert evaluate("prompt", granted=True).allowed
    denied = evaluate("prompt", granted=False)
    assert denied.action == "deny"
    assert denied.permission_status == "denied"
    assert SETTINGS_PATH in denied.message


def test_evaluate_prompt_without_prompting_is_denied():
    decision = evaluate("prompt", allow_prompt=False)
    assert decision.action == "deny"
    assert decision.permission_status == "prompt"


def test_evaluate_denied_and_unrecognized_status():
    denied = evaluate("denied")
    assert denied.error == "Calendar access denied"
    assert SETTINGS_PATH in denied.message

    odd = evaluate("restricted")
    assert odd.action == "deny"
    assert odd.permission_status == "restricted"
    assert "restricted" in odd.message
    assert SETTINGS_PATH in odd.message


@pytest.mark.asyncio
async def test_ensure_access_requests_once_when_undetermined():
    cal = FakeCalendar("prompt", granted=True)
    decision = await ensure_calendar_access(cal)
    assert decision.allowed
    assert cal.requests == 1


@pytest.mark.asyncio
async def test_ensure_access_never_prompts_when_denied():
    cal = FakeCalendar("denied")
    decision = await ensure_calendar_access(cal)
    assert not decision.allowed
    assert cal.requests == 0


@pytest.mark.asyncio
async def test_ensure_access_reads_live_status_each_time():
    cal = FakeCalendar("denied")
    assert not (await ensure_calendar_access(cal)).allowed
    cal.status = "authorized"
    assert (await ensure_calendar_access(cal)).allowed
