"""日历授权状态机。

evaluate() 是纯函数：只根据实时查询到的状态（以及可能的一次授权请求结果）
给出 proceed / request / deny 决策，不持有任何本地状态。
ensure_calendar_access() 负责驱动它：查询 → （必要时）请求一次 → 再次判定。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

from olly_agent.config.settings import settings
from olly_agent.domain.models import PermissionStatus
from olly_agent.infrastructure.logging.logger import logger
from olly_agent.providers.calendar import CalendarProvider


SETTINGS_PATH = "System Settings > Privacy & Security > Calendars"

DecisionAction = Literal["proceed", "request", "deny"]


@dataclass(frozen=True)
class PermissionDecision:
    action: DecisionAction
    permission_status: str
    error: Optional[str] = None
    message: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.action == "proceed"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": self.error,
            "message": self.message,
            "permissionStatus": self.permission_status,
        }


def evaluate(
    status: Any,
    granted: Optional[bool] = None,
    allow_prompt: bool = True,
) -> PermissionDecision:
    raw = str(status)
    parsed = PermissionStatus.parse(status)
    app = settings.app_name

    if parsed is PermissionStatus.AUTHORIZED:
        return PermissionDecision(action="proceed", permission_status=parsed.value)

    if parsed is PermissionStatus.PROMPT:
        if not allow_prompt:
            return PermissionDecision(
                action="deny",
                permission_status=parsed.value,
                error="Calendar access not granted",
                message=f"Calendar access has not been granted yet. Please grant calendar permission first in {SETTINGS_PATH}.",
            )
        if granted is None:
            return PermissionDecision(action="request", permission_status=parsed.value)
        if granted:
            return PermissionDecision(action="proceed", permission_status=PermissionStatus.AUTHORIZED.value)
        return PermissionDecision(
            action="deny",
            permission_status=PermissionStatus.DENIED.value,
            error="Calendar access denied",
            message=(
                f"Calendar access was denied. Please go to {SETTINGS_PATH} and enable access "
                f"for the {app} app, then try again."
            ),
        )

    if parsed is PermissionStatus.DENIED:
        return PermissionDecision(
            action="deny",
            permission_status=parsed.value,
            error="Calendar access denied",
            message=(
                f"Calendar access is currently denied. Please go to {SETTINGS_PATH} and enable "
                f"access for the {app} app."
            ),
        )

    return PermissionDecision(
        action="deny",
        permission_status=raw,
        error="Calendar access not granted",
        message=f"Calendar permission status: {raw}. Please check {SETTINGS_PATH}.",
    )


async def ensure_calendar_access(
    provider: CalendarProvider,
    allow_prompt: bool = True,
) -> PermissionDecision:
    """查询实时授权状态；若尚未决定且允许提示，则最多请求一次。"""

    status = await provider.check_permission()
    logger.info(f"Calendar permission status: {status}")
    decision = evaluate(status, allow_prompt=allow_prompt)
    if decision.action != "request":
        return decision

    logger.info("Calendar permission not determined, requesting")
    response = await provider.request_permission()
    logger.info(
        "Calendar permission response",
        extra={"extra": {"granted": response.granted, "detail": response.message}},
    )
    return evaluate(status, granted=response.granted, allow_prompt=allow_prompt)
