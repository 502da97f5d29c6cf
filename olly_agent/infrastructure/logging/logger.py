"""JSON 行日志。

每条记录写入 logs/agent.log，extra={"extra": {...}} 中的字段会平铺到记录里。
分发器执行工具期间通过 tool_scope() 标记当前工具名，该期间内任意模块
打出的日志都会带上 "tool" 字段，便于按工具过滤 provider 层的日志。
"""

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from olly_agent.config.settings import settings


current_tool: ContextVar[Optional[str]] = ContextVar("olly_current_tool", default=None)


@contextmanager
def tool_scope(name: str) -> Iterator[None]:
    token = current_tool.set(name)
    try:
        yield
    finally:
        current_tool.reset(token)


class JsonFormatter(logging.Formatter):
    def __init__(self, redact: Optional[bool] = None):
        super().__init__()
        self._redact = redact

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        redact = settings.log_redact_content if self._redact is None else self._redact
        if redact:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        tool = current_tool.get()
        if tool:
            payload["tool"] = tool
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("olly_agent")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "agent.log", encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter())
    logger.addHandler(fh)
    return logger


logger = setup_logger()
