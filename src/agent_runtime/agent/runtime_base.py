from __future__ import annotations

import logging
from typing import List, Optional

from agent_runtime.events.event_bus import Event, EventLog
from agent_runtime.observability.structured_log import log_json
from agent_runtime.tools.base import Task, ToolRegistry
from agent_runtime.util import redact, truncate_reply

logger = logging.getLogger(__name__)

DEFAULT_MAX_REPLY_CHARS = 2000


class RuntimeBase:
    """Event log, reply shaping and lifecycle shared by both orchestrators."""

    def __init__(
        self,
        registry: ToolRegistry,
        max_reply_chars: int = DEFAULT_MAX_REPLY_CHARS,
        event_log: Optional[EventLog] = None,
    ) -> None:
        if registry is None:
            raise ValueError("runtime registry not configured")
        self._registry = registry
        self._max_reply_chars = max_reply_chars if max_reply_chars > 0 else DEFAULT_MAX_REPLY_CHARS
        self._event_log = event_log if event_log is not None else EventLog()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    def events(self) -> List[Event]:
        return self._event_log.snapshot()

    def _publish(self, kind: str, task: Task, tool: str = "", message: str = "") -> None:
        self._event_log.publish(
            kind=kind,
            agent=task.agent,
            tool=tool,
            channel=task.channel,
            message=redact(message),
        )

    def _tool_failed(self, task: Task, tool: str, error: str) -> str:
        log_json(
            logger,
            "tool_error",
            level=logging.WARNING,
            tool=tool,
            agent=task.agent_label,
            channel=task.channel,
            error=error,
        )
        return self._finish(f"❌ {error}")

    def _finish(self, text: str) -> str:
        return truncate_reply(redact(text), self._max_reply_chars)
