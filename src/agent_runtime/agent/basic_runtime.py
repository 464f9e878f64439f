from __future__ import annotations

from typing import Optional

from agent_runtime.agent.planner import USAGE_TEXT, parse_tool_invocation
from agent_runtime.agent.runtime_base import DEFAULT_MAX_REPLY_CHARS, RuntimeBase
from agent_runtime.events.event_bus import EventLog
from agent_runtime.tools.base import Task, ToolRegistry, ToolRequest


class BasicRuntime(RuntimeBase):
    """Single-shot mode: at most one tool call per task, no planner."""

    mode = "basic"

    def __init__(
        self,
        registry: ToolRegistry,
        max_reply_chars: int = DEFAULT_MAX_REPLY_CHARS,
        event_log: Optional[EventLog] = None,
    ) -> None:
        super().__init__(registry, max_reply_chars=max_reply_chars, event_log=event_log)

    async def handle_task(self, task: Task) -> str:
        text = (task.text or "").strip()
        if not text:
            return ""
        self._publish("task_received", task)

        name, args, is_command = parse_tool_invocation(text)
        if not is_command:
            return self._finish(f"runtime: received task for {task.agent_label}")
        if not name:
            return self._finish(USAGE_TEXT)

        result = await self._registry.execute(name, ToolRequest(args=args, task=task))
        if not result.ok:
            return self._tool_failed(task, name, result.output)
        self._publish("tool_executed", task, tool=name)
        return self._finish(result.output)
