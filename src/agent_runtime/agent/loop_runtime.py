from __future__ import annotations

import asyncio
import logging
from typing import Optional

from agent_runtime.agent.context_builder import ContextBuilder, ContextError
from agent_runtime.agent.runtime_base import DEFAULT_MAX_REPLY_CHARS, RuntimeBase
from agent_runtime.domain.contracts import Planner, PlannerRequest, Reply, ToolCall, ToolOutcome
from agent_runtime.events.event_bus import EventLog
from agent_runtime.observability.structured_log import log_json
from agent_runtime.tools.base import Task, ToolRegistry, ToolRequest

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 8


class LoopRuntime(RuntimeBase):
    """Plan/act loop: ask the planner, run its tool call, feed back the result.

    The loop ends on the first ``Reply``, the first failed tool call, or when
    ``max_steps`` planner calls have produced no reply.
    """

    mode = "loop"

    def __init__(
        self,
        registry: ToolRegistry,
        planner: Planner,
        context_builder: Optional[ContextBuilder] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        max_reply_chars: int = DEFAULT_MAX_REPLY_CHARS,
        event_log: Optional[EventLog] = None,
    ) -> None:
        super().__init__(registry, max_reply_chars=max_reply_chars, event_log=event_log)
        if planner is None:
            raise ValueError("runtime planner not configured")
        self._planner = planner
        self._context_builder = context_builder
        self._max_steps = max_steps if max_steps > 0 else DEFAULT_MAX_STEPS

    @property
    def max_steps(self) -> int:
        return self._max_steps

    async def handle_task(self, task: Task) -> str:
        if not (task.text or "").strip():
            return ""
        self._publish("task_received", task)

        context = ""
        if self._context_builder is not None:
            try:
                context = await asyncio.to_thread(self._context_builder.build)
            except ContextError as exc:
                log_json(logger, "context_error", level=logging.WARNING, agent=task.agent_label, error=str(exc))
                return self._finish(f"❌ {exc}")

        last: Optional[ToolOutcome] = None
        for _ in range(self._max_steps):
            step = await self._planner.next_step(
                PlannerRequest(task=task, last_tool_result=last, context=context)
            )
            if isinstance(step, ToolCall):
                name = (step.name or "").strip()
                if not name:
                    return self._finish("❌ tool name is required")
                result = await self._registry.execute(name, ToolRequest(args=step.args, task=task))
                if not result.ok:
                    return self._tool_failed(task, name, result.output)
                self._publish("tool_result", task, tool=name, message=result.output)
                last = ToolOutcome(name=name, output=result.output)
            elif isinstance(step, Reply):
                reply = (step.text or "").strip()
                self._publish("step_reply", task, message=reply)
                return self._finish(reply)
            else:
                raise TypeError(f"unknown step type {type(step).__name__}")

        return self._finish(f"❌ step budget exceeded ({self._max_steps})")
