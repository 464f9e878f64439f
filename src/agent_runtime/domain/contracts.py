from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Union

from agent_runtime.events.event_bus import Event, EventLog
from agent_runtime.tools.base import Task, ToolRegistry


@dataclass(frozen=True)
class ToolCall:
    name: str
    args: str = ""


@dataclass(frozen=True)
class Reply:
    text: str


Step = Union[ToolCall, Reply]


@dataclass(frozen=True)
class ToolOutcome:
    """Output of the previous, successful loop step.

    Failed tool calls end the loop, so planners never see a failed outcome.
    """

    name: str
    output: str = ""


@dataclass(frozen=True)
class PlannerRequest:
    task: Task
    last_tool_result: Optional[ToolOutcome] = None
    context: str = ""


class Planner(Protocol):
    async def next_step(self, request: PlannerRequest) -> Step:
        ...


class Orchestrator(Protocol):
    """What the CLI and the control center drive; both runtime modes implement it."""

    mode: str

    @property
    def registry(self) -> ToolRegistry:
        ...

    @property
    def event_log(self) -> EventLog:
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    async def handle_task(self, task: Task) -> str:
        ...

    def events(self) -> List[Event]:
        ...
