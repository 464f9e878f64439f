from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Protocol

from agent_runtime.observability.structured_log import log_json

logger = logging.getLogger(__name__)

TOOLS_LIST_HINT = "see tools.list"


class ToolRegistrationError(ValueError):
    """Raised at startup when a tool cannot be added to the registry."""


@dataclass(frozen=True)
class Task:
    """One inbound message routed to the runtime by a channel adapter."""

    agent: str = ""
    text: str = ""
    channel: str = ""
    metadata: Mapping[str, str] = field(default_factory=dict)

    @property
    def agent_label(self) -> str:
        return (self.agent or "").strip() or "default"


@dataclass(frozen=True)
class ToolRequest:
    args: str = ""
    task: Task = field(default_factory=Task)


@dataclass(frozen=True)
class ToolResult:
    ok: bool
    output: str

    @classmethod
    def success(cls, output: str) -> "ToolResult":
        return cls(ok=True, output=output)

    @classmethod
    def failure(cls, message: str) -> "ToolResult":
        return cls(ok=False, output=message)


class Tool(Protocol):
    name: str

    async def run(self, request: ToolRequest) -> ToolResult:
        ...


def normalize_tool_name(name: str) -> str:
    return (name or "").strip().lower()


class ToolRegistry:
    """Name -> tool table gated by an explicit allow-list.

    Registration and permission are separate: every tool can be registered
    while a deployment enables only the subset named in ``allowed``. An
    empty allow-list denies everything. The registry is filled once at
    startup and only read afterwards.
    """

    def __init__(self, allowed: Optional[Iterable[str]] = None) -> None:
        allow = {normalize_tool_name(name) for name in (allowed or ())}
        allow.discard("")
        self._allowed: FrozenSet[str] = frozenset(allow)
        self._tools: Dict[str, Tool] = {}

    @property
    def configured(self) -> bool:
        return bool(self._allowed)

    def register(self, tool: Tool) -> None:
        if tool is None:
            raise ToolRegistrationError("Tool is required.")
        name = normalize_tool_name(getattr(tool, "name", ""))
        if not name:
            raise ToolRegistrationError("Tool name is required.")
        if name in self._tools:
            raise ToolRegistrationError(f"Tool {name!r} already registered.")
        self._tools[name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(normalize_tool_name(name))

    def names(self) -> List[str]:
        return sorted(self._tools.keys())

    def is_allowed(self, name: str) -> bool:
        if not self.configured:
            return False
        return normalize_tool_name(name) in self._allowed

    def list_allowed(self) -> List[str]:
        if not self.configured:
            return []
        return sorted(name for name in self._tools if name in self._allowed)

    async def execute(self, name: str, request: ToolRequest) -> ToolResult:
        normalized = normalize_tool_name(name)
        if not normalized:
            return ToolResult.failure("tool name is required")
        tool = self._tools.get(normalized)
        if tool is None:
            return ToolResult.failure(f'unknown tool "{normalized}" ({TOOLS_LIST_HINT})')
        if not self.is_allowed(normalized):
            return ToolResult.failure(f'tool "{normalized}" is not allowed ({TOOLS_LIST_HINT})')
        try:
            return await tool.run(request)
        except Exception as exc:
            log_json(
                logger,
                "tool_crashed",
                level=logging.ERROR,
                tool=normalized,
                agent=request.task.agent_label,
                error=repr(exc),
            )
            return ToolResult.failure("tool failed")
