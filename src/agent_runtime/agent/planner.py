"""Chat command grammar and the planner built on it.

Accepted forms (prefix match is case-insensitive)::

    tool <name> <args...>      /tool <name> <args...>
    tool:<name> <args...>      /tool:<name> <args...>
    /tool@<bot> <name> ...     /tool@<bot>:<name> ...
    /tools                     /tools@<bot>

``tool`` or ``/tool`` alone is recognized as a command with no name so the
caller can answer with usage text.
"""
from __future__ import annotations

from typing import Tuple

from agent_runtime.domain.contracts import PlannerRequest, Reply, Step, ToolCall
from agent_runtime.tools.base import TOOLS_LIST_HINT

USAGE_TEXT = f"usage: tool <name> <args...> ({TOOLS_LIST_HINT})"

_NAME_PREFIXES = ("tool:", "/tool:", "tool ", "/tool ")
_MENTION_PREFIX = "/tool@"


def parse_tool_invocation(text: str) -> Tuple[str, str, bool]:
    """Return ``(name, args, is_command)`` for a chat message."""
    trimmed = (text or "").strip()
    lower = trimmed.lower()
    if lower in {"tool", "/tool"}:
        return "", "", True
    if lower == "/tools" or lower.startswith("/tools@"):
        return "tools.list", "", True
    if lower.startswith(_MENTION_PREFIX):
        rest = strip_tool_mention(trimmed[len(_MENTION_PREFIX):])
        name, args = split_tool_args(rest)
        return name, args, True
    for prefix in _NAME_PREFIXES:
        if lower.startswith(prefix):
            name, args = split_tool_args(trimmed[len(prefix):])
            return name, args, True
    return "", "", False


def split_tool_args(rest: str) -> Tuple[str, str]:
    trimmed = (rest or "").strip()
    if not trimmed:
        return "", ""
    parts = trimmed.split(None, 1)
    name = parts[0].lower()
    if len(parts) == 1:
        return name, ""
    # Keep newlines inside args; only the whitespace after the name goes.
    return name, trimmed[len(parts[0]):].lstrip()


def strip_tool_mention(rest: str) -> str:
    """Drop ``bot`` from ``bot:name ...`` or ``bot name ...``."""
    trimmed = (rest or "").strip()
    for idx, ch in enumerate(trimmed):
        if ch == ":" or ch.isspace():
            return trimmed[idx + 1:].strip()
    return ""


class ToolCommandPlanner:
    """Turns one tool command into one call, then replies with its outcome."""

    async def next_step(self, request: PlannerRequest) -> Step:
        outcome = request.last_tool_result
        if outcome is not None:
            return Reply(text=outcome.output.strip())

        name, args, _ = parse_tool_invocation(request.task.text)
        if not name:
            return Reply(text=USAGE_TEXT)
        return ToolCall(name=name, args=args)
