from __future__ import annotations

from typing import TYPE_CHECKING

from agent_runtime import __version__
from agent_runtime.tools.base import ToolRequest, ToolResult

if TYPE_CHECKING:
    from agent_runtime.tools.base import ToolRegistry

NO_TOOLS_ENABLED_MESSAGE = "no tools enabled (set RUNTIME_ALLOWED_TOOLS)"


class EchoTool:
    name = "echo"

    async def run(self, request: ToolRequest) -> ToolResult:
        return ToolResult.success((request.args or "").strip())


class VersionTool:
    name = "version"

    async def run(self, request: ToolRequest) -> ToolResult:
        return ToolResult.success(f"runtime v{__version__}")


class ToolsListTool:
    """Lists tools that are both registered and allow-listed."""

    name = "tools.list"

    def __init__(self, registry: "ToolRegistry") -> None:
        self._registry = registry

    async def run(self, request: ToolRequest) -> ToolResult:
        names = self._registry.list_allowed()
        if not names:
            return ToolResult.success(NO_TOOLS_ENABLED_MESSAGE)
        return ToolResult.success("\n".join(names))
