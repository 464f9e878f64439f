from typing import Iterable, Optional

from agent_runtime.execution.policy import CommandAllowlist
from agent_runtime.execution.sandbox import PathSandbox
from agent_runtime.tools.base import (
    Task,
    Tool,
    ToolRegistrationError,
    ToolRegistry,
    ToolRequest,
    ToolResult,
)
from agent_runtime.tools.browser import BrowserCanvasTool
from agent_runtime.tools.files import (
    DeleteFileTool,
    EditFileTool,
    FileExistsTool,
    FileSha256Tool,
    FileStatTool,
    ListDirTool,
    ReadFileTool,
    TailFileTool,
    WriteFileTool,
)
from agent_runtime.tools.grep import FileGrepTool
from agent_runtime.tools.introspection import EchoTool, ToolsListTool, VersionTool
from agent_runtime.tools.memory import MemoryGetTool, MemoryListTool
from agent_runtime.tools.shell import CommandExecTool


def build_default_tool_registry(
    sandbox: PathSandbox,
    allowed_tools: Iterable[str] = (),
    command_allowlist: Iterable[str] = (),
    max_output_chars: int = 2000,
    memory_source_root: Optional[str] = None,
) -> ToolRegistry:
    """Build the registry with every built-in tool.

    Registration does not enable anything: only names in ``allowed_tools``
    can run. Memory tools are registered only when ``memory_source_root``
    is set.
    """
    registry = ToolRegistry(allowed_tools)
    registry.register(EchoTool())
    registry.register(VersionTool())
    registry.register(ToolsListTool(registry))
    registry.register(ReadFileTool(sandbox))
    registry.register(WriteFileTool(sandbox))
    registry.register(EditFileTool(sandbox))
    registry.register(DeleteFileTool(sandbox))
    registry.register(ListDirTool(sandbox))
    registry.register(TailFileTool(sandbox))
    registry.register(FileExistsTool(sandbox))
    registry.register(FileStatTool(sandbox))
    registry.register(FileSha256Tool(sandbox))
    registry.register(FileGrepTool(sandbox))
    registry.register(
        CommandExecTool(
            sandbox=sandbox,
            allowlist=CommandAllowlist(command_allowlist),
            max_output_chars=max_output_chars,
        )
    )
    registry.register(BrowserCanvasTool(sandbox))
    if memory_source_root is not None and memory_source_root.strip():
        registry.register(MemoryGetTool(memory_source_root, sandbox))
        registry.register(MemoryListTool(memory_source_root, sandbox))
    return registry


__all__ = [
    "Task",
    "Tool",
    "ToolRegistrationError",
    "ToolRegistry",
    "ToolRequest",
    "ToolResult",
    "BrowserCanvasTool",
    "CommandExecTool",
    "DeleteFileTool",
    "EchoTool",
    "EditFileTool",
    "FileExistsTool",
    "FileGrepTool",
    "FileSha256Tool",
    "FileStatTool",
    "ListDirTool",
    "MemoryGetTool",
    "MemoryListTool",
    "ReadFileTool",
    "TailFileTool",
    "ToolsListTool",
    "VersionTool",
    "WriteFileTool",
    "build_default_tool_registry",
]
