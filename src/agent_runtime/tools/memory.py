"""Read-only access to the file-based agent memory (MEMORY.md, memory/**.md)."""
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import List, Tuple

from agent_runtime.execution.sandbox import PathSandbox, is_windows_abs_path
from agent_runtime.tools.base import ToolRequest, ToolResult
from agent_runtime.util import truncate_to_bytes

logger = logging.getLogger(__name__)

MEMORY_ROOT_FILE = "MEMORY.md"
MEMORY_DIR = "memory"

MEMORY_GET_DEFAULT_FROM = 1
MEMORY_GET_DEFAULT_LINES = 50
MEMORY_GET_MAX_LINES = 200
MEMORY_GET_MAX_BYTES = 256 * 1024

MEMORY_LIST_DEFAULT_LIMIT = 20
MEMORY_LIST_MAX_LIMIT = 200
MEMORY_LIST_MAX_OUTPUT_BYTES = 64 * 1024


def _positive_int(raw: str, message: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(message) from None
    if value <= 0:
        raise ValueError(message)
    return value


def parse_memory_get_args(args: str) -> Tuple[str, int, int]:
    parts = (args or "").strip().split("\n", 2)
    path = parts[0].strip()
    if not path:
        raise ValueError("path is required")
    start = MEMORY_GET_DEFAULT_FROM
    count = MEMORY_GET_DEFAULT_LINES
    if len(parts) > 1 and parts[1].strip():
        start = _positive_int(parts[1].strip(), "invalid from line")
    if len(parts) > 2 and parts[2].strip():
        count = _positive_int(parts[2].strip(), "invalid line count")
    return path, start, min(count, MEMORY_GET_MAX_LINES)


def validate_memory_path(path: str) -> None:
    trimmed = (path or "").strip()
    if not trimmed:
        raise ValueError("path is required")
    if os.path.isabs(trimmed) or is_windows_abs_path(trimmed) or trimmed.startswith(("/", "\\")):
        raise ValueError("path must be relative")
    if ".." in trimmed.replace("\\", "/").split("/"):
        raise ValueError("path must not contain '..'")


def read_memory_snippet(path: str, start: int, count: int) -> str:
    end = start + count - 1
    lines: List[str] = []
    size = 0
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        for line_number, raw in enumerate(handle, start=1):
            if line_number < start:
                continue
            if line_number > end:
                break
            line = raw.rstrip("\r\n")
            lines.append(line)
            size += len(line.encode("utf-8")) + 1
            if size > MEMORY_GET_MAX_BYTES:
                return truncate_to_bytes("\n".join(lines), MEMORY_GET_MAX_BYTES)
    return "\n".join(lines)


class MemoryTool:
    """Memory tools resolve their source root through the runtime sandbox."""

    name = ""

    def __init__(self, source_root: str, sandbox: PathSandbox) -> None:
        self._source_root = (source_root or "").strip() or "."
        self._sandbox = sandbox

    async def run(self, request: ToolRequest) -> ToolResult:
        return await asyncio.to_thread(self._execute, request)

    def _execute(self, request: ToolRequest) -> ToolResult:
        raise NotImplementedError

    def _safe_root(self) -> str:
        return self._sandbox.validate(self._source_root)


class MemoryGetTool(MemoryTool):
    """Returns ``lines`` lines of a memory file starting at line ``from``.

    Args: ``path\\n[from]\\n[lines]`` with ``path`` relative to the memory
    source root.
    """

    name = "memory.get"

    def _execute(self, request: ToolRequest) -> ToolResult:
        try:
            path, start, count = parse_memory_get_args(request.args)
            validate_memory_path(path)
            safe_root = self._safe_root()
            target = self._sandbox.scoped(safe_root).validate(path)
        except ValueError as exc:
            return ToolResult.failure(str(exc))

        if not os.path.exists(target):
            return ToolResult.failure("failed to access file")
        if os.path.isdir(target):
            return ToolResult.failure("path is a directory")
        try:
            return ToolResult.success(read_memory_snippet(target, start, count))
        except OSError as exc:
            logger.warning("memory.get: failed to read file path=%s err=%s", target, exc)
            return ToolResult.failure("failed to read file")


@dataclass(frozen=True)
class MemoryListItem:
    path: str
    mtime: float
    daily: bool = False
    is_root: bool = False


def parse_memory_list_limit(args: str) -> int:
    trimmed = (args or "").strip()
    if not trimmed:
        return MEMORY_LIST_DEFAULT_LIMIT
    return min(_positive_int(trimmed, "invalid limit"), MEMORY_LIST_MAX_LIMIT)


def collect_memory_items(root: str) -> List[MemoryListItem]:
    items: List[MemoryListItem] = []
    root_file = os.path.join(root, MEMORY_ROOT_FILE)
    if os.path.isfile(root_file):
        items.append(MemoryListItem(path=MEMORY_ROOT_FILE, mtime=os.path.getmtime(root_file), is_root=True))

    memory_dir = os.path.join(root, MEMORY_DIR)
    if not os.path.isdir(memory_dir) or os.path.islink(memory_dir):
        return items

    def _raise(exc: OSError) -> None:
        raise exc

    for dirpath, dirnames, filenames in os.walk(memory_dir, onerror=_raise):
        dirnames[:] = sorted(name for name in dirnames if not os.path.islink(os.path.join(dirpath, name)))
        for filename in sorted(filenames):
            full = os.path.join(dirpath, filename)
            if os.path.islink(full) or not filename.endswith(".md"):
                continue
            rel = os.path.relpath(full, root).replace(os.sep, "/")
            items.append(
                MemoryListItem(path=rel, mtime=os.stat(full).st_mtime, daily="/daily/" in rel)
            )
    return items


def order_memory_items(items: List[MemoryListItem]) -> List[str]:
    """MEMORY.md first, then daily notes newest first, then the rest by path."""
    roots = [item.path for item in items if item.is_root]
    daily = sorted((item for item in items if item.daily), key=lambda item: (-item.mtime, item.path))
    other = sorted((item for item in items if not item.daily and not item.is_root), key=lambda item: item.path)
    return roots + [item.path for item in daily] + [item.path for item in other]


class MemoryListTool(MemoryTool):
    name = "memory.list"

    def _execute(self, request: ToolRequest) -> ToolResult:
        try:
            limit = parse_memory_list_limit(request.args)
            safe_root = self._safe_root()
        except ValueError as exc:
            return ToolResult.failure(str(exc))

        if not os.path.exists(safe_root):
            return ToolResult.failure("failed to access source root")
        if not os.path.isdir(safe_root):
            return ToolResult.failure("source root is not a directory")
        try:
            items = collect_memory_items(safe_root)
        except OSError as exc:
            logger.warning("memory.list: failed to list memory files root=%s err=%s", safe_root, exc)
            return ToolResult.failure("failed to list memory files")
        if not items:
            return ToolResult.success("no memory files")
        paths = order_memory_items(items)[:limit]
        return ToolResult.success(truncate_to_bytes("\n".join(paths), MEMORY_LIST_MAX_OUTPUT_BYTES))
