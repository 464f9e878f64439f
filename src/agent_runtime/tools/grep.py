from __future__ import annotations

import asyncio
import logging
import os
import stat
from dataclasses import dataclass, field
from typing import List, Tuple

from agent_runtime.execution.sandbox import PathSandbox, SandboxError
from agent_runtime.tools.base import ToolRequest, ToolResult
from agent_runtime.util import TRUNCATE_NOTICE

logger = logging.getLogger(__name__)

GREP_MAX_FILE_BYTES = 512 * 1024
GREP_MAX_MATCHES = 50
GREP_MAX_FILES = 200
GREP_MAX_LINE_BYTES = 200
GREP_LINE_SUFFIX = "..."
NO_MATCHES_MESSAGE = "no matches found"


class GrepError(Exception):
    """Aborts a search with a message that is safe to return."""


@dataclass
class GrepState:
    lines: List[str] = field(default_factory=list)
    matches: int = 0
    files_seen: int = 0
    truncated: bool = False

    def add_match(self, line: str) -> bool:
        """Record a match; returns True once the search must stop."""
        if self.truncated:
            return True
        if self.matches >= GREP_MAX_MATCHES:
            self.truncated = True
            return True
        self.lines.append(line)
        self.matches += 1
        if self.matches >= GREP_MAX_MATCHES:
            self.truncated = True
        return self.truncated


def parse_grep_args(args: str) -> Tuple[str, str]:
    fields = (args or "").split()
    if len(fields) < 2:
        raise GrepError("pattern and path are required")
    return fields[0], " ".join(fields[1:]).strip()


def truncate_grep_line(text: str) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= GREP_MAX_LINE_BYTES:
        return text
    keep = GREP_MAX_LINE_BYTES - len(GREP_LINE_SUFFIX)
    return encoded[:keep].decode("utf-8", errors="ignore") + GREP_LINE_SUFFIX


class FileGrepTool:
    """Substring search over one file or a directory tree inside the sandbox."""

    name = "file.grep"

    def __init__(self, sandbox: PathSandbox) -> None:
        self._sandbox = sandbox

    async def run(self, request: ToolRequest) -> ToolResult:
        return await asyncio.to_thread(self._execute, request)

    def _execute(self, request: ToolRequest) -> ToolResult:
        try:
            pattern, raw_path = parse_grep_args(request.args)
            target = self._sandbox.validate(raw_path)
        except (GrepError, SandboxError) as exc:
            return ToolResult.failure(str(exc))

        try:
            info = os.stat(target)
        except OSError:
            return ToolResult.failure("failed to access path")

        state = GrepState()
        try:
            if stat.S_ISDIR(info.st_mode):
                self._grep_directory(target, target, pattern, state)
            else:
                if info.st_size > GREP_MAX_FILE_BYTES:
                    return ToolResult.failure("file is too large")
                self._grep_file(target, os.path.dirname(target), pattern, state)
        except (GrepError, SandboxError) as exc:
            return ToolResult.failure(str(exc))

        if not state.lines and not state.truncated:
            return ToolResult.success(NO_MATCHES_MESSAGE)
        lines = list(state.lines)
        if state.truncated:
            lines.append(TRUNCATE_NOTICE)
        return ToolResult.success("\n".join(lines))

    def _grep_directory(self, directory: str, base_root: str, pattern: str, state: GrepState) -> None:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as exc:
            logger.warning("file.grep: failed to read directory path=%s err=%s", directory, exc)
            raise GrepError("failed to read directory") from exc

        for entry in entries:
            if state.truncated:
                return
            if entry.is_symlink():
                continue
            if entry.is_dir(follow_symlinks=False):
                self._grep_directory(entry.path, base_root, pattern, state)
                continue
            try:
                info = entry.stat(follow_symlinks=False)
            except OSError as exc:
                raise GrepError("failed to access file") from exc
            if not stat.S_ISREG(info.st_mode):
                continue
            if state.files_seen >= GREP_MAX_FILES:
                state.truncated = True
                return
            state.files_seen += 1
            if info.st_size > GREP_MAX_FILE_BYTES:
                continue
            self._grep_file(entry.path, base_root, pattern, state)

    def _grep_file(self, path: str, base_root: str, pattern: str, state: GrepState) -> None:
        safe_path = self._sandbox.validate(path)
        rel = os.path.relpath(safe_path, base_root).replace(os.sep, "/")
        try:
            with open(safe_path, "rb") as handle:
                for line_number, raw in enumerate(handle, start=1):
                    if state.truncated:
                        return
                    text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                    if pattern not in text:
                        continue
                    if state.add_match(f"{rel}:{line_number}: {truncate_grep_line(text)}"):
                        return
        except OSError as exc:
            logger.warning("file.grep: failed to read file path=%s err=%s", safe_path, exc)
            raise GrepError("failed to read file") from exc
