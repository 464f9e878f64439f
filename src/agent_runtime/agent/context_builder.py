from __future__ import annotations

import logging
import os
from typing import List, Optional, Tuple

from agent_runtime.execution.sandbox import PathSandbox, SandboxError
from agent_runtime.util import TRUNCATE_NOTICE, truncate_to_bytes

logger = logging.getLogger(__name__)

CONTEXT_MAX_FILE_BYTES = 64 * 1024
CONTEXT_MAX_TOTAL_BYTES = 256 * 1024
CONTEXT_DAILY_LIMIT = 2

CONTEXT_ROOT_FILES = (
    "SOUL.md",
    "USER.md",
    "TOOLS.md",
    "IDENTITY.md",
    "HEARTBEAT.md",
    "MEMORY.md",
)


class ContextError(ValueError):
    """Raised when the memory source root cannot be used."""


class ContextBuilder:
    """Assembles bounded memory context for the planner.

    Well-known root files come first in a fixed order, then the newest
    ``daily_limit`` markdown files directly under ``memory/``. Each file is
    capped at ``max_file_bytes`` and the joined text at ``max_total_bytes``.
    """

    def __init__(
        self,
        source_root: str,
        sandbox: PathSandbox,
        max_file_bytes: int = CONTEXT_MAX_FILE_BYTES,
        max_total_bytes: int = CONTEXT_MAX_TOTAL_BYTES,
        daily_limit: int = CONTEXT_DAILY_LIMIT,
    ) -> None:
        self._source_root = (source_root or "").strip() or "."
        self._sandbox = sandbox
        self._max_file_bytes = max_file_bytes if max_file_bytes > 0 else CONTEXT_MAX_FILE_BYTES
        self._max_total_bytes = max_total_bytes
        self._daily_limit = daily_limit

    def build(self) -> str:
        try:
            safe_root = self._sandbox.validate(self._source_root)
        except SandboxError as exc:
            raise ContextError(str(exc)) from exc
        if not os.path.exists(safe_root):
            raise ContextError("failed to access source root")
        if not os.path.isdir(safe_root):
            raise ContextError("source root is not a directory")

        scoped = self._sandbox.scoped(safe_root)
        sections: List[str] = []
        for rel_path in list(CONTEXT_ROOT_FILES) + self._daily_files(safe_root):
            section = self._build_section(scoped, rel_path)
            if section is not None:
                sections.append(section)
        if not sections:
            return ""

        output = "\n\n".join(sections)
        if self._max_total_bytes > 0:
            output = truncate_to_bytes(output, self._max_total_bytes)
        return output

    def _build_section(self, sandbox: PathSandbox, rel_path: str) -> Optional[str]:
        try:
            safe_path = sandbox.validate(rel_path)
        except SandboxError:
            return None
        if not os.path.isfile(safe_path):
            return None
        return f"## {rel_path}\n{self._read_capped(safe_path)}"

    def _read_capped(self, path: str) -> str:
        limit = self._max_file_bytes
        try:
            with open(path, "rb") as handle:
                data = handle.read(limit + 1)
        except OSError as exc:
            logger.warning("context: failed to read file path=%s err=%s", path, exc)
            raise ContextError("failed to read file") from exc
        if len(data) <= limit:
            return data.decode("utf-8", errors="replace").strip()
        keep = max(0, limit - len(TRUNCATE_NOTICE.encode("utf-8")))
        return (data[:keep].decode("utf-8", errors="ignore") + TRUNCATE_NOTICE).strip()

    def _daily_files(self, root: str) -> List[str]:
        memory_dir = os.path.join(root, "memory")
        if not os.path.isdir(memory_dir):
            return []
        daily: List[Tuple[float, str]] = []
        try:
            with os.scandir(memory_dir) as entries:
                for entry in entries:
                    if entry.is_symlink() or entry.is_dir(follow_symlinks=False):
                        continue
                    if not entry.name.endswith(".md"):
                        continue
                    daily.append((entry.stat(follow_symlinks=False).st_mtime, f"memory/{entry.name}"))
        except OSError as exc:
            logger.warning("context: failed to list memory dir path=%s err=%s", memory_dir, exc)
            raise ContextError("failed to list memory dir") from exc

        # Newest first; equal mtimes fall back to path order.
        daily.sort(key=lambda item: (-item[0], item[1]))
        if self._daily_limit > 0:
            daily = daily[: self._daily_limit]
        return [rel for _, rel in daily]
