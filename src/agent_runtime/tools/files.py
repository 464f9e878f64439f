from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agent_runtime.execution.sandbox import PathSandbox, SandboxError
from agent_runtime.tools.base import ToolRequest, ToolResult
from agent_runtime.util import TRUNCATE_NOTICE

logger = logging.getLogger(__name__)

MAX_READ_BYTES = 256 * 1024
MAX_WRITE_BYTES = 256 * 1024
MAX_EDIT_BYTES = 256 * 1024
MAX_HASH_BYTES = 512 * 1024
LIST_MAX_ENTRIES = 200
TAIL_DEFAULT_LINES = 50
TAIL_MAX_LINES = 200
TAIL_MAX_BYTES = 64 * 1024

_HASH_CHUNK_BYTES = 64 * 1024


class SandboxedFileTool:
    """Shared plumbing: every path goes through the sandbox before any I/O.

    Subclasses implement the blocking ``_execute``; ``run`` hands it to a
    worker thread so filesystem work never stalls the event loop.
    """

    name = ""

    def __init__(self, sandbox: PathSandbox) -> None:
        self._sandbox = sandbox

    async def run(self, request: ToolRequest) -> ToolResult:
        return await asyncio.to_thread(self._execute, request)

    def _execute(self, request: ToolRequest) -> ToolResult:
        raise NotImplementedError

    def _resolve(self, raw_path: str) -> Path:
        return Path(self._sandbox.validate(raw_path))

    def _io_failure(self, message: str, path: Path, exc: BaseException) -> ToolResult:
        logger.warning("%s: %s path=%s err=%s", self.name, message, path, exc)
        return ToolResult.failure(message)


def split_path_and_payload(args: str) -> Tuple[str, str, bool]:
    """Split ``path\\npayload`` arguments; the payload is kept verbatim."""
    raw = (args or "").lstrip()
    if "\n" not in raw:
        return raw.strip(), "", False
    first, rest = raw.split("\n", 1)
    return first.strip(), rest, True


class ReadFileTool(SandboxedFileTool):
    name = "file.read"

    def _execute(self, request: ToolRequest) -> ToolResult:
        raw_path = (request.args or "").strip()
        if not raw_path:
            return ToolResult.failure("path is required")
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))
        if not target.exists():
            return ToolResult.failure("failed to access file")
        try:
            if target.is_dir():
                return ToolResult.failure("path is a directory")
            if target.stat().st_size > MAX_READ_BYTES:
                return ToolResult.failure("file is too large")
            with target.open("rb") as handle:
                data = handle.read(MAX_READ_BYTES + 1)
        except OSError as exc:
            return self._io_failure("failed to read file", target, exc)
        return ToolResult.success(data[:MAX_READ_BYTES].decode("utf-8", errors="replace"))


class WriteFileTool(SandboxedFileTool):
    name = "file.write"

    def _execute(self, request: ToolRequest) -> ToolResult:
        raw_path, content, has_payload = split_path_and_payload(request.args)
        if not raw_path:
            return ToolResult.failure("path is required")
        if not has_payload:
            return ToolResult.failure("content is required")
        data = content.encode("utf-8")
        if len(data) > MAX_WRITE_BYTES:
            return ToolResult.failure("content is too large")
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))
        if target.is_dir():
            return ToolResult.failure("path is a directory")
        try:
            write_file_atomic(target, data)
        except OSError as exc:
            return self._io_failure("failed to write file", target, exc)
        return ToolResult.success("ok")


def write_file_atomic(path: Path, data: bytes) -> None:
    """Write through a sibling temp file, fsync, then rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.tmp-", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class EditPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_text: str = Field(default="", alias="oldText")
    new_text: str = Field(default="", alias="newText")


class EditFileTool(SandboxedFileTool):
    """Replaces the first occurrence of ``oldText`` with ``newText``."""

    name = "file.edit"

    def _execute(self, request: ToolRequest) -> ToolResult:
        raw_path, payload_raw, has_payload = split_path_and_payload(request.args)
        if not raw_path:
            return ToolResult.failure("path is required")
        if not has_payload or not payload_raw.strip():
            return ToolResult.failure("payload is required")
        try:
            payload = EditPayload.model_validate_json(payload_raw.strip())
        except ValidationError:
            return ToolResult.failure("invalid payload")
        if not payload.old_text:
            return ToolResult.failure("oldText is required")
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))

        try:
            if target.is_dir():
                return ToolResult.failure("path is a directory")
            if target.stat().st_size > MAX_EDIT_BYTES:
                return ToolResult.failure("file is too large")
            with target.open("rb") as handle:
                original = handle.read().decode("utf-8", errors="surrogateescape")
        except OSError as exc:
            return self._io_failure("failed to access file", target, exc)

        if payload.old_text not in original:
            return ToolResult.failure("oldText not found")
        updated = original.replace(payload.old_text, payload.new_text, 1)
        try:
            write_file_atomic(target, updated.encode("utf-8", errors="surrogateescape"))
        except OSError as exc:
            return self._io_failure("failed to write file", target, exc)
        return ToolResult.success("ok")


class DeleteFileTool(SandboxedFileTool):
    name = "file.delete"

    def _execute(self, request: ToolRequest) -> ToolResult:
        raw_path = (request.args or "").strip()
        if not raw_path:
            return ToolResult.failure("path is required")
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))
        if not target.exists():
            return ToolResult.failure("failed to access file")
        if target.is_dir():
            return ToolResult.failure("path is a directory")
        try:
            target.unlink()
        except OSError as exc:
            return self._io_failure("failed to delete file", target, exc)
        return ToolResult.success("ok")


class ListDirTool(SandboxedFileTool):
    name = "file.list"

    def _execute(self, request: ToolRequest) -> ToolResult:
        raw_path = (request.args or "").strip()
        if not raw_path:
            return ToolResult.failure("path is required")
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))
        if not target.exists():
            return ToolResult.failure("failed to access directory")
        if not target.is_dir():
            return ToolResult.failure("path is not a directory")
        try:
            items = [(entry.name, entry.is_dir() and not entry.is_symlink()) for entry in target.iterdir()]
        except OSError as exc:
            return self._io_failure("failed to list directory", target, exc)

        items.sort(key=lambda item: item[0])
        truncated = len(items) > LIST_MAX_ENTRIES
        lines = [name + "/" if is_dir else name for name, is_dir in items[:LIST_MAX_ENTRIES]]
        if truncated:
            lines.append(TRUNCATE_NOTICE)
        return ToolResult.success("\n".join(lines))


def parse_tail_args(args: str) -> Tuple[str, int]:
    raw_path, raw_count, _ = split_path_and_payload(args)
    if not raw_path:
        raise ValueError("path is required")
    count = TAIL_DEFAULT_LINES
    raw_count = raw_count.strip()
    if raw_count:
        try:
            count = int(raw_count)
        except ValueError:
            raise ValueError("invalid line count") from None
        if count <= 0:
            raise ValueError("invalid line count")
    return raw_path, min(count, TAIL_MAX_LINES)


def tail_file(path: Path, lines: int) -> str:
    with path.open("rb") as handle:
        handle.seek(0, os.SEEK_END)
        size = handle.tell()
        if size <= 0:
            return ""
        read_size = min(size, TAIL_MAX_BYTES)
        offset = size - read_size
        handle.seek(offset)
        data = handle.read(read_size)

    parts = data.decode("utf-8", errors="replace").split("\n")
    if offset > 0 and len(parts) > 1:
        parts = parts[1:]
    if parts and parts[-1] == "":
        parts = parts[:-1]
    if not parts:
        return ""
    return "\n".join(parts[-lines:])


class TailFileTool(SandboxedFileTool):
    name = "file.tail"

    def _execute(self, request: ToolRequest) -> ToolResult:
        try:
            raw_path, lines = parse_tail_args(request.args)
        except ValueError as exc:
            return ToolResult.failure(str(exc))
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))
        if not target.exists():
            return ToolResult.failure("failed to access file")
        if target.is_dir():
            return ToolResult.failure("path is a directory")
        try:
            return ToolResult.success(tail_file(target, lines))
        except OSError as exc:
            return self._io_failure("failed to read file", target, exc)


class FileExistsTool(SandboxedFileTool):
    name = "file.exists"

    def _execute(self, request: ToolRequest) -> ToolResult:
        raw_path = (request.args or "").strip()
        if not raw_path:
            return ToolResult.failure("path is required")
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))
        return ToolResult.success("true" if target.exists() else "false")


class FileStatTool(SandboxedFileTool):
    """Compact JSON status; ``isDir`` and ``size`` are omitted when falsy."""

    name = "file.stat"

    def _execute(self, request: ToolRequest) -> ToolResult:
        raw_path = (request.args or "").strip()
        if not raw_path:
            return ToolResult.failure("path is required")
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))
        try:
            info = target.stat()
        except FileNotFoundError:
            return ToolResult.success(_render_stat({"exists": False}))
        except OSError as exc:
            return self._io_failure("failed to access path", target, exc)

        reply = {"exists": True}
        if target.is_dir():
            reply["isDir"] = True
        elif info.st_size:
            reply["size"] = info.st_size
        return ToolResult.success(_render_stat(reply))


def _render_stat(reply: dict) -> str:
    return json.dumps(reply, separators=(",", ":"))


class FileSha256Tool(SandboxedFileTool):
    name = "file.sha256"

    def _execute(self, request: ToolRequest) -> ToolResult:
        raw_path = (request.args or "").strip()
        if not raw_path:
            return ToolResult.failure("path is required")
        try:
            target = self._resolve(raw_path)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))
        if not target.exists():
            return ToolResult.failure("failed to access file")
        if target.is_dir():
            return ToolResult.failure("path is a directory")
        try:
            if target.stat().st_size > MAX_HASH_BYTES:
                return ToolResult.failure("file is too large")
            digest = hashlib.sha256()
            with target.open("rb") as handle:
                for chunk in iter(lambda: handle.read(_HASH_CHUNK_BYTES), b""):
                    digest.update(chunk)
        except OSError as exc:
            return self._io_failure("failed to read file", target, exc)
        return ToolResult.success(digest.hexdigest())
