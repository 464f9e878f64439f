from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agent_runtime.execution.local_shell import LocalShellRunner
from agent_runtime.execution.policy import CommandAllowlist
from agent_runtime.execution.sandbox import PathSandbox, SandboxError
from agent_runtime.observability.structured_log import log_json
from agent_runtime.tools.base import ToolRequest, ToolResult
from agent_runtime.util import TRUNCATE_SUFFIX

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT_MS = 10_000
MAX_COMMAND_TIMEOUT_MS = 60_000
DEFAULT_MAX_OUTPUT_CHARS = 2000


class CommandExecArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    command: List[str] = Field(default_factory=list)
    cwd: str = ""
    timeout_ms: int = Field(default=0, alias="timeoutMs")


def parse_command_args(raw: str) -> CommandExecArgs:
    trimmed = (raw or "").strip()
    if not trimmed:
        raise ValueError("args are required")
    try:
        return CommandExecArgs.model_validate_json(trimmed)
    except ValidationError:
        raise ValueError("invalid args") from None


def resolve_timeout_sec(timeout_ms: int) -> float:
    millis = timeout_ms if timeout_ms > 0 else DEFAULT_COMMAND_TIMEOUT_MS
    return min(millis, MAX_COMMAND_TIMEOUT_MS) / 1000.0


class CommandExecTool:
    """Runs one allow-listed program inside a sandbox root.

    Args are JSON: ``{"command": [...], "cwd": "...", "timeoutMs": N}``. The
    program is spawned without a shell. Exit codes and OS errors are logged;
    the caller only ever sees "command failed" or "command timed out".
    """

    name = "command.exec"

    def __init__(
        self,
        sandbox: PathSandbox,
        allowlist: CommandAllowlist,
        runner: Optional[LocalShellRunner] = None,
        max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
    ) -> None:
        self._sandbox = sandbox
        self._allowlist = allowlist
        self._runner = runner or LocalShellRunner()
        self._max_output = max(1, int(max_output_chars or DEFAULT_MAX_OUTPUT_CHARS))

    async def run(self, request: ToolRequest) -> ToolResult:
        try:
            parsed = parse_command_args(request.args)
        except ValueError as exc:
            return ToolResult.failure(str(exc))

        decision = self._allowlist.evaluate(parsed.command)
        if not decision.allowed:
            return ToolResult.failure(decision.reason)
        if not self._sandbox.configured:
            return ToolResult.failure("sandbox roots are not configured")

        try:
            cwd = self._sandbox.validate(parsed.cwd.strip() or self._sandbox.first_root)
        except SandboxError as exc:
            return ToolResult.failure(str(exc))

        result = await self._runner.run(
            argv=parsed.command,
            cwd=cwd,
            timeout_sec=resolve_timeout_sec(parsed.timeout_ms),
            max_capture_bytes=self._max_output,
        )
        if result.timed_out:
            log_json(logger, "command_timed_out", level=logging.WARNING, program=parsed.command[0], cwd=cwd)
            return ToolResult.failure("command timed out")
        if result.spawn_failed or result.returncode != 0:
            log_json(
                logger,
                "command_failed",
                level=logging.WARNING,
                program=parsed.command[0],
                cwd=cwd,
                returncode=result.returncode,
                stderr=result.stderr.strip()[:200],
            )
            return ToolResult.failure("command failed")

        output = result.stdout.strip() or result.stderr.strip()
        if not output:
            return ToolResult.success("ok")
        if result.truncated:
            output += TRUNCATE_SUFFIX
        return ToolResult.success(output)
