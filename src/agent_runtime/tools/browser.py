from __future__ import annotations

from urllib.parse import urlsplit

from pydantic import BaseModel, ValidationError

from agent_runtime.execution.sandbox import PathSandbox
from agent_runtime.tools.base import ToolRequest, ToolResult


class BrowserCanvasArgs(BaseModel):
    url: str = ""
    width: int = 0
    height: int = 0


def validate_canvas_url(raw: str) -> str:
    """Return the host of an http(s) URL or raise ``ValueError``."""
    trimmed = (raw or "").strip()
    if not trimmed:
        raise ValueError("url is required")
    try:
        parsed = urlsplit(trimmed)
        host = parsed.netloc
    except ValueError:
        raise ValueError("invalid url") from None
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("url scheme must be http or https")
    if not host:
        raise ValueError("url host is required")
    return host


class BrowserCanvasTool:
    """Validates a canvas capture request; capture itself is not wired."""

    name = "browser.canvas"

    def __init__(self, sandbox: PathSandbox) -> None:
        self._sandbox = sandbox

    async def run(self, request: ToolRequest) -> ToolResult:
        if not self._sandbox.configured:
            return ToolResult.failure("sandbox roots are not configured (set RUNTIME_SANDBOX_ROOTS)")
        trimmed = (request.args or "").strip()
        if not trimmed:
            return ToolResult.failure("args are required")
        try:
            args = BrowserCanvasArgs.model_validate_json(trimmed)
        except ValidationError:
            return ToolResult.failure("invalid args")
        try:
            host = validate_canvas_url(args.url)
        except ValueError as exc:
            return ToolResult.failure(str(exc))
        return ToolResult.success(
            f"unsupported: browser.canvas not wired (host={host} width={args.width} height={args.height})"
        )
