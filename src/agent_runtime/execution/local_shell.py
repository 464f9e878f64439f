import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

_READ_CHUNK_BYTES = 4096
_KILL_GRACE_SEC = 2.0


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    timed_out: bool = False
    spawn_failed: bool = False

    @property
    def truncated(self) -> bool:
        return self.stdout_truncated or self.stderr_truncated


class LimitedBuffer:
    """Byte buffer that keeps the first ``max_bytes`` and drops the rest."""

    def __init__(self, max_bytes: int) -> None:
        self._max = max(0, int(max_bytes))
        self._data = bytearray()
        self.truncated = False

    def write(self, chunk: bytes) -> int:
        remaining = self._max - len(self._data)
        if remaining <= 0:
            if chunk:
                self.truncated = True
            return len(chunk)
        if len(chunk) > remaining:
            self._data.extend(chunk[:remaining])
            self.truncated = True
            return len(chunk)
        self._data.extend(chunk)
        return len(chunk)

    def text(self) -> str:
        return bytes(self._data).decode("utf-8", errors="replace")


class LocalShellRunner:
    """Spawns argv directly (no shell) under a deadline with bounded capture."""

    async def run(
        self,
        argv: Sequence[str],
        cwd: str,
        timeout_sec: float,
        max_capture_bytes: int,
    ) -> CommandResult:
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                start_new_session=True,
            )
        except OSError as exc:
            logger.warning("local_shell: spawn failed program=%s err=%s", argv[0] if argv else "", exc)
            return CommandResult(returncode=127, stdout="", stderr="", spawn_failed=True)

        stdout_buf = LimitedBuffer(max_capture_bytes)
        stderr_buf = LimitedBuffer(max_capture_bytes)
        try:
            await asyncio.wait_for(
                asyncio.gather(
                    _drain(proc.stdout, stdout_buf),
                    _drain(proc.stderr, stderr_buf),
                    proc.wait(),
                ),
                timeout=timeout_sec,
            )
        except asyncio.TimeoutError:
            await _terminate(proc, stdout_buf, stderr_buf)
            return CommandResult(
                returncode=124,
                stdout=stdout_buf.text(),
                stderr=stderr_buf.text(),
                stdout_truncated=stdout_buf.truncated,
                stderr_truncated=stderr_buf.truncated,
                timed_out=True,
            )
        except asyncio.CancelledError:
            await _terminate(proc, stdout_buf, stderr_buf)
            raise

        return CommandResult(
            returncode=proc.returncode if proc.returncode is not None else 1,
            stdout=stdout_buf.text(),
            stderr=stderr_buf.text(),
            stdout_truncated=stdout_buf.truncated,
            stderr_truncated=stderr_buf.truncated,
        )


async def _drain(stream: Optional[asyncio.StreamReader], buffer: LimitedBuffer) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            return
        buffer.write(chunk)


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    # The child leads its own session, so the group id equals its pid.
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        return
    except PermissionError:
        try:
            proc.kill()
        except ProcessLookupError:
            return


async def _terminate(proc: asyncio.subprocess.Process, stdout_buf: LimitedBuffer, stderr_buf: LimitedBuffer) -> None:
    """Kill the child's process group, then drain and reap within a short grace period."""
    _kill_group(proc)
    try:
        await asyncio.wait_for(
            asyncio.gather(
                _drain(proc.stdout, stdout_buf),
                _drain(proc.stderr, stderr_buf),
                proc.wait(),
            ),
            timeout=_KILL_GRACE_SEC,
        )
    except asyncio.TimeoutError:
        logger.warning("local_shell: pipes still open after kill pid=%s", proc.pid)
