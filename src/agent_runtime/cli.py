import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from agent_runtime.app_container import build_runtime
from agent_runtime.config import DEFAULT_CONFIG_DIR, RuntimeConfig, load_runtime_config
from agent_runtime.tools.base import Task

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    level = (level or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_config(config: RuntimeConfig) -> None:
    for line in config.summarize():
        print(line)


def _read_task_text(parts: List[str]) -> str:
    if parts:
        return " ".join(parts)
    if sys.stdin is not None and not sys.stdin.isatty():
        return sys.stdin.read()
    return ""


async def _run_once(config: RuntimeConfig, task: Task) -> str:
    runtime = build_runtime(config)
    await runtime.start()
    try:
        return await runtime.handle_task(task)
    finally:
        await runtime.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sandboxed agent tool runtime")
    parser.add_argument(
        "--config-dir",
        default=str(DEFAULT_CONFIG_DIR),
        help="Directory holding the .env config (default: ~/.config/agent-runtime)",
    )
    parser.add_argument("--print-config", action="store_true", help="Print active config summary")
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO)")
    parser.add_argument("--agent", default="default", help="Agent id the task is routed to")
    parser.add_argument("--channel", default="cli", help="Channel name recorded on events")
    parser.add_argument(
        "--control-center",
        action="store_true",
        help="Serve the local Control Center HTTP API instead of running one task",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Control Center bind host")
    parser.add_argument("--port", type=int, default=8765, help="Control Center bind port")
    parser.add_argument("text", nargs="*", help="Task text; read from stdin when omitted")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config_dir = Path(args.config_dir).expanduser().resolve()
    config = load_runtime_config(config_dir)

    log_level = args.log_level or os.environ.get("LOG_LEVEL") or config.log_level
    _configure_logging(log_level)

    if args.print_config:
        _print_config(config)
        return 0

    try:
        if args.control_center:
            from agent_runtime.control_center.app import create_app
            import uvicorn

            app = create_app(build_runtime(config))
            uvicorn.run(app, host=args.host, port=args.port, log_level=log_level.lower())
            return 0

        text = _read_task_text(args.text)
        if not text.strip():
            print("No task text given.", file=sys.stderr)
            return 2
        task = Task(agent=args.agent, text=text, channel=args.channel)
        reply = asyncio.run(_run_once(config, task))
    except ValueError as exc:
        logger.error("runtime: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if reply:
        print(reply)
    return 0


if __name__ == "__main__":
    sys.exit(main())
