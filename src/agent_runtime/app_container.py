import logging
from typing import Optional

from agent_runtime.agent.basic_runtime import BasicRuntime
from agent_runtime.agent.context_builder import ContextBuilder
from agent_runtime.agent.loop_runtime import LoopRuntime
from agent_runtime.agent.planner import ToolCommandPlanner
from agent_runtime.config import RuntimeConfig
from agent_runtime.domain.contracts import Orchestrator
from agent_runtime.events.event_bus import EventLog
from agent_runtime.execution.sandbox import PathSandbox
from agent_runtime.tools import build_default_tool_registry

logger = logging.getLogger(__name__)

SUPPORTED_MODES = ("basic", "loop")


def build_runtime(config: RuntimeConfig) -> Orchestrator:
    """Wire sandbox, registry, event log and the orchestrator for ``config.mode``."""
    mode = (config.mode or "").strip().lower() or "basic"
    if mode not in SUPPORTED_MODES:
        raise ValueError(f"unsupported runtime mode {mode!r}")

    sandbox = PathSandbox(config.sandbox_roots)
    registry = build_default_tool_registry(
        sandbox=sandbox,
        allowed_tools=config.allowed_tools,
        command_allowlist=config.command_allowlist,
        max_output_chars=config.max_reply_chars,
        memory_source_root=config.memory_source_root if config.memory_enabled else None,
    )
    event_log = EventLog(capacity=config.event_log_size)
    logger.info(
        "runtime: mode=%s tools=%d allowed=%d sandbox_roots=%d memory=%s",
        mode,
        len(registry.names()),
        len(registry.list_allowed()),
        len(sandbox.roots),
        "on" if config.memory_enabled else "off",
    )

    if mode == "basic":
        return BasicRuntime(registry, max_reply_chars=config.max_reply_chars, event_log=event_log)

    context_builder: Optional[ContextBuilder] = None
    if config.memory_enabled:
        context_builder = ContextBuilder(
            config.memory_source_root or "",
            sandbox,
            daily_limit=config.memory_daily_limit,
        )
    return LoopRuntime(
        registry,
        ToolCommandPlanner(),
        context_builder=context_builder,
        max_steps=config.max_steps,
        max_reply_chars=config.max_reply_chars,
        event_log=event_log,
    )
