import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from agent_runtime.util import split_csv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "agent-runtime"

MODE_KEY = "RUNTIME_MODE"
SANDBOX_ROOTS_KEY = "RUNTIME_SANDBOX_ROOTS"
ALLOWED_TOOLS_KEY = "RUNTIME_ALLOWED_TOOLS"
COMMAND_ALLOWLIST_KEY = "RUNTIME_COMMAND_ALLOWLIST"
MAX_STEPS_KEY = "RUNTIME_MAX_STEPS"
MAX_REPLY_CHARS_KEY = "RUNTIME_MAX_REPLY_CHARS"
EVENT_LOG_SIZE_KEY = "RUNTIME_EVENT_LOG_SIZE"
MEMORY_SOURCE_ROOT_KEY = "MEMORY_SOURCE_ROOT"
MEMORY_DAILY_LIMIT_KEY = "MEMORY_DAILY_LIMIT"
LOG_LEVEL_KEY = "LOG_LEVEL"

DEFAULT_MODE = "basic"
DEFAULT_MAX_STEPS = 8
DEFAULT_MAX_REPLY_CHARS = 2000
DEFAULT_EVENT_LOG_SIZE = 256
DEFAULT_MEMORY_DAILY_LIMIT = 2


@dataclass(frozen=True)
class RuntimeConfig:
    mode: str = DEFAULT_MODE
    sandbox_roots: Tuple[str, ...] = ()
    allowed_tools: Tuple[str, ...] = ()
    command_allowlist: Tuple[str, ...] = ()
    max_steps: int = DEFAULT_MAX_STEPS
    max_reply_chars: int = DEFAULT_MAX_REPLY_CHARS
    event_log_size: int = DEFAULT_EVENT_LOG_SIZE
    memory_source_root: Optional[str] = None
    memory_daily_limit: int = DEFAULT_MEMORY_DAILY_LIMIT
    log_level: str = "INFO"
    config_dir: Path = field(default=DEFAULT_CONFIG_DIR)

    @property
    def memory_enabled(self) -> bool:
        return bool((self.memory_source_root or "").strip())

    def summarize(self) -> List[str]:
        """Human readable summary; values are counts and flags, never secrets."""
        return [
            f"Config dir: {self.config_dir}",
            f"Env file: {get_env_path(self.config_dir)}",
            f"Runtime mode: {self.mode}",
            f"Sandbox roots: {len(self.sandbox_roots)}",
            f"Allowed tools: {', '.join(self.allowed_tools) if self.allowed_tools else 'none'}",
            f"Command allowlist: {len(self.command_allowlist)}",
            f"Max steps: {self.max_steps}",
            f"Max reply chars: {self.max_reply_chars}",
            f"Event log size: {self.event_log_size}",
            f"Memory enabled: {'yes' if self.memory_enabled else 'no'}",
        ]


def get_env_path(config_dir: Path) -> Path:
    return config_dir / ".env"


def load_env_file(path: Path) -> Dict[str, str]:
    data: Dict[str, str] = {}
    if not path.exists():
        return data
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            k, v = line.split("=", 1)
            data[k.strip()] = v.strip()
    except OSError as exc:
        logger.warning("Failed to read .env: %s", exc)
    return data


def get_env_value(key: str, env_file: Mapping[str, str], env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    source = os.environ if env is None else env
    return source.get(key) or env_file.get(key)


def parse_int(raw: Optional[str], default: int, key: str = "") -> int:
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning("Ignoring invalid integer for %s: %r", key or "value", raw)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive value for %s: %r", key or "value", raw)
        return default
    return value


def load_runtime_config(config_dir: Path = DEFAULT_CONFIG_DIR, env: Optional[Mapping[str, str]] = None) -> RuntimeConfig:
    """Read ``<config_dir>/.env`` and overlay it with ``env`` (process env by default)."""
    config_dir = Path(config_dir)
    env_file = load_env_file(get_env_path(config_dir))

    def value(key: str) -> Optional[str]:
        return get_env_value(key, env_file, env)

    memory_root = (value(MEMORY_SOURCE_ROOT_KEY) or "").strip() or None
    return RuntimeConfig(
        mode=(value(MODE_KEY) or DEFAULT_MODE).strip().lower() or DEFAULT_MODE,
        sandbox_roots=tuple(split_csv(value(SANDBOX_ROOTS_KEY) or "")),
        allowed_tools=tuple(split_csv(value(ALLOWED_TOOLS_KEY) or "")),
        command_allowlist=tuple(split_csv(value(COMMAND_ALLOWLIST_KEY) or "")),
        max_steps=parse_int(value(MAX_STEPS_KEY), DEFAULT_MAX_STEPS, MAX_STEPS_KEY),
        max_reply_chars=parse_int(value(MAX_REPLY_CHARS_KEY), DEFAULT_MAX_REPLY_CHARS, MAX_REPLY_CHARS_KEY),
        event_log_size=parse_int(value(EVENT_LOG_SIZE_KEY), DEFAULT_EVENT_LOG_SIZE, EVENT_LOG_SIZE_KEY),
        memory_source_root=memory_root,
        memory_daily_limit=parse_int(
            value(MEMORY_DAILY_LIMIT_KEY), DEFAULT_MEMORY_DAILY_LIMIT, MEMORY_DAILY_LIMIT_KEY
        ),
        log_level=(value(LOG_LEVEL_KEY) or "INFO").strip().upper() or "INFO",
        config_dir=config_dir,
    )
