import os
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Sequence


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: str


def command_base_name(command: str) -> str:
    trimmed = (command or "").strip()
    if not trimmed:
        return ""
    base = os.path.basename(trimmed.replace("\\", "/").rstrip("/"))
    if base in {"", ".", ".."}:
        return ""
    return base


class CommandAllowlist:
    """Program allow-list for command.exec, matched on the argv[0] base name."""

    def __init__(self, entries: Iterable[str] = ()) -> None:
        names = {command_base_name(entry) for entry in (entries or ())}
        names.discard("")
        self._names: FrozenSet[str] = frozenset(names)

    @property
    def configured(self) -> bool:
        return bool(self._names)

    def names(self) -> List[str]:
        return sorted(self._names)

    def evaluate(self, argv: Sequence[str]) -> PolicyDecision:
        if not argv or not str(argv[0] or "").strip():
            return PolicyDecision(allowed=False, reason="command is required")
        if not self._names:
            return PolicyDecision(allowed=False, reason="command allowlist is not configured")
        base = command_base_name(str(argv[0]))
        if not base or base not in self._names:
            return PolicyDecision(allowed=False, reason="command is not allowed")
        return PolicyDecision(allowed=True, reason="allowed")
