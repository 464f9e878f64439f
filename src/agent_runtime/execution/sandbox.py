"""Path confinement for every filesystem-facing tool.

A candidate path is accepted only when its canonical form (symlinks
resolved) stays at or below one of the configured roots. Paths that do not
exist yet are canonicalized through their nearest existing ancestor, so a
write to a new file is validated without creating anything first.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set, Tuple

_SANDBOX_HINT = "set RUNTIME_SANDBOX_ROOTS"
_DRIVE_PATH_RE = re.compile(r"^[A-Za-z]:[\\/]")


class SandboxError(ValueError):
    """Raised when a candidate path cannot be confined to a sandbox root."""


def is_windows_abs_path(path: str) -> bool:
    """Drive-letter and UNC spellings, recognized on every host platform."""
    if path.startswith("\\\\"):
        return True
    return bool(_DRIVE_PATH_RE.match(path))


@dataclass(frozen=True)
class PathSandbox:
    roots: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "roots", tuple(str(root) for root in (self.roots or ())))

    @property
    def configured(self) -> bool:
        return any(root.strip() for root in self.roots)

    @property
    def first_root(self) -> str:
        for root in self.roots:
            if root.strip():
                return root
        return ""

    def validate(self, candidate: str) -> str:
        """Return the safe absolute path for ``candidate`` or raise ``SandboxError``."""
        trimmed = (candidate or "").strip()
        if not trimmed:
            raise SandboxError("path is required")
        if not self.roots:
            raise SandboxError(f"sandbox roots are not configured ({_SANDBOX_HINT})")
        if is_windows_abs_path(trimmed) and os.name != "nt":
            raise SandboxError("path escapes sandbox root")

        last_error: Optional[SandboxError] = None
        for root in self.roots:
            if not root.strip():
                continue
            try:
                return _validate_under_root(root, trimmed)
            except SandboxError as exc:
                last_error = exc
        if last_error is not None:
            raise last_error
        raise SandboxError(f"sandbox roots are not configured ({_SANDBOX_HINT})")

    def scoped(self, root: str) -> "PathSandbox":
        """Sandbox confined to a single, already validated root."""
        return PathSandbox((root,))


def _validate_under_root(root: str, candidate: str) -> str:
    root_path = Path(root).absolute()
    try:
        root_real = root_path.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise SandboxError("failed to resolve sandbox root") from exc

    candidate_path = Path(candidate)
    if not candidate_path.is_absolute():
        candidate_path = root_path / candidate_path
    # Lexical cleanup first so "a/../b" is judged as "b", like the caller wrote it.
    candidate_path = Path(os.path.normpath(candidate_path))

    candidate_real = resolve_candidate_path(candidate_path)
    _ensure_under_root(root_real, candidate_real)
    return str(candidate_real)


def resolve_candidate_path(candidate: Path) -> Path:
    """Canonicalize ``candidate`` by walking up to its nearest existing ancestor.

    The ancestor is resolved (symlinks included) and the missing suffix is
    re-appended. A dangling symlink is followed to its target before the
    walk continues, so it cannot smuggle a write outside the roots.
    """
    current = candidate
    suffix: List[str] = []
    followed: Set[Path] = set()
    while True:
        try:
            exists = current.exists()
            is_dangling = not exists and current.is_symlink()
        except OSError as exc:
            raise SandboxError("failed to access path") from exc

        if is_dangling:
            try:
                target = current.resolve()
            except (OSError, RuntimeError) as exc:
                raise SandboxError("failed to resolve path") from exc
            if target == current or target in followed:
                raise SandboxError("failed to resolve path")
            followed.add(target)
            current = target
            continue

        if exists:
            try:
                resolved = current.resolve(strict=True)
            except (OSError, RuntimeError) as exc:
                raise SandboxError("failed to access path") from exc
            if resolved.is_dir():
                return resolved.joinpath(*suffix)
            if suffix:
                raise SandboxError("failed to resolve parent path")
            return resolved

        parent = current.parent
        if parent == current:
            raise SandboxError("failed to resolve parent path")
        suffix.insert(0, current.name)
        current = parent


def _ensure_under_root(root: Path, target: Path) -> None:
    if target != root and root not in target.parents:
        raise SandboxError("path escapes sandbox root")
