import logging
import os
import re
from functools import lru_cache
from typing import List, Pattern, Tuple

logger = logging.getLogger(__name__)

TRUNCATE_SUFFIX = "\n...(truncated)"
TRUNCATE_NOTICE = "...(truncated)"

REDACTION_PATTERNS_ENV = "RUNTIME_REDACTION_PATTERNS"
_REDACTED = "REDACTED"

# Credentials that tools may echo back (env dumps, config files, command output).
_SECRET_PATTERNS = (
    (r"sk-[A-Za-z0-9_-]{10,}", "sk-REDACTED"),
    (r"gh[pousr]_[A-Za-z0-9]{20,}", "gh-REDACTED"),
    (r"github_pat_[A-Za-z0-9_]{20,}", "github_pat_REDACTED"),
    (r"AKIA[0-9A-Z]{16}", "AKIA_REDACTED"),
    (r"(?i)\bBearer\s+[A-Za-z0-9\-._~+/]+=*\b", "Bearer REDACTED"),
    (
        r"(?i)\b([A-Z0-9_]*(?:api[_-]?key|token|secret|password))\b\s*[:=]\s*([^\s,;]+)",
        r"\1=REDACTED",
    ),
)


def redact(text: str) -> str:
    """Mask known credential shapes before text leaves the runtime."""
    value = text or ""
    for regex, replacement in _secret_patterns():
        value = regex.sub(replacement, value)
    return value


@lru_cache(maxsize=1)
def _secret_patterns() -> Tuple[Tuple[Pattern[str], str], ...]:
    compiled = [(re.compile(pattern), replacement) for pattern, replacement in _SECRET_PATTERNS]
    for raw in (os.environ.get(REDACTION_PATTERNS_ENV) or "").split(";;"):
        pattern = raw.strip()
        if not pattern:
            continue
        try:
            compiled.append((re.compile(pattern), _REDACTED))
        except re.error:
            logger.warning("Ignoring invalid redaction pattern %r", pattern)
    return tuple(compiled)


def truncate_reply(text: str, max_chars: int) -> str:
    """Trim ``text`` and cap it at ``max_chars`` characters, suffix included.

    The result never exceeds the cap, so truncating an already truncated
    reply returns it unchanged.
    """
    value = (text or "").strip()
    if max_chars <= 0 or len(value) <= max_chars:
        return value
    keep = max_chars - len(TRUNCATE_SUFFIX)
    if keep <= 0:
        return value[:max_chars].strip()
    return value[:keep].rstrip() + TRUNCATE_SUFFIX


def truncate_to_bytes(text: str, max_bytes: int) -> str:
    """Cap the UTF-8 encoding of ``text`` at ``max_bytes`` bytes, marker included."""
    encoded = (text or "").encode("utf-8")
    if max_bytes <= 0 or len(encoded) <= max_bytes:
        return text
    notice = TRUNCATE_NOTICE.encode("utf-8")
    if max_bytes <= len(notice):
        return encoded[:max_bytes].decode("utf-8", errors="ignore")
    clipped = encoded[: max_bytes - len(notice)].decode("utf-8", errors="ignore")
    return clipped + TRUNCATE_NOTICE


def split_csv(raw: str) -> List[str]:
    return [part.strip() for part in str(raw or "").split(",") if part.strip()]
