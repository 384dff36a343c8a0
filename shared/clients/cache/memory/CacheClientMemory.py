import re
import sys
import time
from typing import Callable

from shared.clients.cache.CacheClientInterface import CacheClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


def glob_to_regex(pattern: str) -> re.Pattern:
    """Translate a Redis glob pattern (*, ?, [...], backslash escapes) to a compiled regex."""
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            parts.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            close = pattern.find("]", i + 1)
            if close == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[i + 1:close]
                negate = body.startswith("^")
                body = body[1:] if negate else body
                parts.append("[" + ("^" if negate else "") + body.replace("\\", "\\\\") + "]")
                i = close
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts) + r"\Z", re.DOTALL)


class CacheClientMemory(CacheClientInterface):
    """Process-local cache engine for single-instance runs and tests.

    Expiry is evaluated lazily against a monotonic clock on every access.
    """

    def __init__(self, helper_config: HelperConfig, clock: Callable[[], float] = time.monotonic):
        super().__init__(helper_config=helper_config)
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    def _get_engine_name(self) -> str:
        return "Memory"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]:
            del self._entries[key]

    async def boot(self) -> None:
        self.logging.info("Using in-process memory cache.")

    async def close(self) -> None:
        self._entries.clear()

    async def get(self, key: str) -> str | None:
        self._purge_expired()
        entry = self._entries.get(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._entries[key] = (value, self._clock() + ttl)

    async def delete(self, keys: list[str]) -> int:
        self._purge_expired()
        removed = 0
        for key in keys:
            if self._entries.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_keys(self, pattern: str) -> list[str]:
        self._purge_expired()
        regex = glob_to_regex(pattern)
        return [key for key in self._entries if regex.match(key)]

    async def stats(self) -> dict:
        self._purge_expired()
        size = sum(sys.getsizeof(k) + sys.getsizeof(v) for k, (v, _) in self._entries.items())
        return {"total_keys": len(self._entries), "memory_usage": f"{size / 1024:.2f}K"}
