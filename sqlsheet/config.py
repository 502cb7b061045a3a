"""Environment driven driver settings with clamping + sanity logging."""
from __future__ import annotations
import os
from dataclasses import dataclass, asdict
from typing import Any, Dict
from .logging_util import warn

MIN_HTTP_TIMEOUT = 1.0
MAX_HTTP_TIMEOUT = 600.0
DEFAULT_HTTP_TIMEOUT = 30.0
MIN_REMOTE_BYTES = 1024                       # 1 KiB
MAX_REMOTE_BYTES = 2 * 1024 * 1024 * 1024     # 2 GiB
DEFAULT_REMOTE_BYTES = 256 * 1024 * 1024      # 256 MiB
MIN_SPOOL_BYTES = 64 * 1024                   # 64 KiB
MAX_SPOOL_BYTES = 256 * 1024 * 1024           # 256 MiB
DEFAULT_SPOOL_BYTES = 8 * 1024 * 1024         # 8 MiB

@dataclass(frozen=True)
class DriverConfig:
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    max_remote_bytes: int = DEFAULT_REMOTE_BYTES
    spool_bytes: int = DEFAULT_SPOOL_BYTES

    @classmethod
    def from_env(cls) -> "DriverConfig":
        def _num(name: str, default, cast):
            raw = os.environ.get(name)
            if raw is None:
                return default
            try:
                return cast(raw)
            except ValueError:
                warn("invalid_env_number", key=name, value=raw, default=default)
                return default
        timeout = _num("SQLSHEET_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT, float)
        max_remote = _num("SQLSHEET_MAX_REMOTE_BYTES", DEFAULT_REMOTE_BYTES, int)
        spool = _num("SQLSHEET_SPOOL_BYTES", DEFAULT_SPOOL_BYTES, int)
        # Clamp
        adjusted = {}
        if timeout < MIN_HTTP_TIMEOUT or timeout > MAX_HTTP_TIMEOUT:
            adjusted["http_timeout"] = timeout
            timeout = min(MAX_HTTP_TIMEOUT, max(MIN_HTTP_TIMEOUT, timeout))
        if max_remote < MIN_REMOTE_BYTES or max_remote > MAX_REMOTE_BYTES:
            adjusted["max_remote_bytes"] = max_remote
            max_remote = min(MAX_REMOTE_BYTES, max(MIN_REMOTE_BYTES, max_remote))
        if spool < MIN_SPOOL_BYTES or spool > MAX_SPOOL_BYTES:
            adjusted["spool_bytes"] = spool
            spool = min(MAX_SPOOL_BYTES, max(MIN_SPOOL_BYTES, spool))
        if adjusted:
            final_values = {"http_timeout": timeout, "max_remote_bytes": max_remote, "spool_bytes": spool}
            warn("driver_config_clamped", original=adjusted, clamped=final_values)
        return cls(http_timeout=timeout, max_remote_bytes=max_remote, spool_bytes=spool)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
