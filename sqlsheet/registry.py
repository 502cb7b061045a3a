"""Process-wide driver registry.

Hosts call ensure_registered() once at startup. Registration is idempotent
and never raises: a failure comes back as a RegistrationResult and is logged.
"""
from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from .base_driver import Driver
from .logging_util import error, info as log_info

_lock = threading.Lock()
_drivers: List[Driver] = []
_default: Optional[Driver] = None


@dataclass
class RegistrationResult:
    ok: bool
    driver: Optional[Driver] = None
    error: Optional[str] = None
    already_registered: bool = False


def register_driver(driver: Driver) -> bool:
    """Add ``driver`` unless it is already present. Returns True when added."""
    with _lock:
        if any(d is driver for d in _drivers):
            return False
        _drivers.append(driver)
    log_info("driver_registered", driver=type(driver).__name__,
             version=f"{driver.major_version}.{driver.minor_version}")
    return True


def deregister_driver(driver: Driver) -> bool:
    global _default
    with _lock:
        for i, d in enumerate(_drivers):
            if d is driver:
                del _drivers[i]
                if _default is driver:
                    _default = None
                return True
    return False


def drivers() -> List[Driver]:
    with _lock:
        return list(_drivers)


def get_driver(url: Any) -> Optional[Driver]:
    """First registered driver whose acceptance predicate matches ``url``."""
    for d in drivers():
        if d.accepts_url(url):
            return d
    return None


def ensure_registered(factory=None) -> RegistrationResult:
    """Register the default spreadsheet driver once per process."""
    global _default
    with _lock:
        if _default is not None:
            return RegistrationResult(ok=True, driver=_default, already_registered=True)
        try:
            if factory is None:
                from .driver import SheetDriver as factory
            candidate = factory()
        except Exception as e:
            error("driver_registration_failed", error=str(e), kind=type(e).__name__)
            return RegistrationResult(ok=False, error=str(e))
        _default = candidate
    register_driver(candidate)
    return RegistrationResult(ok=True, driver=candidate)


def connect(url: str, info: Optional[Mapping[str, Any]] = None):
    """Route ``url`` to the first accepting driver, registering the default if needed."""
    ensure_registered()
    d = get_driver(url)
    if d is None:
        return None
    return d.connect(url, info)


def reset() -> None:
    """Forget every registered driver (tests and embedded hosts)."""
    global _default
    with _lock:
        _drivers.clear()
        _default = None
