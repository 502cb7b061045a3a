"""sqlsheet package initialization.

Single source of truth for driver + package versions so that code, tests, and
scripts can import without duplicating literals.
"""

DRIVER_MAJOR_VERSION = 1
DRIVER_MINOR_VERSION = 0
PACKAGE_VERSION = "1.0.0"  # Keep in sync with pyproject version.
URL_SCHEME = "xls:"


def connect(url: str, **options):
    """Open a connection through the process-wide driver registry."""
    from .registry import connect as _connect
    return _connect(url, options)


__all__ = [
    "DRIVER_MAJOR_VERSION",
    "DRIVER_MINOR_VERSION",
    "PACKAGE_VERSION",
    "URL_SCHEME",
    "connect",
]
