"""Error taxonomy for connection establishment.

Stage errors (InvalidUrl, InvalidOption, AcquisitionFailure) are raised where
the problem is detected. The driver converts whichever one escapes into a
single ConnectionEstablishmentFailure with the original chained as __cause__.
"""
from __future__ import annotations
from typing import Optional


class SheetError(Exception):
    """Base class for every error raised by sqlsheet."""


class InvalidUrl(SheetError):
    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class InvalidOption(SheetError):
    def __init__(self, message: str, token: Optional[str] = None):
        super().__init__(message)
        self.token = token


class AcquisitionFailure(SheetError):
    """I/O failure while checking, creating, flushing, fetching or opening a document."""

    def __init__(self, message: str, uri: Optional[str] = None, path: Optional[str] = None):
        super().__init__(message)
        self.uri = uri
        self.path = path


class ConnectionEstablishmentFailure(SheetError):
    """Uniform error surfaced by connect().

    ``kind`` names the originating error class, ``stage`` the pipeline stage
    that failed. The original exception is available as ``__cause__``.
    """

    def __init__(self, message: str, kind: str, stage: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.stage = stage


__all__ = [
    "SheetError",
    "InvalidUrl",
    "InvalidOption",
    "AcquisitionFailure",
    "ConnectionEstablishmentFailure",
]
