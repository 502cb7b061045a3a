"""Acquisition strategy decision table (pure, no I/O)."""
from __future__ import annotations
from enum import Enum
from typing import Mapping

from .locator import READ_STREAMING, WRITE_STREAMING, ResourceLocator, has
from .logging_util import debug


class Strategy(str, Enum):
    STREAM_READ = "stream-read"
    STREAM_WRITE = "stream-write"
    OPEN_OR_CREATE = "in-memory-open-or-create"
    REMOTE_OPEN = "remote-direct-open"


def select_strategy(locator: ResourceLocator, options: Mapping[str, str]) -> Strategy:
    if has(options, READ_STREAMING):
        return Strategy.STREAM_READ
    if locator.is_local:
        if has(options, WRITE_STREAMING):
            return Strategy.STREAM_WRITE
        return Strategy.OPEN_OR_CREATE
    if has(options, WRITE_STREAMING):
        # Remote documents are opened read-only and in full.
        debug("write_streaming_ignored", uri=locator.uri, scheme=locator.scheme)
    return Strategy.REMOTE_OPEN
