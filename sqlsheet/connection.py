"""Connection object and factory."""
from __future__ import annotations
from pathlib import Path
from typing import Mapping, Optional

from .base_driver import DocumentHandle
from .locator import FIRST_COL, HEADLINE
from .logging_util import debug, warn


class Connection:
    """Owns one document handle, the optional source file and the option map.

    Statement execution lives elsewhere; this object is what that layer is
    handed. Lifetime is controlled by the caller.
    """

    def __init__(self, handle: DocumentHandle, source_file: Optional[Path], options: Mapping[str, str]):
        if handle is None:
            raise ValueError("Connection requires an acquired document handle")
        self.handle = handle
        self.source_file = source_file
        self.options = options
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def headline(self) -> int:
        return self._int_option(HEADLINE, 1)

    @property
    def first_column(self) -> int:
        return self._int_option(FIRST_COL, 1)

    def _int_option(self, key: str, default: int) -> int:
        raw = self.options.get(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            warn("invalid_int_option", key=key, value=raw, default=default)
            return default

    def commit(self) -> None:
        """Write a writable handle back to its source file; no-op otherwise."""
        self._check_open()
        if self.handle.writable:
            self.handle.flush()

    def rollback(self) -> None:
        raise NotImplementedError("sqlsheet connections are not transactional")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.handle.close()
        debug("connection_closed", source=str(self.source_file) if self.source_file else None)

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("Connection is closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return f"Connection(handle={self.handle!r}, source_file={self.source_file!r})"


def build_connection(handle: DocumentHandle, source_file: Optional[Path], options: Mapping[str, str]) -> Connection:
    """Assemble a Connection; no flush or commit happens here."""
    return Connection(handle, source_file, options)
