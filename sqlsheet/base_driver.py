"""Driver abstraction layer.

Structural interfaces for the two seams hosts and downstream layers depend
on: the document handle capability set and the driver surface itself.
"""
from __future__ import annotations
from typing import Protocol, Any, Mapping, Optional, List

class DocumentHandle(Protocol):  # pragma: no cover - structural typing helper
    readable: bool
    writable: bool
    streaming: bool
    def flush(self) -> None: ...
    def close(self) -> None: ...

class Driver(Protocol):
    major_version: int
    minor_version: int

    def accepts_url(self, url: Any) -> bool:
        """Pure predicate, MUST NOT raise."""
        ...

    def connect(self, url: str, info: Optional[Mapping[str, Any]] = None):
        """Return a connection, or None when the URL is not for this driver."""
        ...

    def get_property_info(self, url: str, info: Optional[Mapping[str, Any]] = None) -> List[Any]: ...
