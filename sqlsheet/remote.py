"""Remote document fetching over HTTP(S)."""
from __future__ import annotations
import tempfile
from typing import BinaryIO, Optional

import httpx

from .config import DriverConfig
from .errors import AcquisitionFailure
from .locator import ResourceLocator
from .logging_util import debug

SUPPORTED_SCHEMES = ("http", "https")


def fetch(locator: ResourceLocator, config: DriverConfig,
          transport: Optional[httpx.BaseTransport] = None) -> BinaryIO:
    """Download ``locator`` into a spooled temporary file positioned at 0.

    Bodies up to ``config.spool_bytes`` stay in memory; larger ones roll over to
    disk. Bodies above ``config.max_remote_bytes`` are rejected.
    """
    if locator.scheme not in SUPPORTED_SCHEMES:
        raise AcquisitionFailure(f"Unsupported transport {locator.scheme!r} for {locator.uri}", uri=locator.uri)
    spool = tempfile.SpooledTemporaryFile(max_size=config.spool_bytes)
    received = 0
    try:
        with httpx.Client(timeout=config.http_timeout, follow_redirects=True, transport=transport) as client:
            with client.stream("GET", locator.uri) as resp:
                resp.raise_for_status()
                for chunk in resp.iter_bytes():
                    received += len(chunk)
                    if received > config.max_remote_bytes:
                        raise AcquisitionFailure(
                            f"Remote document exceeds {config.max_remote_bytes} bytes: {locator.uri}",
                            uri=locator.uri)
                    spool.write(chunk)
    except httpx.HTTPError as e:
        spool.close()
        raise AcquisitionFailure(f"Cannot fetch {locator.uri}: {e}", uri=locator.uri) from e
    except BaseException:
        spool.close()
        raise
    spool.seek(0)
    debug("remote_fetched", uri=locator.uri, bytes=received)
    return spool
