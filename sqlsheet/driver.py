"""Spreadsheet driver: connection string in, Connection out.

connect() walks RECEIVED -> PARSED -> STRATEGY_SELECTED -> [MATERIALIZED ->]
OPENED -> CONNECTED in one pass. The first failure aborts the request: any
handle already opened is closed and the error is re-raised as
ConnectionEstablishmentFailure with the stage error chained.
"""
from __future__ import annotations
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

import httpx

from . import DRIVER_MAJOR_VERSION, DRIVER_MINOR_VERSION
from .config import DriverConfig
from .connection import Connection, build_connection
from .documents import STREAM_BATCH_SIZE, open_full, open_streaming_reader, wrap_streaming_writer
from .errors import AcquisitionFailure, ConnectionEstablishmentFailure
from .locator import ResourceLocator, accepts, parse
from .logging_util import debug, error, info as log_info
from .materializer import FileStatus, ensure_stream_target, ensure_workbook, file_status
from .remote import fetch
from .strategy import Strategy, select_strategy


class Stage(str, Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    STRATEGY_SELECTED = "strategy_selected"
    MATERIALIZED = "materialized"
    OPENED = "opened"
    CONNECTED = "connected"
    FAILED = "failed"


_MATERIALIZING = (Strategy.OPEN_OR_CREATE, Strategy.STREAM_WRITE)


class SheetDriver:
    """Spreadsheet driver.

    Responsibilities:
      - Accept ``xls:`` connection strings (case-insensitive)
      - Pick an acquisition strategy from transport + options
      - Create missing local documents before opening them
      - Hand the acquired handle to a Connection
    """

    major_version = DRIVER_MAJOR_VERSION
    minor_version = DRIVER_MINOR_VERSION

    def __init__(self, config: Optional[DriverConfig] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.config = config or DriverConfig.from_env()
        self._transport = transport

    # --- Public API -----------------------------------------------------------------
    def accepts_url(self, url: Any) -> bool:
        return accepts(url)

    def get_property_info(self, url: str, info: Optional[Mapping[str, Any]] = None) -> List[Any]:
        return []

    def is_compliant(self) -> bool:
        return False

    def get_parent_logger(self):
        raise NotImplementedError("Not supported yet.")

    def plan(self, url: str, info: Optional[Mapping[str, Any]] = None) -> Tuple[ResourceLocator, Mapping[str, str], Strategy]:
        """Parse and select a strategy without touching storage."""
        locator, options = parse(url, info)
        return locator, options, select_strategy(locator, options)

    def connect(self, url: str, info: Optional[Mapping[str, Any]] = None) -> Optional[Connection]:
        """Return a Connection for ``url``, or None when the URL is not an ``xls:`` URL.

        Raises ValueError for ``url=None`` and ConnectionEstablishmentFailure
        for everything that goes wrong after acceptance.
        """
        if url is None:
            raise ValueError("Null url")
        if not self.accepts_url(url):
            return None
        stage = Stage.RECEIVED
        handle = None
        try:
            locator, options = parse(url, info)
            stage = self._advance(Stage.PARSED, url)
            strategy = select_strategy(locator, options)
            stage = self._advance(Stage.STRATEGY_SELECTED, url, strategy=strategy.value)
            if locator.is_local and strategy in _MATERIALIZING:
                self._materialize(locator, strategy)
                stage = self._advance(Stage.MATERIALIZED, url)
            handle = self._open(locator, strategy)
            stage = self._advance(Stage.OPENED, url)
            source = Path(locator.path) if locator.is_local else None
            conn = build_connection(handle, source, options)
            stage = self._advance(Stage.CONNECTED, url)
            log_info("connection_established", uri=locator.uri, strategy=strategy.value, handle=repr(handle))
        except Exception as e:
            if handle is not None:
                try:
                    handle.close()
                except Exception as close_err:
                    debug("handle_close_failed", error=str(close_err))
            kind = type(e).__name__
            self._advance(Stage.FAILED, url, failed_at=stage.value)
            error("connection_failed", url=url, stage=stage.value, kind=kind, error=str(e))
            failure = ConnectionEstablishmentFailure(str(e), kind=kind, stage=stage.value)
            raise failure from e
        return conn

    # --- Internal -------------------------------------------------------------------
    def _advance(self, stage: Stage, url: str, **fields) -> Stage:
        debug("connect_stage", stage=stage.value, url=url, **fields)
        return stage

    def _materialize(self, locator: ResourceLocator, strategy: Strategy) -> FileStatus:
        if strategy is Strategy.STREAM_WRITE:
            return ensure_stream_target(locator.path)
        return ensure_workbook(locator.path)

    def _open(self, locator: ResourceLocator, strategy: Strategy):
        if strategy is Strategy.STREAM_READ:
            if locator.is_local:
                return self._stream_local(locator.path)
            return _stream(fetch(locator, self.config, self._transport))
        if strategy is Strategy.REMOTE_OPEN:
            with fetch(locator, self.config, self._transport) as spool:
                return open_full(spool)
        with _open_local(locator.path) as fh:
            full = open_full(fh, source=locator.path, writable=True)
        if strategy is Strategy.OPEN_OR_CREATE:
            return full
        try:
            return wrap_streaming_writer(full, batch_size=STREAM_BATCH_SIZE, compress_temp_files=False)
        except AcquisitionFailure:
            full.close()
            raise

    def _stream_local(self, path: str):
        # No implicit creation on the streaming-read path.
        if file_status(path) is FileStatus.ABSENT:
            raise AcquisitionFailure(f"Document not found and streaming read requested: {path}", path=path)
        return _stream(_open_local(path), source=path)


def _stream(fh, source: Optional[str] = None):
    try:
        return open_streaming_reader(fh, source=source)
    except BaseException:
        fh.close()
        raise


def _open_local(path: str):
    try:
        return open(path, "rb")
    except OSError as e:
        raise AcquisitionFailure(f"Cannot open {path}: {e}", path=path) from e


def cli_describe():  # pragma: no cover - thin CLI wrapper
    """CLI helper: print resolved DriverConfig + connection plan (and handle) as JSON."""
    import argparse, json
    ap = argparse.ArgumentParser(description='Describe how an xls: URL would be connected')
    ap.add_argument('url', help='Connection string, e.g. xls:file:///tmp/book.xlsx?headLine=2')
    ap.add_argument('--dry-run', action='store_true', help='Parse and select a strategy only; touch no files')
    args = ap.parse_args()
    driver = SheetDriver()
    locator, options, strategy = driver.plan(args.url)
    out = {
        'config': driver.config.as_dict(),
        'locator': {'uri': locator.uri, 'transport': locator.transport.value, 'path': locator.path},
        'options': dict(options),
        'strategy': strategy.value,
    }
    if not args.dry_run:
        with driver.connect(args.url) as conn:
            out['handle'] = {
                'variant': type(conn.handle).__name__,
                'format': conn.handle.format.value,
                'readable': conn.handle.readable,
                'writable': conn.handle.writable,
                'sheets': conn.handle.sheet_names(),
            }
    print(json.dumps(out, indent=2))

if __name__ == '__main__':  # pragma: no cover
    cli_describe()
