"""Document library adapter.

Wraps the spreadsheet libraries behind three operations: open an existing
document from a byte stream, create an empty document of a given format, and
wrap a full document as a bounded streaming writer. openpyxl handles the
zip-based format (xlsx). For the legacy binary format (xls) xlrd reads, xlwt
creates, and xlutils turns a loaded book into a writable copy.

Handles come in two variants that share the capability surface
``readable / writable / streaming / flush() / close()``:
  - FullHandle: whole document in memory
  - StreamingHandle: read-only worksheets (mode="read") or a batch writer
    over an openpyxl write-only workbook that spools rows to temp files
    every ``batch_size`` rows (mode="write")
"""
from __future__ import annotations
import os
from contextlib import contextmanager
from enum import Enum
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Sequence

import openpyxl
import xlrd
import xlwt
from xlutils.copy import copy as xls_writable_copy

from .errors import AcquisitionFailure
from .logging_util import debug, warn

STREAM_BATCH_SIZE = 1000
DEFAULT_SHEET = "Sheet1"


class DocumentFormat(str, Enum):
    XLSX = "xlsx"  # zip container (OOXML)
    XLS = "xls"    # OLE2 compound document (BIFF)


_MAGIC_BYTES = {
    b"PK\x03\x04": DocumentFormat.XLSX,
    b"\xd0\xcf\x11\xe0": DocumentFormat.XLS,
}


def detect_format(head: bytes) -> DocumentFormat:
    for magic, fmt in _MAGIC_BYTES.items():
        if head[:len(magic)] == magic:
            return fmt
    raise AcquisitionFailure("Unrecognized spreadsheet container (neither xlsx nor xls)")


def _peek_format(stream: BinaryIO) -> DocumentFormat:
    head = stream.read(8)
    stream.seek(0)
    return detect_format(head)


# --- Creation ------------------------------------------------------------------------

def create_empty(fmt: DocumentFormat):
    """Return a new, empty library workbook for ``fmt``. Both variants expose ``save(stream)``."""
    if fmt is DocumentFormat.XLSX:
        return openpyxl.Workbook()
    book = xlwt.Workbook()
    book.add_sheet(DEFAULT_SHEET)  # BIFF needs at least one sheet
    return book


@contextmanager
def scoped_output(path: str):
    """Write ``path`` through a sibling temp file; replace the target on success.

    Any error inside the block removes the temp file and leaves ``path``
    untouched. A failure while closing is logged and never masks an error
    raised inside the block. OSError surfaces as AcquisitionFailure.
    """
    tmp = f"{path}.{os.getpid()}.tmp"
    try:
        fh = open(tmp, "wb")
    except OSError as e:
        raise AcquisitionFailure(f"Cannot open {path} for writing: {e}", path=path) from e
    replaced = False
    try:
        yield fh
        fh.flush()
        fh.close()
        os.replace(tmp, path)
        replaced = True
    except OSError as e:
        raise AcquisitionFailure(f"Failed writing {path}: {e}", path=path) from e
    finally:
        if not fh.closed:
            try:
                fh.close()
            except OSError as e:
                warn("output_close_failed", path=path, error=str(e))
        if not replaced:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            except OSError as e:
                warn("output_cleanup_failed", path=tmp, error=str(e))


def save_document(workbook, path: str) -> None:
    try:
        with scoped_output(path) as fh:
            workbook.save(fh)
    except AcquisitionFailure:
        raise
    except Exception as e:
        raise AcquisitionFailure(f"Cannot save document to {path}: {e}", path=path) from e
    debug("document_saved", path=path, size=os.path.getsize(path))


# --- Handles -------------------------------------------------------------------------

def _sheet_names(workbook, fmt: DocumentFormat) -> List[str]:
    if fmt is DocumentFormat.XLSX:
        return list(workbook.sheetnames)
    return list(workbook.sheet_names())


def _iter_rows(workbook, fmt: DocumentFormat, sheet: str) -> Iterator[tuple]:
    if fmt is DocumentFormat.XLSX:
        yield from workbook[sheet].iter_rows(values_only=True)
        return
    ws = workbook.sheet_by_name(sheet)
    for r in range(ws.nrows):
        yield tuple(ws.row_values(r))


def _release(workbook, fmt: DocumentFormat) -> None:
    if fmt is DocumentFormat.XLSX:
        workbook.close()
    else:
        workbook.release_resources()


class FullHandle:
    """Entire document loaded in memory."""

    streaming = False
    mode = "full"

    def __init__(self, workbook, fmt: DocumentFormat, source: Optional[str] = None, writable: bool = False,
                 writer=None):
        self.workbook = workbook
        self.format = fmt
        self.source = source
        # xls edits go through ``writer`` (an xlwt copy); ``workbook`` stays the xlrd snapshot.
        self.writer = workbook if fmt is DocumentFormat.XLSX else writer
        # Remote documents have nowhere to write back.
        self.writable = bool(writable and source and self.writer is not None)
        self.readable = True
        self.closed = False

    def sheet_names(self) -> List[str]:
        return _sheet_names(self.workbook, self.format)

    def rows(self, sheet: str) -> Iterator[tuple]:
        return _iter_rows(self.workbook, self.format, sheet)

    def flush(self) -> None:
        if not self.writable:
            return
        save_document(self.writer, self.source)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        _release(self.workbook, self.format)

    def __repr__(self):
        return f"FullHandle(format={self.format.value}, writable={self.writable}, source={self.source!r})"


class StreamingHandle:
    """Bounded-memory handle: incremental reader or batch writer."""

    streaming = True

    def __init__(self, workbook, fmt: DocumentFormat, mode: str, *, source: Optional[str] = None,
                 stream: Optional[BinaryIO] = None, batch_size: Optional[int] = None,
                 compress_temp_files: bool = False):
        if mode not in ("read", "write"):
            raise ValueError(f"mode must be 'read' or 'write', got {mode!r}")
        self.workbook = workbook
        self.format = fmt
        self.mode = mode
        self.source = source
        self.batch_size = batch_size
        self.compress_temp_files = compress_temp_files
        self.readable = mode == "read"
        self.writable = mode == "write"
        self.closed = False
        self._stream = stream
        self._saved = False
        self._pending: Dict[str, List[Sequence[Any]]] = {}

    def sheet_names(self) -> List[str]:
        return _sheet_names(self.workbook, self.format)

    def rows(self, sheet: str) -> Iterator[tuple]:
        if not self.readable:
            raise AcquisitionFailure("Streaming write handle is write-only")
        return _iter_rows(self.workbook, self.format, sheet)

    @property
    def pending_rows(self) -> int:
        return sum(len(v) for v in self._pending.values())

    def append(self, sheet: str, row: Sequence[Any]) -> None:
        if not self.writable:
            raise AcquisitionFailure("Streaming read handle is read-only")
        if self._saved:
            raise AcquisitionFailure("Streaming writer was already committed", path=self.source)
        bucket = self._pending.setdefault(sheet, [])
        bucket.append(tuple(row))
        if len(bucket) >= self.batch_size:
            self._push(sheet)

    def _push(self, sheet: str) -> None:
        rows = self._pending.pop(sheet, [])
        if not rows:
            return
        ws = self.workbook[sheet] if sheet in self.workbook.sheetnames else self.workbook.create_sheet(sheet)
        for row in rows:
            ws.append(row)
        debug("stream_batch_pushed", sheet=sheet, rows=len(rows))

    def flush(self) -> None:
        # A write-only workbook can be saved once; later flushes are no-ops.
        if not self.writable or self._saved:
            return
        for sheet in list(self._pending):
            self._push(sheet)
        if self.source:
            self._saved = True
            save_document(self.workbook, self.source)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._pending:
            warn("stream_rows_discarded", source=self.source, rows=self.pending_rows)
            self._pending.clear()
        try:
            _release(self.workbook, self.format)
        finally:
            if self._stream is not None:
                self._stream.close()

    def __repr__(self):
        return (f"StreamingHandle(format={self.format.value}, mode={self.mode}, "
                f"batch_size={self.batch_size}, source={self.source!r})")


# --- Opening -------------------------------------------------------------------------

def open_full(stream: BinaryIO, *, source: Optional[str] = None, writable: bool = False) -> FullHandle:
    """Load the whole document from ``stream`` (must be seekable)."""
    fmt = _peek_format(stream)
    try:
        if fmt is DocumentFormat.XLSX:
            workbook = openpyxl.load_workbook(stream)
        else:
            workbook = xlrd.open_workbook(file_contents=stream.read(), formatting_info=True)
        writer = None
        if fmt is DocumentFormat.XLS and writable and source:
            writer = xls_writable_copy(workbook)
    except Exception as e:
        raise AcquisitionFailure(f"Cannot open {fmt.value} document: {e}", path=source) from e
    return FullHandle(workbook, fmt, source=source, writable=writable, writer=writer)


def open_streaming_reader(stream: BinaryIO, *, source: Optional[str] = None) -> StreamingHandle:
    """Open ``stream`` for incremental reads. The handle takes ownership of ``stream``."""
    fmt = _peek_format(stream)
    try:
        if fmt is DocumentFormat.XLSX:
            workbook = openpyxl.load_workbook(stream, read_only=True)
        else:
            workbook = xlrd.open_workbook(file_contents=stream.read(), on_demand=True)
    except Exception as e:
        raise AcquisitionFailure(f"Cannot stream {fmt.value} document: {e}", path=source) from e
    return StreamingHandle(workbook, fmt, "read", source=source, stream=stream)


def wrap_streaming_writer(handle: FullHandle, batch_size: int = STREAM_BATCH_SIZE,
                          compress_temp_files: bool = False) -> StreamingHandle:
    """Turn a fully loaded xlsx document into a bounded batch writer.

    Existing sheets are copied (values only) into an openpyxl write-only
    workbook, then ``handle`` is released. Appended rows go to the write-only
    worksheets, which spool them to temp files instead of keeping them in
    memory. openpyxl has no temp-file compression, so ``compress_temp_files``
    must be False.
    """
    if handle.format is not DocumentFormat.XLSX:
        raise AcquisitionFailure("Streaming writes need an xlsx document", path=handle.source)
    if compress_temp_files:
        raise AcquisitionFailure("Compressed temp files are not supported by the streaming writer",
                                 path=handle.source)
    try:
        out = openpyxl.Workbook(write_only=True)
        for ws in handle.workbook.worksheets:
            target = out.create_sheet(ws.title)
            if _has_cells(ws):
                for row in ws.iter_rows(values_only=True):
                    target.append(row)
    except Exception as e:
        raise AcquisitionFailure(f"Cannot prepare streaming writer: {e}", path=handle.source) from e
    finally:
        handle.close()
    debug("stream_writer_ready", source=handle.source, sheets=len(out.sheetnames))
    return StreamingHandle(out, handle.format, "write", source=handle.source,
                           batch_size=batch_size, compress_temp_files=compress_temp_files)


def _has_cells(ws) -> bool:
    # An untouched sheet still reports a 1x1 used range.
    return ws.max_row > 1 or ws.max_column > 1 or ws.cell(row=1, column=1).value is not None
