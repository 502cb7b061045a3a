"""Create-if-absent semantics for local documents.

Existence is decided by an explicit stat (ABSENT / EMPTY / PRESENT) rather
than by trying to open the file and catching not-found. Two requests racing
to create the same path are not coordinated; the loser may open a file it
did not create.
"""
from __future__ import annotations
import os
import stat
from enum import Enum

from .documents import DocumentFormat, create_empty, save_document
from .errors import AcquisitionFailure
from .logging_util import info, warn


class FileStatus(str, Enum):
    ABSENT = "absent"
    EMPTY = "empty"
    PRESENT = "present"


def file_status(path: str) -> FileStatus:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return FileStatus.ABSENT
    except OSError as e:
        raise AcquisitionFailure(f"Cannot stat {path}: {e}", path=path) from e
    if stat.S_ISDIR(st.st_mode):  # directory misuse
        raise AcquisitionFailure(f"Path points to a directory, expected file: {path}", path=path)
    return FileStatus.EMPTY if st.st_size == 0 else FileStatus.PRESENT


def format_for_path(path: str) -> DocumentFormat:
    """``*.xlsx`` style suffixes (ending in x) select xlsx; anything else xls."""
    return DocumentFormat.XLSX if path.lower().endswith("x") else DocumentFormat.XLS


def materialize(path: str, fmt: DocumentFormat) -> None:
    save_document(create_empty(fmt), path)
    info("document_created", path=path, format=fmt.value)


def ensure_workbook(path: str) -> FileStatus:
    """Open-or-create: write an empty document when the file is absent or empty.

    Returns the status observed before any creation.
    """
    status = file_status(path)
    if status is not FileStatus.PRESENT:
        materialize(path, format_for_path(path))
    return status


def ensure_stream_target(path: str) -> FileStatus:
    """Stream-write target: always xlsx when created; existing content is loaded fully."""
    status = file_status(path)
    if status is FileStatus.PRESENT:
        warn("stream_target_not_empty", path=path,
             detail="existing content will be loaded into memory before streaming writes")
    else:
        materialize(path, DocumentFormat.XLSX)
    return status
