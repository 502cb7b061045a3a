#!/usr/bin/env python3
"""Smoke test for core invariants.

Checks:
  * A missing workbook is created on first connect (format from suffix)
  * Reconnecting to the same path succeeds and sees a non-empty file
  * readStreaming on a missing file fails instead of creating it
  * (Optional) writeStreaming yields a batch writer of size 1000 (set SMOKE_WRITE_STREAMING=1)

Prints a single JSON line; exit code 0 on success.
"""
import os, sys, json, tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from sqlsheet.driver import SheetDriver
from sqlsheet.documents import DocumentFormat
from sqlsheet.errors import ConnectionEstablishmentFailure

WORK_DIR = Path(os.environ.get('SMOKE_WORK_DIR') or tempfile.mkdtemp(prefix='sqlsheet-smoke-'))

failures = []

def check(cond, msg):
    if not cond:
        failures.append(msg)

driver = SheetDriver()

for name, fmt in [('smoke.xlsx', DocumentFormat.XLSX), ('smoke.xls', DocumentFormat.XLS)]:
    book = WORK_DIR / name
    if book.exists():
        book.unlink()
    with driver.connect(f"xls:{book.as_uri()}") as conn:
        check(conn.handle.format is fmt, f'{name}: wrong format {conn.handle.format}')
    check(book.exists() and book.stat().st_size > 0, f'{name}: not materialized')
    with driver.connect(f"xls:{book.as_uri()}") as conn:
        check(conn.source_file == book, f'{name}: source_file mismatch')

missing = WORK_DIR / 'never.xlsx'
try:
    driver.connect(f"xls:{missing.as_uri()}?readStreaming")
    check(False, 'readStreaming on missing file unexpectedly succeeded')
except ConnectionEstablishmentFailure as e:
    check(e.kind == 'AcquisitionFailure', f'unexpected failure kind: {e.kind}')
check(not missing.exists(), 'readStreaming created a file')

if os.environ.get('SMOKE_WRITE_STREAMING','0') == '1':
    target = WORK_DIR / 'smoke.xlsx'
    with driver.connect(f"xls:{target.as_uri()}?writeStreaming") as conn:
        check(conn.handle.streaming and conn.handle.writable, 'writeStreaming did not give a writer')
        check(conn.handle.batch_size == 1000, f'batch size {conn.handle.batch_size}')

if failures:
    print(json.dumps({'success': False, 'failures': failures}))
    sys.exit(2)
print(json.dumps({'success': True, 'work_dir': str(WORK_DIR)}))
