#!/usr/bin/env python3
"""Idempotent workbook initializer.

Creates an empty workbook at the given path when the file is absent or empty
(format picked from the suffix: *.xlsx -> xlsx, anything else -> xls). An
existing non-empty file is left untouched. Safe to run multiple times.

Usage:
  python scripts/init_workbook.py /path/to/book.xlsx
"""
from __future__ import annotations
import sys, pathlib

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sqlsheet.errors import SheetError  # noqa: E402
from sqlsheet.materializer import ensure_workbook, format_for_path  # noqa: E402

def main():
    if len(sys.argv) < 2:
        print('Usage: init_workbook.py <workbook_path>', file=sys.stderr)
        return 2
    path = pathlib.Path(sys.argv[1])
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        before = ensure_workbook(str(path))
    except SheetError as e:
        print(f"init failed: {e}", file=sys.stderr)
        return 1
    print(f"initialized: {path} format={format_for_path(str(path)).value} before={before.value}")
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
