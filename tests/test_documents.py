import io, pytest, openpyxl, xlrd
from conftest import xlsx_bytes
from sqlsheet.documents import (DocumentFormat, FullHandle, StreamingHandle, STREAM_BATCH_SIZE,
                                create_empty, detect_format, open_full, open_streaming_reader, save_document,
                                wrap_streaming_writer)
from sqlsheet.errors import AcquisitionFailure


def test_detect_format_magic_bytes():
    assert detect_format(b'PK\x03\x04rest') is DocumentFormat.XLSX
    assert detect_format(b'\xd0\xcf\x11\xe0\xa1\xb1') is DocumentFormat.XLS
    with pytest.raises(AcquisitionFailure):
        detect_format(b'name,value\n')


def test_open_full_reads_rows():
    handle = open_full(io.BytesIO(xlsx_bytes()))
    assert isinstance(handle, FullHandle)
    assert handle.readable and not handle.writable and not handle.streaming
    rows = list(handle.rows(handle.sheet_names()[0]))
    assert rows[0] == ('id', 'name')
    assert rows[2] == (2, 'beta')
    handle.close()


def test_open_full_garbage_zip_is_acquisition_failure():
    with pytest.raises(AcquisitionFailure):
        open_full(io.BytesIO(b'PK\x03\x04not really a zip'))


def test_streaming_reader_is_read_only():
    handle = open_streaming_reader(io.BytesIO(xlsx_bytes()))
    assert isinstance(handle, StreamingHandle)
    assert handle.mode == 'read' and handle.readable and not handle.writable
    assert list(handle.rows(handle.sheet_names()[0]))[1] == (1, 'alpha')
    with pytest.raises(AcquisitionFailure):
        handle.append('Sheet', (1,))
    handle.close()


def _writer(tmp_path):
    path = tmp_path / 'w.xlsx'
    path.write_bytes(xlsx_bytes(rows=()))
    with open(path, 'rb') as fh:
        full = open_full(fh, source=str(path), writable=True)
    return path, wrap_streaming_writer(full)


def test_streaming_writer_pushes_in_batches(tmp_path):
    path, handle = _writer(tmp_path)
    assert handle.batch_size == STREAM_BATCH_SIZE == 1000
    assert handle.compress_temp_files is False
    sheet = handle.sheet_names()[0]
    for i in range(STREAM_BATCH_SIZE - 1):
        handle.append(sheet, (i,))
    assert handle.pending_rows == STREAM_BATCH_SIZE - 1
    handle.append(sheet, (999,))
    assert handle.pending_rows == 0
    handle.append(sheet, (1000,))
    assert handle.pending_rows == 1
    handle.flush()
    assert handle.pending_rows == 0
    handle.close()
    ws = openpyxl.load_workbook(path)[sheet]
    assert ws.max_row == STREAM_BATCH_SIZE + 1


def test_streaming_writer_is_write_only(tmp_path):
    _, handle = _writer(tmp_path)
    assert not handle.readable
    with pytest.raises(AcquisitionFailure):
        handle.rows('Sheet')
    handle.close()


def test_streaming_writer_creates_missing_sheet(tmp_path):
    path, handle = _writer(tmp_path)
    handle.append('extra', ('x', 'y'))
    handle.flush()
    handle.close()
    assert 'extra' in openpyxl.load_workbook(path).sheetnames


def test_wrap_requires_xlsx(tmp_path):
    full = FullHandle(object(), DocumentFormat.XLS, source=str(tmp_path / 'a.xls'))
    with pytest.raises(AcquisitionFailure):
        wrap_streaming_writer(full)


def test_close_with_pending_rows_warns(tmp_path, capsys):
    _, handle = _writer(tmp_path)
    handle.append('Sheet', (1,))
    handle.close()
    assert 'stream_rows_discarded' in capsys.readouterr().err


def test_streaming_writer_spools_to_write_only_workbook(tmp_path):
    path, handle = _writer(tmp_path)
    assert handle.workbook.write_only
    sheet = handle.sheet_names()[0]
    high_water = 0
    for i in range(5 * STREAM_BATCH_SIZE):
        handle.append(sheet, (i, f'row-{i}'))
        high_water = max(high_water, handle.pending_rows)
    assert high_water == STREAM_BATCH_SIZE - 1
    handle.flush()
    handle.close()
    ws = openpyxl.load_workbook(path)[sheet]
    rows = list(ws.iter_rows(values_only=True))
    assert len(rows) == 5 * STREAM_BATCH_SIZE
    assert rows[-1] == (4999, 'row-4999')


def test_streaming_writer_keeps_existing_rows(tmp_path):
    path = tmp_path / 'kept.xlsx'
    path.write_bytes(xlsx_bytes())
    with open(path, 'rb') as fh:
        full = open_full(fh, source=str(path), writable=True)
    handle = wrap_streaming_writer(full)
    assert full.closed
    handle.append('Sheet', (3, 'gamma'))
    handle.flush()
    handle.close()
    rows = list(openpyxl.load_workbook(path).active.iter_rows(values_only=True))
    assert rows == [('id', 'name'), (1, 'alpha'), (2, 'beta'), (3, 'gamma')]


def test_streaming_writer_rejects_compressed_temp_files(tmp_path):
    path = tmp_path / 'c.xlsx'
    path.write_bytes(xlsx_bytes())
    with open(path, 'rb') as fh:
        full = open_full(fh, source=str(path), writable=True)
    with pytest.raises(AcquisitionFailure):
        wrap_streaming_writer(full, compress_temp_files=True)
    full.close()


def test_streaming_writer_saves_once(tmp_path):
    path, handle = _writer(tmp_path)
    handle.append('Sheet', (1,))
    handle.flush()
    handle.flush()
    with pytest.raises(AcquisitionFailure):
        handle.append('Sheet', (2,))
    handle.close()
    assert openpyxl.load_workbook(path)['Sheet'].max_row == 1


def test_open_full_xls_is_writable_through_copy(tmp_path):
    path = tmp_path / 'legacy.xls'
    save_document(create_empty(DocumentFormat.XLS), str(path))
    with open(path, 'rb') as fh:
        handle = open_full(fh, source=str(path), writable=True)
    assert handle.writable
    handle.writer.get_sheet(0).write(1, 2, 42)
    handle.flush()
    handle.close()
    assert xlrd.open_workbook(str(path)).sheet_by_index(0).cell_value(1, 2) == 42


def test_open_full_xls_without_source_is_read_only():
    buf = io.BytesIO()
    create_empty(DocumentFormat.XLS).save(buf)
    buf.seek(0)
    handle = open_full(buf, writable=True)
    assert handle.writer is None and not handle.writable
    handle.close()
