import io, pytest
from pathlib import Path
import openpyxl
from sqlsheet import registry
from sqlsheet.config import DriverConfig
from sqlsheet.driver import SheetDriver

def xls_url(path, query=''):
    url = f"xls:{Path(path).as_uri()}"
    return f"{url}?{query}" if query else url

def xlsx_bytes(rows=(('id','name'),(1,'alpha'),(2,'beta'))):
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()

@pytest.fixture()
def driver():
    return SheetDriver(DriverConfig())

@pytest.fixture()
def filled_xlsx(tmp_path):
    path = tmp_path / 'filled.xlsx'
    path.write_bytes(xlsx_bytes())
    return path

@pytest.fixture(autouse=True)
def clean_registry():
    registry.reset()
    yield
    registry.reset()
