import csv
import io
import logging
from collections import namedtuple
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment
from openpyxl.utils import get_column_letter

from services.errors import StoreError

logger = logging.getLogger(__name__)

HEADER = ['No', 'Nama', 'NIP', 'Jabatan', 'Pangkat/Golongan', 'Pendidikan Terakhir']
COLUMNS = ['id', 'nama', 'nip', 'jabatan', 'pangkat_golongan', 'pendidikan_terakhir']

CSV_MIMETYPE = 'text/csv; charset=utf-8'
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

Export = namedtuple('Export', ['filename', 'content', 'mimetype'])


def report_rows(employees):
    for nomor, emp in enumerate(employees, start=1):
        yield [
            nomor,
            emp['nama'],
            emp['nip'],
            emp['jabatan'],
            emp['pangkat_golongan'],
            emp['pendidikan_terakhir'],
        ]


def build_csv(employees):
    """CSV dengan BOM UTF-8 agar Excel membaca huruf beraksen dengan benar."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(HEADER)
    writer.writerows(report_rows(employees))
    return ('\ufeff' + buffer.getvalue().rstrip('\n')).encode('utf-8')


def build_xlsx(employees, sheet_name='Laporan Pegawai'):
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]  # batas nama sheet Excel

    ws.append(HEADER)
    for col in range(1, len(HEADER) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal='center', vertical='center')

    widths = [len(h) for h in HEADER]
    for row in report_rows(employees):
        ws.append(row)
        widths = [max(w, len(str(v or ''))) for w, v in zip(widths, row)]

    for col, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(col)].width = min(width + 2, 60)
    ws.freeze_panes = 'A2'

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


class ReportExporter:
    def __init__(self, record_store, notify):
        self.store = record_store
        self.notify = notify
        self.employees = []

    def fetch(self):
        try:
            self.employees = self.store.select('employees', columns=COLUMNS, order_by='nama')
        except StoreError:
            self.notify('Gagal memuat data pegawai', 'danger')
            self.employees = []
        return self.employees

    def _filename(self, today, ext):
        # Tanggal dalam UTC, sama untuk semua zona waktu server
        today = today or datetime.now(timezone.utc).date()
        return f'laporan-pegawai-{today.isoformat()}.{ext}'

    def _has_data(self):
        if not self.employees:
            self.notify('Tidak ada data untuk diekspor', 'danger')
            return False
        return True

    def export_csv(self, today=None):
        if not self._has_data():
            return None
        logger.info("Ekspor laporan CSV: %d pegawai", len(self.employees))
        return Export(self._filename(today, 'csv'), build_csv(self.employees), CSV_MIMETYPE)

    def export_xlsx(self, today=None):
        if not self._has_data():
            return None
        logger.info("Ekspor laporan Excel: %d pegawai", len(self.employees))
        return Export(self._filename(today, 'xlsx'), build_xlsx(self.employees), XLSX_MIMETYPE)
