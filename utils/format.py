from datetime import datetime

NAMA_BULAN = (
    'Januari', 'Februari', 'Maret', 'April', 'Mei', 'Juni',
    'Juli', 'Agustus', 'September', 'Oktober', 'November', 'Desember',
)


def format_tanggal(value):
    if value is None or value == '':
        return "-"
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        value = value.date()
    # Format: 19 Oktober 2025
    return f"{value.day} {NAMA_BULAN[value.month - 1]} {value.year}"


def format_ukuran(size):
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 * 1024):.2f} MB"
