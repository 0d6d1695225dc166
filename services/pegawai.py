import logging
from collections import namedtuple
from datetime import date, datetime

from models.pegawai import JENIS_KELAMIN_OPTIONS
from services.errors import StoreError, AuthError

logger = logging.getLogger(__name__)

FIELDS = (
    'nama',
    'nip',
    'jenis_kelamin',
    'pangkat_golongan',
    'tmt_pangkat_golongan',
    'jabatan',
    'tmt_cpns',
    'tmt_pns',
    'pendidikan_terakhir',
    'tempat_lahir',
    'tanggal_lahir',
    'kapgek',
)

# (field, label, wajib, panjang maksimal, jenis)
ATURAN_FIELD = (
    ('nama', 'Nama', True, 100, 'teks'),
    ('nip', 'NIP', True, 50, 'teks'),
    ('jenis_kelamin', 'Jenis kelamin', True, None, 'pilihan'),
    ('pangkat_golongan', 'Pangkat/Golongan', True, 100, 'teks'),
    ('tmt_pangkat_golongan', 'TMT Pangkat/Golongan', True, None, 'tanggal'),
    ('jabatan', 'Jabatan', True, 150, 'teks'),
    ('tmt_cpns', 'TMT CPNS', True, None, 'tanggal'),
    ('tmt_pns', 'TMT PNS', True, None, 'tanggal'),
    ('pendidikan_terakhir', 'Pendidikan terakhir', True, 100, 'teks'),
    ('tempat_lahir', 'Tempat lahir', True, 100, 'teks'),
    ('tanggal_lahir', 'Tanggal lahir', True, None, 'tanggal'),
    ('kapgek', 'Kapgek', False, 100, 'teks'),
)

ValidationResult = namedtuple('ValidationResult', ['record', 'errors'])


def _as_text(value):
    if value is None:
        return ''
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)


class PegawaiForm(namedtuple('PegawaiForm', FIELDS)):
    """Isi formulir pegawai. Tidak diubah di tempat; setiap perubahan field
    menghasilkan nilai baru lewat ``with_field``."""
    __slots__ = ()

    @classmethod
    def empty(cls):
        return cls(**{field: '' for field in FIELDS})

    @classmethod
    def from_mapping(cls, data):
        return cls(**{field: _as_text(data.get(field)) for field in FIELDS})

    # Data dari database: tanggal diubah ke YYYY-MM-DD, NULL jadi string kosong
    from_record = from_mapping

    def with_field(self, name, value):
        return self._replace(**{name: _as_text(value)})


def validate_pegawai(form):
    """Validasi isi formulir tanpa efek samping.

    Mengembalikan ``ValidationResult``: ``record`` berisi data yang siap
    disimpan (tanggal sebagai ``date``, kapgek kosong menjadi ``None``) jika
    ``errors`` kosong. ``errors`` disusun mengikuti urutan field.
    """
    values = form._asdict() if isinstance(form, PegawaiForm) else form
    record = {}
    errors = []

    for field, label, wajib, maks, jenis in ATURAN_FIELD:
        value = _as_text(values.get(field)).strip()

        if not value:
            if wajib:
                kata = 'dipilih' if jenis == 'pilihan' else 'diisi'
                errors.append(f'{label} wajib {kata}')
            else:
                record[field] = None
            continue

        if maks is not None and len(value) > maks:
            errors.append(f'{label} maksimal {maks} karakter')
            continue

        if jenis == 'pilihan':
            if value not in JENIS_KELAMIN_OPTIONS:
                errors.append(f'{label} tidak valid')
                continue
        elif jenis == 'tanggal':
            try:
                value = datetime.strptime(value, '%Y-%m-%d').date()
            except ValueError:
                errors.append(f'{label} tidak valid. Gunakan format YYYY-MM-DD')
                continue

        record[field] = value

    if errors:
        return ValidationResult(None, errors)
    return ValidationResult(record, [])


def filter_pegawai(employees, query):
    """Nama dan jabatan dicocokkan tanpa peduli huruf besar/kecil, NIP apa adanya."""
    if not query:
        return list(employees)
    query_lower = query.lower()
    return [
        emp for emp in employees
        if query_lower in (emp.get('nama') or '').lower()
        or query in (emp.get('nip') or '')
        or query_lower in (emp.get('jabatan') or '').lower()
    ]


class RosterManager:
    COLUMNS = ['id', 'nama', 'nip', 'jabatan']
    PESAN_KOSONG = 'Belum ada data pegawai'
    PESAN_TIDAK_COCOK = 'Tidak ada data yang cocok'

    def __init__(self, record_store, notify):
        self.store = record_store
        self.notify = notify
        self.employees = []

    def load(self):
        try:
            self.employees = self.store.select('employees', columns=self.COLUMNS,
                                               order_by='created_at', descending=True)
        except StoreError:
            self.notify('Gagal memuat data pegawai', 'danger')
            self.employees = []
        return self.employees

    def search(self, query):
        return filter_pegawai(self.employees, query)

    def delete(self, pegawai_id, confirmed):
        if not confirmed:
            return False

        try:
            self.store.delete('employees', pegawai_id)
        except StoreError:
            self.notify('Gagal menghapus data pegawai', 'danger')
            return False

        logger.info("Pegawai %s dihapus", pegawai_id)
        self.notify('Data pegawai berhasil dihapus', 'success')
        self.load()
        return True

    @classmethod
    def empty_message(cls, query):
        return cls.PESAN_TIDAK_COCOK if query else cls.PESAN_KOSONG


class RecordEditor:
    def __init__(self, record_store, auth, notify):
        self.store = record_store
        self.auth = auth
        self.notify = notify

    def load(self, pegawai_id):
        try:
            record = self.store.get('employees', pegawai_id, columns=list(FIELDS))
        except StoreError:
            self.notify('Gagal memuat data pegawai', 'danger')
            return PegawaiForm.empty()
        return PegawaiForm.from_record(record)

    def submit(self, form, pegawai_id=None):
        result = validate_pegawai(form)
        if result.errors:
            self.notify(result.errors[0], 'danger')
            return False

        try:
            user = self.auth.current_user()
            if user is None:
                raise AuthError('Pengguna belum terautentikasi.')

            if pegawai_id:
                self.store.update('employees', pegawai_id, result.record)
                pesan = 'Data pegawai berhasil diperbarui'
            else:
                self.store.insert('employees', dict(result.record, user_id=user.id))
                pesan = 'Data pegawai berhasil ditambahkan'
        except StoreError as e:
            self.notify(e.message or 'Gagal menyimpan data', 'danger')
            return False

        self.notify(pesan, 'success')
        return True
