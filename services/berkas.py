import logging
import time
from collections import namedtuple

from werkzeug.utils import secure_filename

from services.errors import StoreError, AuthError, RecordNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_TYPES = (
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
)
DEFAULT_MAX_SIZE = 10485760


class BerkasUnggahan(namedtuple('BerkasUnggahan', ['filename', 'content_type', 'data'])):
    __slots__ = ()

    @property
    def size(self):
        return len(self.data)

    @classmethod
    def from_file_storage(cls, file):
        """Ambil isi ``FileStorage`` dari request; ``None`` jika tidak ada file."""
        if file is None or not file.filename:
            return None
        return cls(file.filename, file.mimetype, file.read())


class DocumentUploader:
    def __init__(self, record_store, blob_store, auth, notify,
                 allowed_types=DEFAULT_ALLOWED_TYPES, max_size=DEFAULT_MAX_SIZE, clock=time.time):
        self.store = record_store
        self.blobs = blob_store
        self.auth = auth
        self.notify = notify
        self.allowed_types = tuple(allowed_types)
        self.max_size = max_size
        self._clock = clock
        self.employees = []
        self.selected_employee = ''
        self.file = None

    def load_employees(self):
        try:
            self.employees = self.store.select('employees', columns=['id', 'nama', 'nip'], order_by='nama')
        except StoreError:
            self.notify('Gagal memuat data pegawai', 'danger')
            self.employees = []
        return self.employees

    def select_employee(self, pegawai_id):
        self.selected_employee = pegawai_id or ''

    def select_file(self, berkas):
        self.file = None
        if berkas is None:
            return False

        if berkas.content_type not in self.allowed_types:
            self.notify('Format file tidak didukung. Gunakan PDF, Word, atau Excel', 'danger')
            return False

        if berkas.size > self.max_size:
            self.notify('Ukuran file maksimal 10MB', 'danger')
            return False

        self.file = berkas
        return True

    def storage_key(self, pegawai_id, filename):
        # Timestamp milidetik agar unggahan berulang untuk pegawai yang sama tidak bentrok
        ext = secure_filename(filename.rsplit('.', 1)[-1]) or 'bin'
        return f'{pegawai_id}/{int(self._clock() * 1000)}.{ext}'

    def reset(self):
        self.selected_employee = ''
        self.file = None

    def upload(self):
        if not self.selected_employee:
            self.notify('Pilih pegawai terlebih dahulu', 'danger')
            return False

        if self.file is None:
            self.notify('Pilih file terlebih dahulu', 'danger')
            return False

        berkas = self.file
        try:
            user = self.auth.current_user()
            if user is None:
                raise AuthError('Pengguna belum terautentikasi.')
            self.store.get('employees', self.selected_employee, columns=['id'])

            key = self.storage_key(self.selected_employee, berkas.filename)
            self.blobs.upload(key, berkas.data)
        except RecordNotFoundError:
            self.notify('Pegawai tidak ditemukan', 'danger')
            return False
        except StoreError as e:
            self.notify(e.message or 'Gagal mengunggah file', 'danger')
            return False

        try:
            self.store.insert('employee_files', {
                'employee_id': self.selected_employee,
                'user_id': user.id,
                'file_name': berkas.filename,
                'file_path': key,
                'file_type': berkas.content_type,
                'file_size': berkas.size,
            })
        except StoreError as e:
            # Blob sudah tersimpan tanpa metadata; tidak dihapus otomatis
            logger.warning("Metadata berkas gagal disimpan, blob %s tertinggal: %s", key, e.message)
            self.notify(e.message or 'Gagal mengunggah file', 'danger')
            return False

        logger.info("Berkas %s diunggah untuk pegawai %s", key, self.selected_employee)
        self.notify('File berhasil diunggah', 'success')
        self.reset()
        return True


class DetailViewer:
    def __init__(self, record_store, blob_store, notify):
        self.store = record_store
        self.blobs = blob_store
        self.notify = notify

    def load(self, pegawai_id):
        try:
            return self.store.get('employees', pegawai_id)
        except StoreError:
            self.notify('Gagal memuat data pegawai', 'danger')
            return None

    def load_files(self, pegawai_id):
        try:
            return self.store.select('employee_files', filters={'employee_id': pegawai_id},
                                     order_by='uploaded_at', descending=True)
        except StoreError as e:
            # Daftar berkas tidak kritis: halaman detail tetap tampil
            logger.error("Gagal memuat berkas pegawai %s: %s", pegawai_id, e.message)
            return []

    def download(self, pegawai_id, berkas_id):
        """Kembalikan ``(metadata, isi)`` berkas, atau ``None`` jika gagal."""
        try:
            berkas = self.store.get('employee_files', berkas_id)
            if berkas['employee_id'] != pegawai_id:
                raise RecordNotFoundError('Berkas tidak ditemukan.')
            data = self.blobs.download(berkas['file_path'])
        except StoreError:
            self.notify('Gagal mengunduh file', 'danger')
            return None
        return berkas, data
