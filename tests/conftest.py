"""
SI PRIMA - konfigurasi test dan fixture bersama
"""
import os
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

# Konfigurasi test harus dipilih sebelum app diimpor
os.environ['SI_PRIMA_CONFIG'] = 'config.TestConfig'

from app import app as flask_app
from models import db
from services.errors import RecordStoreError, RecordNotFoundError, BlobStoreError
from services.sesi import AuthService, SessionContext

EMAIL = 'staf@puskesmas.go.id'
PASSWORD = 'rahasia123'


@pytest.fixture
def data_pegawai():
    return {
        'nama': 'Ani Lestari',
        'nip': '198501012010012001',
        'jenis_kelamin': 'Perempuan',
        'pangkat_golongan': 'Penata / III/c',
        'tmt_pangkat_golongan': '2020-04-01',
        'jabatan': 'Staf Administrasi',
        'tmt_cpns': '2010-01-01',
        'tmt_pns': '2011-01-01',
        'pendidikan_terakhir': 'S1 Kesehatan Masyarakat',
        'tempat_lahir': 'Bandung',
        'tanggal_lahir': '1985-01-01',
        'kapgek': '',
    }


# --- Fixture aplikasi & database ---

@pytest.fixture
def app(tmp_path):
    flask_app.config['UPLOAD_FOLDER_BERKAS'] = str(tmp_path / 'berkas')
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    return AuthService(SessionContext({})).sign_up(EMAIL, PASSWORD)


@pytest.fixture
def logged_in_client(client, user):
    response = client.post('/auth', data={'email': EMAIL, 'password': PASSWORD})
    assert response.status_code == 302
    return client


# --- Pengganti penyimpanan untuk test komponen ---

class Notifier:
    """Mencatat notifikasi seperti ``flash``."""

    def __init__(self):
        self.messages = []

    def __call__(self, message, category='message'):
        self.messages.append((category, message))

    @property
    def errors(self):
        return [m for c, m in self.messages if c == 'danger']

    @property
    def successes(self):
        return [m for c, m in self.messages if c == 'success']


class FakeRecordStore:
    def __init__(self, **tables):
        self.tables = {'employees': [], 'employee_files': []}
        for name, rows in tables.items():
            self.tables[name] = [dict(row) for row in rows]
        self.calls = []
        self.inserted = []
        self.updated = []
        self.fail_on = set()
        self.fail_message = 'koneksi ke database terputus'

    def _call(self, operation, table):
        self.calls.append((operation, table))
        if operation in self.fail_on or (operation, table) in self.fail_on:
            raise RecordStoreError(self.fail_message)

    @staticmethod
    def _pick(row, columns):
        return {c: row.get(c) for c in columns} if columns else dict(row)

    def _find(self, table, record_id):
        for row in self.tables[table]:
            if row['id'] == record_id:
                return row
        raise RecordNotFoundError('Data tidak ditemukan.')

    def select(self, table, columns=None, filters=None, order_by=None, descending=False):
        self._call('select', table)
        rows = [r for r in self.tables[table]
                if all(r.get(k) == v for k, v in (filters or {}).items())]
        if order_by:
            rows = sorted(rows, key=lambda r: r[order_by], reverse=descending)
        return [self._pick(r, columns) for r in rows]

    def get(self, table, record_id, columns=None):
        self._call('get', table)
        return self._pick(self._find(table, record_id), columns)

    def insert(self, table, values):
        self._call('insert', table)
        row = dict(values)
        row.setdefault('id', f'{table}-{len(self.tables[table]) + 1}')
        self.tables[table].append(row)
        self.inserted.append((table, dict(values)))
        return dict(row)

    def update(self, table, record_id, values):
        self._call('update', table)
        row = self._find(table, record_id)
        row.update(values)
        self.updated.append((table, record_id, dict(values)))
        return dict(row)

    def delete(self, table, record_id):
        self._call('delete', table)
        self.tables[table].remove(self._find(table, record_id))

    def count(self, operation, table='employees'):
        return self.calls.count((operation, table))


class FakeBlobStore:
    def __init__(self):
        self.blobs = {}
        self.uploads = []
        self.fail = False

    def upload(self, key, data):
        if self.fail:
            raise BlobStoreError('Penyimpanan berkas tidak tersedia')
        self.uploads.append(key)
        self.blobs[key] = data
        return key

    def download(self, key):
        if self.fail or key not in self.blobs:
            raise BlobStoreError('File tidak ditemukan di server.')
        return self.blobs[key]


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def auth():
    return SimpleNamespace(current_user=lambda: SimpleNamespace(id='user-1', email=EMAIL))


@pytest.fixture
def anonymous():
    return SimpleNamespace(current_user=lambda: None)


class BrokenSession:
    """Session SQLAlchemy yang selalu gagal, seperti database yang terkunci."""

    def __init__(self):
        self.rolled_back = 0

    def _gagal(self, *args, **kwargs):
        raise OperationalError('SELECT users', {}, Exception('database is locked'))

    get = query = _gagal

    def rollback(self):
        self.rolled_back += 1


@pytest.fixture
def broken_session():
    return BrokenSession()


@pytest.fixture
def broken_auth(broken_session):
    context = SessionContext({'user_id': 'user-1', 'email': EMAIL})
    return AuthService(context, session=broken_session)
