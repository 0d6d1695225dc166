"""Adapter penyimpanan: data pegawai (tabel) dan berkas (blob).

Komponen layar hanya berbicara dengan ``RecordStore`` dan ``BlobStore``.
Keduanya melempar turunan ``StoreError`` dengan pesan yang bisa langsung
ditampilkan, sehingga komponen cukup menangkap satu jenis kesalahan.
"""
import logging
import os

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import safe_join

from models import db
from models.pegawai import Pegawai
from models.berkas import BerkasPegawai
from services.errors import RecordStoreError, RecordNotFoundError, BlobStoreError

logger = logging.getLogger(__name__)

TABLES = {
    'employees': Pegawai,
    'employee_files': BerkasPegawai,
}


def _pesan_error(error):
    # Ambil pesan dari driver database jika ada, bukan seluruh SQL-nya
    orig = getattr(error, 'orig', None)
    return str(orig or error)


class RecordStore:
    """Akses tabel berdasarkan nama: select, get, insert, update, delete."""

    def __init__(self, session=None, tables=None):
        self.session = session or db.session
        self.tables = tables or TABLES

    def _model(self, table):
        try:
            return self.tables[table]
        except KeyError:
            raise RecordStoreError(f'Tabel "{table}" tidak dikenal.') from None

    def _columns(self, model, columns=None):
        names = list(model.__table__.columns.keys())
        if columns is None:
            return names
        unknown = [c for c in columns if c not in names]
        if unknown:
            raise RecordStoreError(f'Kolom tidak dikenal: {", ".join(unknown)}')
        return list(columns)

    @staticmethod
    def _as_dict(obj, columns):
        return {c: getattr(obj, c) for c in columns}

    def _fail(self, table, action, error):
        self.session.rollback()
        logger.error("RecordStore %s pada tabel %s gagal: %s", action, table, error)
        return RecordStoreError(_pesan_error(error))

    def _get_or_raise(self, model, record_id):
        obj = self.session.get(model, record_id)
        if obj is None:
            raise RecordNotFoundError('Data tidak ditemukan.')
        return obj

    def select(self, table, columns=None, filters=None, order_by=None, descending=False):
        model = self._model(table)
        columns = self._columns(model, columns)
        if filters:
            self._columns(model, filters.keys())
        if order_by:
            self._columns(model, [order_by])

        try:
            query = self.session.query(model)
            if filters:
                query = query.filter_by(**filters)
            if order_by:
                column = getattr(model, order_by)
                query = query.order_by(column.desc() if descending else column.asc())
            return [self._as_dict(obj, columns) for obj in query.all()]
        except SQLAlchemyError as e:
            raise self._fail(table, 'select', e) from e

    def get(self, table, record_id, columns=None):
        model = self._model(table)
        columns = self._columns(model, columns)
        try:
            return self._as_dict(self._get_or_raise(model, record_id), columns)
        except SQLAlchemyError as e:
            raise self._fail(table, 'get', e) from e

    def insert(self, table, values):
        model = self._model(table)
        self._columns(model, values.keys())
        try:
            obj = model(**values)
            self.session.add(obj)
            self.session.commit()
            return self._as_dict(obj, self._columns(model))
        except SQLAlchemyError as e:
            raise self._fail(table, 'insert', e) from e

    def update(self, table, record_id, values):
        model = self._model(table)
        self._columns(model, values.keys())
        try:
            obj = self._get_or_raise(model, record_id)
            for key, value in values.items():
                setattr(obj, key, value)
            self.session.commit()
            return self._as_dict(obj, self._columns(model))
        except SQLAlchemyError as e:
            raise self._fail(table, 'update', e) from e

    def delete(self, table, record_id):
        model = self._model(table)
        try:
            obj = self._get_or_raise(model, record_id)
            self.session.delete(obj)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._fail(table, 'delete', e) from e


class BlobStore:
    """Penyimpanan berkas di disk, dialamatkan dengan kunci ``a/b.ext``."""

    def __init__(self, root):
        self.root = root

    def _path(self, key):
        parts = key.split('/') if key else []
        path = safe_join(self.root, *parts) if parts and all(parts) else None
        if path is None:
            raise BlobStoreError('Kunci berkas tidak valid.')
        return path

    def upload(self, key, data):
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            # Mode 'x': kunci yang sudah dipakai tidak boleh ditimpa
            with open(path, 'xb') as fh:
                fh.write(data)
        except FileExistsError:
            raise BlobStoreError('Berkas dengan kunci tersebut sudah ada.') from None
        except OSError as e:
            logger.error("Gagal menulis berkas %s: %s", key, e)
            raise BlobStoreError(f'Gagal menyimpan berkas: {e.strerror}') from e
        return key

    def download(self, key):
        path = self._path(key)
        try:
            with open(path, 'rb') as fh:
                return fh.read()
        except FileNotFoundError:
            raise BlobStoreError('File tidak ditemukan di server.') from None
        except OSError as e:
            logger.error("Gagal membaca berkas %s: %s", key, e)
            raise BlobStoreError(f'Gagal membaca berkas: {e.strerror}') from e
