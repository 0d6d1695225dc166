import uuid
from datetime import datetime, timezone
from . import db


def _utcnow():
    return datetime.now(timezone.utc)


JENIS_KELAMIN_OPTIONS = ['Laki-laki', 'Perempuan']


class Pegawai(db.Model):
    __tablename__ = 'employees'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    nama = db.Column(db.String(100), nullable=False)
    nip = db.Column(db.String(50), nullable=False)  # unik per organisasi, tidak dipaksakan
    jenis_kelamin = db.Column(db.String(20), nullable=False)
    pangkat_golongan = db.Column(db.String(100), nullable=False)
    tmt_pangkat_golongan = db.Column(db.Date, nullable=False)
    jabatan = db.Column(db.String(150), nullable=False)
    tmt_cpns = db.Column(db.Date, nullable=False)
    tmt_pns = db.Column(db.Date, nullable=False)
    pendidikan_terakhir = db.Column(db.String(100), nullable=False)
    tempat_lahir = db.Column(db.String(100), nullable=False)
    tanggal_lahir = db.Column(db.Date, nullable=False)
    kapgek = db.Column(db.String(100), nullable=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f'<Pegawai {self.nama}>'
