import uuid
from datetime import datetime, timezone
from . import db


class BerkasPegawai(db.Model):
    __tablename__ = 'employee_files'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Referensi biasa tanpa FK: menghapus pegawai tidak ikut menghapus berkasnya
    employee_id = db.Column(db.String(36), index=True, nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(255), nullable=False)  # kunci di blob store
    file_type = db.Column(db.String(150), nullable=False)
    file_size = db.Column(db.Integer, nullable=False)
    uploaded_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f'<BerkasPegawai {self.file_name}>'
