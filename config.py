import os
import tempfile
from dotenv import load_dotenv

# Menentukan direktori dasar proyek
basedir = os.path.abspath(os.path.dirname(__file__))
# Memuat environment variables dari file .env
load_dotenv(os.path.join(basedir, '.env'))


class Config:
    # Mengambil SECRET_KEY dari environment variable, dengan nilai default jika tidak ditemukan
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'kunci-rahasia-default-jika-tidak-ada-env'

    # Mengambil URL database dari environment variable
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
                              'sqlite:///' + os.path.join(basedir, 'si_prima_fallback.db')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Penyimpanan berkas pegawai (kunci: <id_pegawai>/<timestamp>.<ekstensi>)
    UPLOAD_FOLDER_BERKAS = os.environ.get('UPLOAD_FOLDER_BERKAS') or \
                           os.path.join(basedir, 'uploads/berkas')

    # Tipe MIME yang diizinkan: PDF, Word (doc/docx), Excel (xls/xlsx)
    ALLOWED_MIME_TYPES_BERKAS = (
        'application/pdf',
        'application/msword',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
        'application/vnd.ms-excel',
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    )
    MAX_UKURAN_BERKAS = 10485760  # 10 MiB

    # Batas body request sedikit di atas batas berkas (field form ikut terkirim)
    MAX_CONTENT_LENGTH = MAX_UKURAN_BERKAS + 64 * 1024

    # Sesi dianggap kedaluwarsa jika tidak ada aktivitas selama N menit
    SESSION_IDLE_TIMEOUT = int(os.environ.get('SESSION_IDLE_TIMEOUT', 480))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'kunci-rahasia-test'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    UPLOAD_FOLDER_BERKAS = os.path.join(tempfile.gettempdir(), 'si_prima_test_berkas')
    LOG_FILE = None
