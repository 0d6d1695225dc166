import io
import logging
import os
from functools import wraps
from logging.handlers import RotatingFileHandler

from flask import (Flask, render_template, request, redirect, url_for, flash,
                   session, send_file, g)
from flask_migrate import Migrate
from dotenv import load_dotenv

load_dotenv()

# Impor Model dan Layanan
from models import db
from models.pegawai import JENIS_KELAMIN_OPTIONS
from models.user import User  # noqa: F401  (tabel users harus terdaftar sebelum create_all)
from models.berkas import BerkasPegawai  # noqa: F401
from services.errors import AuthError
from services.penyimpanan import RecordStore, BlobStore
from services.sesi import SessionContext, SessionGate, AuthService
from services.pegawai import PegawaiForm, RosterManager, RecordEditor
from services.berkas import BerkasUnggahan, DocumentUploader, DetailViewer
from services.laporan import ReportExporter
from utils.format import format_tanggal, format_ukuran


def configure_logging(app):
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    log_file = app.config.get('LOG_FILE')
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        file_handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        logging.getLogger().addHandler(file_handler)


# --- Inisialisasi Aplikasi ---
app = Flask(__name__)
app.config.from_object(os.environ.get('SI_PRIMA_CONFIG', 'config.Config'))
configure_logging(app)
logger = logging.getLogger(__name__)

# --- Inisialisasi Ekstensi ---
db.init_app(app)
migrate = Migrate(app, db)

# Membuat folder upload jika belum ada
os.makedirs(app.config['UPLOAD_FOLDER_BERKAS'], exist_ok=True)


# --- Penyimpanan & Sesi ---
def record_store():
    return RecordStore(db.session)


def blob_store():
    return BlobStore(app.config['UPLOAD_FOLDER_BERKAS'])


def auth_service():
    return AuthService(g.sesi)


@app.before_request
def muat_sesi():
    g.sesi = SessionContext(session, idle_timeout=app.config['SESSION_IDLE_TIMEOUT'] * 60)
    g.sesi.refresh()


# --- Helper Functions & Decorators ---
def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        with SessionGate(g.sesi) as gate:
            if not gate.permits:
                flash('Silakan login untuk mengakses halaman ini.', 'warning')
                return redirect(url_for(gate.redirect_to))
            return f(*args, **kwargs)

    return decorated_function


def kirim_berkas(content, filename, mimetype):
    return send_file(io.BytesIO(content), mimetype=mimetype, as_attachment=True,
                     download_name=filename)


# Daftarkan filter ke Jinja2
app.jinja_env.filters['tanggal'] = format_tanggal
app.jinja_env.filters['ukuran'] = format_ukuran


@app.context_processor
def inject_sesi():
    return {'sesi': g.sesi.current if 'sesi' in g else None}


# --- Rute Autentikasi ---
@app.route('/')
def index():
    return render_template('index.html')


@app.route('/auth', methods=['GET', 'POST'])
def auth():
    # Jika sudah login, arahkan ke dashboard
    with SessionGate(g.sesi, protected=False) as gate:
        if not gate.permits:
            return redirect(url_for(gate.redirect_to))

        mode = request.values.get('mode', 'login')
        email = ''
        if request.method == 'POST':
            email = request.form.get('email', '')
            password = request.form.get('password', '')
            try:
                if mode == 'daftar':
                    auth_service().sign_up(email, password)
                    flash('Akun berhasil dibuat! Silakan login.', 'success')
                    mode = 'login'
                else:
                    auth_service().sign_in(email, password)
                    flash('Berhasil login!', 'success')
            except AuthError as e:
                flash(e.message or 'Terjadi kesalahan', 'danger')

            # Gerbang sudah dievaluasi ulang jika login berhasil
            if not gate.permits:
                return redirect(url_for(gate.redirect_to))

        return render_template('auth.html', mode=mode, email=email)


@app.route('/logout')
def logout():
    auth_service().sign_out()
    flash('Berhasil logout', 'success')
    return redirect(url_for('auth'))


# --- Rute Pegawai ---
@app.route('/dashboard')
@login_required
def dashboard():
    search_query = request.args.get('q', '')
    roster = RosterManager(record_store(), flash)
    roster.load()
    return render_template('dashboard.html',
                           employees=roster.search(search_query),
                           search_query=search_query,
                           empty_message=roster.empty_message(search_query),
                           # Untuk penyaringan langsung di browser
                           pesan_kosong=RosterManager.PESAN_KOSONG,
                           pesan_tidak_cocok=RosterManager.PESAN_TIDAK_COCOK)


@app.route('/pegawai/<pegawai_id>/hapus', methods=['POST'])
@login_required
def hapus_pegawai(pegawai_id):
    roster = RosterManager(record_store(), flash)
    roster.delete(pegawai_id, confirmed=request.form.get('konfirmasi') == 'ya')
    return redirect(url_for('dashboard'))


@app.route('/data-pegawai', methods=['GET', 'POST'])
@login_required
def data_pegawai():
    edit_id = request.args.get('edit')
    editor = RecordEditor(record_store(), auth_service(), flash)

    if request.method == 'POST':
        form = PegawaiForm.from_mapping(request.form)
        if editor.submit(form, edit_id):
            return redirect(url_for('dashboard'))
    elif edit_id:
        form = editor.load(edit_id)
    else:
        form = PegawaiForm.empty()

    return render_template('data_pegawai.html',
                           form=form,
                           edit_id=edit_id,
                           jenis_kelamin_options=JENIS_KELAMIN_OPTIONS)


@app.route('/detail/<pegawai_id>')
@login_required
def detail_pegawai(pegawai_id):
    viewer = DetailViewer(record_store(), blob_store(), flash)
    pegawai = viewer.load(pegawai_id)
    if pegawai is None:
        return redirect(url_for('dashboard'))
    files = viewer.load_files(pegawai_id)
    return render_template('detail.html', pegawai=pegawai, files=files)


# --- Rute Berkas ---
@app.route('/upload-berkas', methods=['GET', 'POST'])
@login_required
def upload_berkas():
    uploader = DocumentUploader(record_store(), blob_store(), auth_service(), flash,
                                allowed_types=app.config['ALLOWED_MIME_TYPES_BERKAS'],
                                max_size=app.config['MAX_UKURAN_BERKAS'])

    if request.method == 'POST':
        uploader.select_employee(request.form.get('pegawai_id'))
        berkas = BerkasUnggahan.from_file_storage(request.files.get('berkas'))
        # File yang ditolak saat dipilih tidak ikut diunggah
        if berkas is None or uploader.select_file(berkas):
            uploader.upload()
        return redirect(url_for('upload_berkas'))

    uploader.load_employees()
    return render_template('upload_berkas.html', employees=uploader.employees)


@app.route('/detail/<pegawai_id>/berkas/<berkas_id>')
@login_required
def unduh_berkas(pegawai_id, berkas_id):
    viewer = DetailViewer(record_store(), blob_store(), flash)
    hasil = viewer.download(pegawai_id, berkas_id)
    if hasil is None:
        return redirect(url_for('detail_pegawai', pegawai_id=pegawai_id))
    berkas, data = hasil
    return kirim_berkas(data, berkas['file_name'], berkas['file_type'])


@app.errorhandler(413)
def berkas_terlalu_besar(e):
    flash('Ukuran file maksimal 10MB', 'danger')
    return redirect(url_for('upload_berkas'))


# --- Rute Laporan ---
@app.route('/laporan')
@login_required
def laporan():
    exporter = ReportExporter(record_store(), flash)
    exporter.fetch()
    return render_template('laporan.html', employees=exporter.employees)


@app.route('/laporan/export')
@login_required
def export_laporan():
    exporter = ReportExporter(record_store(), flash)
    exporter.fetch()
    export = exporter.export_csv()
    if export is None:
        return redirect(url_for('laporan'))
    return kirim_berkas(export.content, export.filename, export.mimetype)


@app.route('/laporan/export-excel')
@login_required
def export_laporan_excel():
    exporter = ReportExporter(record_store(), flash)
    exporter.fetch()
    export = exporter.export_xlsx()
    if export is None:
        return redirect(url_for('laporan'))
    return kirim_berkas(export.content, export.filename, export.mimetype)


@app.errorhandler(404)
def halaman_tidak_ditemukan(e):
    return render_template('404.html'), 404


# --- Perintah CLI ---
@app.cli.command("init-db")
def init_db():
    """Membuat semua tabel (tanpa migrasi)."""
    db.create_all()
    print("Tabel database berhasil dibuat.")


@app.cli.command("create-user")
def create_user():
    """Membuat akun pengguna baru."""
    import getpass
    email = input("Masukkan email: ")
    # Validasi email tidak boleh kosong
    if not email:
        print("Error: Email tidak boleh kosong.")
        return

    password = getpass.getpass("Masukkan password: ")

    try:
        user = AuthService(SessionContext({})).sign_up(email, password)
        print(f"Akun '{user.email}' berhasil dibuat.")
    except AuthError as e:
        print(f"Gagal membuat akun. Error: {e.message}")


# --- Main execution ---
if __name__ == '__main__':
    # Gunakan host='0.0.0.0' jika ingin diakses dari jaringan lokal
    app.run(debug=True, host='0.0.0.0', port=5000)
