from datetime import date, datetime

import pytest

from conftest import FakeRecordStore
from services.pegawai import FIELDS, PegawaiForm, RecordEditor, RosterManager, filter_pegawai

EMPLOYEES = [
    {'id': '1', 'nama': 'Ani Lestari', 'nip': '19850101A', 'jabatan': 'Staf Administrasi'},
    {'id': '2', 'nama': 'Budi Santoso', 'nip': '19900202B', 'jabatan': 'Bidan Ahli'},
    {'id': '3', 'nama': 'Citra Dewi', 'nip': '19950303c', 'jabatan': 'Perawat'},
]


def _stored_employee(**overrides):
    row = {
        'id': 'emp-1',
        'nama': 'Ani Lestari',
        'nip': '198501012010012001',
        'jenis_kelamin': 'Perempuan',
        'pangkat_golongan': 'Penata / III/c',
        'tmt_pangkat_golongan': date(2020, 4, 1),
        'jabatan': 'Staf Administrasi',
        'tmt_cpns': date(2010, 1, 1),
        'tmt_pns': date(2011, 1, 1),
        'pendidikan_terakhir': 'S1 Kesehatan Masyarakat',
        'tempat_lahir': 'Bandung',
        'tanggal_lahir': date(1985, 1, 1),
        'kapgek': None,
        'user_id': 'user-1',
        'created_at': datetime(2024, 1, 1),
    }
    row.update(overrides)
    return row


# --- Pencarian ---

def test_empty_query_returns_everything():
    assert filter_pegawai(EMPLOYEES, '') == EMPLOYEES


@pytest.mark.parametrize('query, expected_ids', [
    ('ani', ['1']),
    ('SANTOSO', ['2']),
    ('perawat', ['3']),
    ('staf', ['1']),
    ('1990', ['2']),
    ('a', ['1', '2', '3']),
    ('tidak-ada', []),
])
def test_search_matches_name_position_and_nip(query, expected_ids):
    assert [e['id'] for e in filter_pegawai(EMPLOYEES, query)] == expected_ids


def test_nip_search_is_case_sensitive():
    assert [e['id'] for e in filter_pegawai(EMPLOYEES, '19950303c')] == ['3']
    assert filter_pegawai(EMPLOYEES, '19950303C') == []
    # Huruf besar tetap cocok lewat nama/jabatan
    assert [e['id'] for e in filter_pegawai(EMPLOYEES, 'B')] == ['2']


def test_search_is_exact_subset_property():
    for query in ['', 'a', 'A', 'Bidan', 'b', '0', 'Dewi', '19850101a']:
        q = query.lower()
        expected = [e for e in EMPLOYEES
                    if q in e['nama'].lower() or q in e['jabatan'].lower() or query in e['nip']]
        assert filter_pegawai(EMPLOYEES, query) == expected


# --- Daftar & hapus ---

def test_roster_lists_newest_first(notifier):
    store = FakeRecordStore(employees=[
        _stored_employee(id='lama', created_at=datetime(2023, 1, 1)),
        _stored_employee(id='baru', created_at=datetime(2024, 6, 1)),
    ])
    roster = RosterManager(store, notifier)

    employees = roster.load()

    assert [e['id'] for e in employees] == ['baru', 'lama']
    assert set(employees[0]) == {'id', 'nama', 'nip', 'jabatan'}


def test_roster_load_failure_notifies_and_empties(notifier):
    store = FakeRecordStore(employees=[_stored_employee()])
    store.fail_on.add('select')
    roster = RosterManager(store, notifier)

    assert roster.load() == []
    assert notifier.errors == ['Gagal memuat data pegawai']


def test_delete_without_confirmation_makes_no_call(notifier):
    store = FakeRecordStore(employees=[_stored_employee()])
    roster = RosterManager(store, notifier)

    assert roster.delete('emp-1', confirmed=False) is False
    assert store.calls == []
    assert notifier.messages == []


def test_confirmed_delete_deletes_once_and_refetches(notifier):
    store = FakeRecordStore(employees=[_stored_employee(), _stored_employee(id='emp-2')])
    roster = RosterManager(store, notifier)

    assert roster.delete('emp-1', confirmed=True) is True
    assert store.calls == [('delete', 'employees'), ('select', 'employees')]
    assert [e['id'] for e in roster.employees] == ['emp-2']
    assert notifier.successes == ['Data pegawai berhasil dihapus']


def test_failed_delete_keeps_list(notifier):
    store = FakeRecordStore(employees=[_stored_employee()])
    roster = RosterManager(store, notifier)
    roster.load()
    store.fail_on.add('delete')

    assert roster.delete('emp-1', confirmed=True) is False
    assert [e['id'] for e in roster.employees] == ['emp-1']
    assert store.count('select') == 1
    assert notifier.errors == ['Gagal menghapus data pegawai']


def test_empty_messages_differ():
    assert RosterManager.empty_message('') == 'Belum ada data pegawai'
    assert RosterManager.empty_message('xyz') == 'Tidak ada data yang cocok'


# --- Editor ---

def test_create_with_blank_required_field_never_writes(notifier, auth, data_pegawai):
    store = FakeRecordStore()
    data_pegawai['jabatan'] = ''
    editor = RecordEditor(store, auth, notifier)

    assert editor.submit(PegawaiForm.from_mapping(data_pegawai)) is False
    assert store.calls == []
    assert notifier.errors == ['Jabatan wajib diisi']


def test_create_inserts_with_owner_and_null_kapgek(notifier, auth, data_pegawai):
    store = FakeRecordStore()
    editor = RecordEditor(store, auth, notifier)

    assert editor.submit(PegawaiForm.from_mapping(data_pegawai)) is True

    table, values = store.inserted[0]
    assert table == 'employees'
    assert values['user_id'] == 'user-1'
    assert values['kapgek'] is None
    assert values['tmt_pangkat_golongan'] == date(2020, 4, 1)
    assert notifier.successes == ['Data pegawai berhasil ditambahkan']


def test_create_requires_authenticated_user(notifier, anonymous, data_pegawai):
    store = FakeRecordStore()
    editor = RecordEditor(store, anonymous, notifier)

    assert editor.submit(PegawaiForm.from_mapping(data_pegawai)) is False
    assert store.inserted == []
    assert notifier.errors == ['Pengguna belum terautentikasi.']


def test_store_error_message_is_shown_verbatim(notifier, auth, data_pegawai):
    store = FakeRecordStore()
    store.fail_on.add('insert')
    editor = RecordEditor(store, auth, notifier)

    editor.submit(PegawaiForm.from_mapping(data_pegawai))
    assert notifier.errors == ['koneksi ke database terputus']


def test_store_error_without_message_uses_generic_text(notifier, auth, data_pegawai):
    store = FakeRecordStore()
    store.fail_on.add('insert')
    store.fail_message = ''
    editor = RecordEditor(store, auth, notifier)

    editor.submit(PegawaiForm.from_mapping(data_pegawai))
    assert notifier.errors == ['Gagal menyimpan data']


def test_load_populates_every_field(notifier, auth):
    store = FakeRecordStore(employees=[_stored_employee(kapgek='JF-01')])
    form = RecordEditor(store, auth, notifier).load('emp-1')

    assert form.nama == 'Ani Lestari'
    assert form.tmt_pangkat_golongan == '2020-04-01'
    assert form.kapgek == 'JF-01'


def test_load_failure_keeps_empty_form(notifier, auth):
    form = RecordEditor(FakeRecordStore(), auth, notifier).load('tidak-ada')

    assert form == PegawaiForm.empty()
    assert notifier.errors == ['Gagal memuat data pegawai']


def test_unchanged_resubmit_updates_with_loaded_values(notifier, auth):
    stored = _stored_employee()
    store = FakeRecordStore(employees=[stored])
    editor = RecordEditor(store, auth, notifier)

    form = editor.load('emp-1')
    assert editor.submit(form, pegawai_id='emp-1') is True

    table, record_id, values = store.updated[0]
    assert (table, record_id) == ('employees', 'emp-1')
    assert values == {field: stored[field] for field in FIELDS}
    assert 'user_id' not in values
    assert store.inserted == []
    assert notifier.successes == ['Data pegawai berhasil diperbarui']


def test_account_lookup_failure_is_notified(notifier, broken_auth, data_pegawai):
    store = FakeRecordStore()
    editor = RecordEditor(store, broken_auth, notifier)

    assert editor.submit(PegawaiForm.from_mapping(data_pegawai)) is False
    assert store.calls == []
    assert notifier.errors == ['Gagal memeriksa akun.']
