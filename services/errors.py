class StoreError(Exception):
    """Kesalahan dari penyimpanan data, berkas, atau autentikasi.

    ``message`` adalah pesan yang aman ditampilkan ke pengguna; boleh kosong,
    pemanggil lalu memakai pesan umum sebagai gantinya.
    """

    def __init__(self, message=''):
        super().__init__(message)
        self.message = message


class RecordStoreError(StoreError):
    pass


class RecordNotFoundError(RecordStoreError):
    pass


class BlobStoreError(StoreError):
    pass


class AuthError(StoreError):
    pass
