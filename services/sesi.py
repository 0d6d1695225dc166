"""Sesi login: konteks sesi, gerbang halaman, dan layanan autentikasi.

``SessionContext`` membungkus penyimpanan sesi (Flask ``session`` di aplikasi,
``dict`` biasa di test) dan memberi tahu pelanggan setiap kali sesi berubah.
``SessionGate`` berlangganan ke konteks tersebut dan menentukan ke mana
pengunjung harus dialihkan.
"""
import logging
import time
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.user import User
from services.errors import AuthError

logger = logging.getLogger(__name__)

SIGNED_IN = 'SIGNED_IN'
SIGNED_OUT = 'SIGNED_OUT'
TOKEN_REFRESHED = 'TOKEN_REFRESHED'

Sesi = namedtuple('Sesi', ['user_id', 'email', 'refreshed_at'])

_SESSION_KEYS = ('user_id', 'email', 'sesi_diperbarui')


class Subscription:
    def __init__(self, context, callback):
        self._context = context
        self.callback = callback

    def unsubscribe(self):
        self._context._unsubscribe(self)


class SessionContext:
    def __init__(self, store, idle_timeout=None, clock=time.time):
        self._store = store
        self.idle_timeout = idle_timeout  # dalam detik, None = tanpa batas
        self._clock = clock
        self._subscribers = []

    @property
    def current(self):
        user_id = self._store.get('user_id')
        if not user_id:
            return None
        return Sesi(user_id, self._store.get('email'), self._store.get('sesi_diperbarui'))

    @property
    def subscriber_count(self):
        return len(self._subscribers)

    def subscribe(self, callback):
        subscription = Subscription(self, callback)
        self._subscribers.append(subscription)
        return subscription

    def _unsubscribe(self, subscription):
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def _notify(self, event):
        sesi = self.current
        for subscription in list(self._subscribers):
            subscription.callback(event, sesi)

    def establish(self, user_id, email):
        self._store['user_id'] = user_id
        self._store['email'] = email
        self._store['sesi_diperbarui'] = self._clock()
        self._notify(SIGNED_IN)

    def clear(self):
        for key in _SESSION_KEYS:
            self._store.pop(key, None)
        self._notify(SIGNED_OUT)

    def refresh(self):
        """Perbarui waktu aktivitas; sesi yang menganggur terlalu lama diakhiri."""
        sesi = self.current
        if sesi is None:
            return None

        now = self._clock()
        if self.idle_timeout and sesi.refreshed_at is not None \
                and now - sesi.refreshed_at > self.idle_timeout:
            logger.info("Sesi %s kedaluwarsa karena tidak aktif", sesi.email)
            self.clear()
            return None

        self._store['sesi_diperbarui'] = now
        self._notify(TOKEN_REFRESHED)
        return self.current


class SessionGate:
    """Menentukan apakah sebuah halaman boleh ditampilkan.

    Gerbang ``protected`` mengalihkan pengunjung tanpa sesi ke halaman login;
    gerbang halaman login (``protected=False``) mengalihkan pengguna yang
    sudah login ke dashboard. Dievaluasi ulang pada setiap perubahan sesi
    selama gerbang terbuka.
    """

    def __init__(self, context, protected=True, login_endpoint='auth', home_endpoint='dashboard'):
        self.context = context
        self.protected = protected
        self.login_endpoint = login_endpoint
        self.home_endpoint = home_endpoint
        self.redirect_to = None
        self._subscription = None

    def open(self):
        if self._subscription is None:
            self._subscription = self.context.subscribe(self._on_change)
        self._evaluate(self.context.current)
        return self

    def close(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def permits(self):
        return self.redirect_to is None

    def _on_change(self, event, sesi):
        self._evaluate(sesi)

    def _evaluate(self, sesi):
        if self.protected:
            self.redirect_to = None if sesi else self.login_endpoint
        else:
            self.redirect_to = self.home_endpoint if sesi else None


class AuthService:
    MIN_PASSWORD_LENGTH = 6

    def __init__(self, context, session=None):
        self.context = context
        self.session = session or db.session

    def _find_user(self, email):
        return self.session.query(User).filter_by(email=email).first()

    def sign_up(self, email, password):
        email = (email or '').strip().lower()
        if not email or '@' not in email:
            raise AuthError('Format email tidak valid.')
        if len(password or '') < self.MIN_PASSWORD_LENGTH:
            raise AuthError(f'Password minimal {self.MIN_PASSWORD_LENGTH} karakter.')

        try:
            if self._find_user(email):
                raise AuthError('Email sudah terdaftar.')
            user = User(email=email)
            user.set_password(password)
            self.session.add(user)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Gagal membuat akun %s: %s", email, e)
            raise AuthError('Gagal membuat akun.') from e

        logger.info("Akun baru dibuat: %s", email)
        return user

    def sign_in(self, email, password):
        email = (email or '').strip().lower()
        try:
            user = self._find_user(email)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise AuthError('Gagal memeriksa akun.') from e

        if user is None or not user.check_password(password or ''):
            raise AuthError('Email atau password salah.')

        self.context.establish(user.id, user.email)
        logger.info("Login: %s", user.email)
        return user

    def sign_out(self):
        sesi = self.context.current
        self.context.clear()
        if sesi:
            logger.info("Logout: %s", sesi.email)

    def current_user(self):
        sesi = self.context.current
        if sesi is None:
            return None
        try:
            user = self.session.get(User, sesi.user_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Gagal memeriksa akun %s: %s", sesi.email, e)
            raise AuthError('Gagal memeriksa akun.') from e
        if user is None:
            # Akun sudah tidak ada, sesi lama tidak berlaku lagi
            self.context.clear()
        return user
