import binascii
import hashlib
import hmac
import logging
import os
import sqlite3
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import jwt
from pydantic import BaseModel

from .store import Store, utcnow

logger = logging.getLogger(__name__)

JWT_ALG = "HS256"

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

AuthCallback = Callable[[str, Optional["Session"]], None]


def get_jwt_secret() -> str:
    return os.getenv("JWT_SECRET", "please_change_this_secret")


def get_expires_days() -> int:
    try:
        return int(os.getenv("JWT_EXPIRES_DAYS", "7"))
    except ValueError:
        return 7


class AuthError(Exception):
    """Auth failure; the message is shown to the user as-is."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class User(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None


class Session(BaseModel):
    access_token: str
    user: User
    expires_at: datetime


class SignUpResult(BaseModel):
    user: User
    confirmation_token: str


def _hash_password(password: str, salt: Optional[bytes] = None) -> Dict[str, str]:
    if salt is None:
        salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 100_000)
    return {"hash": binascii.hexlify(dk).decode("ascii"), "salt": binascii.hexlify(salt).decode("ascii")}


def _verify_password(password: str, salt_hex: str, hash_hex: str) -> bool:
    salt = binascii.unhexlify(salt_hex)
    expected = binascii.unhexlify(hash_hex)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 100_000)
    return hmac.compare_digest(dk, expected)


class AuthProvider:
    """Email/password accounts with JWT sessions and change notifications.

    Accounts live next to the application tables; every new account gets a
    profile row in the given `Store`.
    """

    def __init__(self, store: Store, secret: Optional[str] = None, expires_days: Optional[int] = None):
        self.store = store
        self.secret = secret or get_jwt_secret()
        self.expires_days = expires_days if expires_days is not None else get_expires_days()
        self._subscribers: List[AuthCallback] = []
        self._subscribers_lock = threading.Lock()
        self.init_db()

    def _get_conn(self):
        conn = sqlite3.connect(self.store.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self):
        conn = self._get_conn()
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                salt TEXT NOT NULL,
                full_name TEXT,
                confirmed_at TEXT,
                created_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS revoked_tokens (
                jti TEXT PRIMARY KEY,
                revoked_at TEXT NOT NULL
            )
            """
        )
        conn.commit()
        conn.close()

    # -- subscriptions ---------------------------------------------------

    def on_auth_state_change(self, callback: AuthCallback) -> Callable[[], None]:
        """Register `callback(event, session)`; returns an unsubscribe function."""
        with self._subscribers_lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._subscribers_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, event: str, session: Optional[Session]):
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event, session)
            except Exception:
                logger.exception("[auth] subscriber failed for %s", event)

    # -- tokens ----------------------------------------------------------

    def _encode(self, user: User, purpose: str, expires: timedelta) -> Dict[str, Any]:
        exp = datetime.now(timezone.utc) + expires
        payload = {
            "sub": user.id,
            "email": user.email,
            "purpose": purpose,
            "jti": uuid.uuid4().hex,
            "exp": exp,
        }
        return {"token": jwt.encode(payload, self.secret, algorithm=JWT_ALG), "exp": exp}

    def _decode(self, token: str, purpose: str) -> Optional[Dict[str, Any]]:
        try:
            data = jwt.decode(token, self.secret, algorithms=[JWT_ALG])
        except jwt.PyJWTError:
            return None
        if data.get("purpose") != purpose:
            return None
        return data

    def _is_revoked(self, jti: str) -> bool:
        conn = self._get_conn()
        row = conn.execute("SELECT 1 FROM revoked_tokens WHERE jti = ?", (jti,)).fetchone()
        conn.close()
        return row is not None

    def _revoke(self, jti: str):
        conn = self._get_conn()
        conn.execute("INSERT OR IGNORE INTO revoked_tokens (jti, revoked_at) VALUES (?, ?)", (jti, utcnow()))
        conn.commit()
        conn.close()

    def _new_session(self, user: User) -> Session:
        encoded = self._encode(user, "access", timedelta(days=self.expires_days))
        return Session(access_token=encoded["token"], user=user, expires_at=encoded["exp"])

    # -- users -----------------------------------------------------------

    def _get_user_row(self, email: Optional[str] = None, user_id: Optional[str] = None):
        conn = self._get_conn()
        if email is not None:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email.strip().lower(),)).fetchone()
        else:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        conn.close()
        return row

    @staticmethod
    def _user_from_row(row) -> User:
        return User(id=row["id"], email=row["email"], full_name=row["full_name"])

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> SignUpResult:
        """Create an unconfirmed account and return its confirmation challenge."""
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise AuthError("Unable to validate email address: invalid format")
        if not password or len(password) < 6:
            raise AuthError("Password should be at least 6 characters")

        parts = _hash_password(password)
        user = User(id=str(uuid.uuid4()), email=email, full_name=full_name)
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO users (id, email, password_hash, salt, full_name, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (user.id, email, parts["hash"], parts["salt"], full_name, utcnow()),
            )
            conn.commit()
        except sqlite3.IntegrityError:
            raise AuthError("User already registered")
        finally:
            conn.close()

        self.store.create_profile(user.id, full_name)
        challenge = self._encode(user, "confirm", timedelta(days=1))
        logger.info("[auth] sign-up pending confirmation for user=%s", user.id)
        return SignUpResult(user=user, confirmation_token=challenge["token"])

    def confirm(self, confirmation_token: str) -> Session:
        """Confirm the email behind `confirmation_token` and sign the user in."""
        data = self._decode(confirmation_token, "confirm")
        if not data:
            raise AuthError("Invalid or expired token", status_code=401)
        row = self._get_user_row(user_id=data["sub"])
        if not row:
            raise AuthError("User not found", status_code=404)
        if not row["confirmed_at"]:
            conn = self._get_conn()
            conn.execute("UPDATE users SET confirmed_at = ? WHERE id = ?", (utcnow(), row["id"]))
            conn.commit()
            conn.close()
        session = self._new_session(self._user_from_row(row))
        self._notify(SIGNED_IN, session)
        return session

    def sign_in(self, email: str, password: str) -> Session:
        row = self._get_user_row(email=email or "")
        if not row or not _verify_password(password or "", row["salt"], row["password_hash"]):
            raise AuthError("Invalid login credentials")
        if not row["confirmed_at"]:
            raise AuthError("Email not confirmed")
        session = self._new_session(self._user_from_row(row))
        self._notify(SIGNED_IN, session)
        return session

    def get_session(self, access_token: Optional[str]) -> Optional[Session]:
        """Return the live session for `access_token`, or None."""
        if not access_token:
            return None
        data = self._decode(access_token, "access")
        if not data or self._is_revoked(data.get("jti", "")):
            return None
        row = self._get_user_row(user_id=data.get("sub"))
        if not row:
            return None
        expires_at = datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        return Session(access_token=access_token, user=self._user_from_row(row), expires_at=expires_at)

    def sign_out(self, access_token: Optional[str]):
        session = self.get_session(access_token)
        if session is None:
            return
        data = self._decode(access_token, "access")
        self._revoke(data["jti"])
        self._notify(SIGNED_OUT, session)
