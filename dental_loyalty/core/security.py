# dental_loyalty/core/security.py
from __future__ import annotations

import base64
import hashlib
import hmac
import os
import secrets

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from dental_loyalty.core.config import settings

_LOGIN_LINK_SALT = "client-login-link"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def hash_password(password: str) -> tuple[str, str]:
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 200_000)
    return base64.b64encode(salt).decode("ascii"), base64.b64encode(dk).decode("ascii")


def verify_password(password: str, salt_b64: str | None, hash_b64: str | None) -> bool:
    if not salt_b64 or not hash_b64:
        return False
    try:
        salt = base64.b64decode(salt_b64.encode("ascii"))
        expected = base64.b64decode(hash_b64.encode("ascii"))
    except ValueError:
        return False

    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 200_000)
    return hmac.compare_digest(dk, expected)


def new_login_nonce() -> str:
    return secrets.token_urlsafe(16)


def _link_serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.session_secret, salt=_LOGIN_LINK_SALT)


def make_login_token(user_id: int, nonce: str) -> str:
    return _link_serializer().dumps({"uid": user_id, "n": nonce})


def read_login_token(token: str, max_age_seconds: int) -> tuple[int, str] | None:
    """Returns (user_id, nonce) or None for a bad, tampered or expired token."""
    try:
        data = _link_serializer().loads(token, max_age=max_age_seconds)
    except (SignatureExpired, BadSignature):
        return None

    if not isinstance(data, dict):
        return None
    try:
        return int(data["uid"]), str(data["n"])
    except (KeyError, TypeError, ValueError):
        return None


def safe_next(next_url: str | None, default: str = "/") -> str:
    """Only internal paths are allowed as post-login redirects."""
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return default
