# dental_loyalty/services/accounts.py
"""Login subjects, their profiles, and the two sign-in paths."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.orm import Session

from dental_loyalty.core.config import settings
from dental_loyalty.core.errors import ValidationFailed
from dental_loyalty.core.security import (
    hash_password,
    make_login_token,
    new_login_nonce,
    normalize_email,
    read_login_token,
    verify_password,
)
from dental_loyalty.models.auth import ROLE_ADMIN, ROLE_CLIENT, AuthUser, Profile
from dental_loyalty.services.clients import get_client

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


def get_user_by_email(db: Session, email: str) -> Optional[AuthUser]:
    email = normalize_email(email)
    if not email:
        return None
    return db.scalar(select(AuthUser).where(AuthUser.email == email))


def _create_user(db: Session, email: str, role: str, **fields) -> AuthUser:
    user = AuthUser(email=normalize_email(email), login_nonce=new_login_nonce(), **fields)
    user.profile = Profile(role=role)
    db.add(user)
    db.flush()
    return user


def mark_login(db: Session, user: AuthUser) -> None:
    user.last_login_at = _now()
    db.commit()


# ── Admin password sign-in ────────────────────────────────────
def authenticate_admin(db: Session, email: str, password: str) -> Optional[AuthUser]:
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_salt, user.password_hash):
        return None
    return user


def bootstrap_admin(db: Session, email: str, password: str, name: str = "Admin") -> Optional[AuthUser]:
    """Creates the first admin. Does nothing once any admin exists."""
    has_admin = db.scalar(select(Profile.id).where(Profile.role == ROLE_ADMIN).limit(1))
    if has_admin is not None:
        return None
    if not normalize_email(email) or not password:
        return None

    user = get_user_by_email(db, email)
    salt, pw_hash = hash_password(password)
    if user is None:
        user = _create_user(db, email, ROLE_ADMIN, name=name, password_salt=salt, password_hash=pw_hash)
    else:
        user.password_salt, user.password_hash = salt, pw_hash
        if user.profile is None:
            user.profile = Profile(role=ROLE_ADMIN)
        else:
            user.profile.role = ROLE_ADMIN
            user.profile.client_id = None
    db.commit()
    db.refresh(user)
    return user


# ── Client one-time links ─────────────────────────────────────
def login_link_for(user: AuthUser) -> str:
    token = make_login_token(user.id, user.login_nonce)
    base = settings.LOGIN_LINK_BASE_URL.rstrip("/")
    return f"{base}/login/verify?{urlencode({'token': token})}"


def request_login_link(db: Session, email: str) -> tuple[AuthUser, str]:
    """Finds or creates the subject for an email and returns a fresh link."""
    email = normalize_email(email)
    if "@" not in email:
        raise ValidationFailed("Please enter a valid email address")

    user = get_user_by_email(db, email)
    if user is None:
        user = _create_user(db, email, ROLE_CLIENT)
        db.commit()
        logger.info("Login subject created for %s", email)
    elif not user.is_active:
        raise ValidationFailed("This account is disabled")

    if not user.login_nonce:
        user.login_nonce = new_login_nonce()
        db.commit()

    return user, login_link_for(user)


def consume_login_token(db: Session, token: str) -> Optional[AuthUser]:
    """Validates a link token and burns it by rotating the user's nonce."""
    parsed = read_login_token(token, max_age_seconds=settings.LOGIN_LINK_TTL_MINUTES * 60)
    if parsed is None:
        return None

    user_id, nonce = parsed
    user = db.get(AuthUser, user_id)
    if user is None or not user.is_active or not user.login_nonce or user.login_nonce != nonce:
        return None

    user.login_nonce = new_login_nonce()
    user.last_login_at = _now()
    db.commit()
    return user


# ── Linking a client record to a login ────────────────────────
def link_client_login(db: Session, client_id: str, email: str) -> tuple[AuthUser, bool]:
    """Returns (user, created). The email then signs in to that client's page."""
    client = get_client(db, client_id)

    email = normalize_email(email)
    if "@" not in email:
        raise ValidationFailed("Please enter a valid email address")

    user = get_user_by_email(db, email)
    created = user is None
    if created:
        user = _create_user(db, email, ROLE_CLIENT, name=client.name)
    elif user.profile is not None and user.profile.role == ROLE_ADMIN:
        raise ValidationFailed("This email belongs to an admin")

    if user.profile is None:
        user.profile = Profile(role=ROLE_CLIENT, client_id=client.client_id)
    else:
        user.profile.client_id = client.client_id

    db.commit()
    db.refresh(user)
    logger.info("Client %s linked to login %s", client.client_id, email)
    return user, created


def linked_emails(db: Session, client_id: str) -> list[str]:
    rows = db.scalars(
        select(AuthUser.email)
        .join(Profile, Profile.id == AuthUser.id)
        .where(Profile.client_id == client_id, Profile.role == ROLE_CLIENT)
        .order_by(AuthUser.email.asc())
    ).all()
    return list(rows)
