# dental_loyalty/core/identity.py
"""
Resolves who is behind a request.

The session only carries the auth subject id (``uid``). Role and linked client
are read from the profiles table on every request, so an admin's role change
or a newly linked client takes effect without signing out.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_loyalty.models.auth import ROLE_ADMIN, ROLE_CLIENT, ROLES, AuthUser, Profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    id: int
    email: Optional[str]
    role: str
    client_id: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "client_id": self.client_id,
            "name": self.name,
        }


def _session_uid(session: Mapping) -> Optional[int]:
    raw = (session or {}).get("uid")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _lookup_profile(db: Session, user_id: int) -> tuple[Optional[str], Optional[str]]:
    """Returns (role, client_id). A failed lookup reads as "no role"."""
    try:
        profile = db.get(Profile, user_id)
    except SQLAlchemyError:
        logger.warning("Profile lookup failed for user %s, falling back to client role", user_id, exc_info=True)
        db.rollback()
        return None, None

    if profile is None:
        return None, None
    return profile.role, profile.client_id


def resolve_identity(db: Session, session: Mapping) -> Optional[Identity]:
    uid = _session_uid(session)
    if uid is None:
        return None

    user = db.get(AuthUser, uid)
    if user is None or not user.is_active:
        return None

    role, client_id = _lookup_profile(db, user.id)
    if role not in ROLES:
        role = ROLE_CLIENT

    return Identity(
        id=user.id,
        email=user.email,
        role=role,
        # only clients carry a client link
        client_id=client_id if role == ROLE_CLIENT else None,
        name=user.name,
    )
