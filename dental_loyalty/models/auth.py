from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from dental_loyalty.core.database import Base

ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"
ROLES = (ROLE_ADMIN, ROLE_CLIENT)


class AuthUser(Base):
    __tablename__ = "auth_users"

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(120), nullable=True)

    # admins only; clients sign in with one-time links
    password_salt = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=True)

    # rotated whenever a login link is used, which invalidates older links
    login_nonce = Column(String(64), nullable=False, default="")

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    profile = relationship("Profile", back_populates="user", uselist=False)


class Profile(Base):
    """Maps a login subject to its role and, for clients, the client record."""

    __tablename__ = "profiles"

    id = Column(Integer, ForeignKey("auth_users.id"), primary_key=True)

    role = Column(String(16), default=ROLE_CLIENT, nullable=False)

    # plain reference: deleting a client leaves the link dangling
    client_id = Column(String(36), nullable=True, index=True)

    user = relationship("AuthUser", back_populates="profile")
