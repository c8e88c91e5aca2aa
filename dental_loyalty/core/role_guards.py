# dental_loyalty/core/role_guards.py
"""
Role checks for API routes, used via Depends.

The AuthGuardMiddleware already gates by path prefix; these keep every
endpoint safe on its own when mounted under a different prefix.

Roles:
  admin:  full client management
  client: own record and history only
"""
from __future__ import annotations

from fastapi import HTTPException, Request

from dental_loyalty.core.identity import Identity
from dental_loyalty.models.auth import ROLE_ADMIN, ROLE_CLIENT


def current_identity(request: Request) -> Identity | None:
    return getattr(request.state, "identity", None)


def require_any(request: Request) -> Identity:
    identity = current_identity(request)
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return identity


def require_admin(request: Request) -> Identity:
    identity = require_any(request)
    if identity.role != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Access denied. Required role: admin")
    return identity


def require_client(request: Request) -> Identity:
    identity = require_any(request)
    if identity.role != ROLE_CLIENT:
        raise HTTPException(status_code=403, detail="Access denied. Required role: client")
    return identity
