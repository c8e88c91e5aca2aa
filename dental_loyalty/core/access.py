"""Route access decisions for the web pages and the JSON API."""
from __future__ import annotations

import enum
from typing import Optional

from dental_loyalty.core.identity import Identity
from dental_loyalty.models.auth import ROLE_ADMIN, ROLE_CLIENT


class AccessState(str, enum.Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    WRONG_ROLE = "wrong_role"
    GRANTED = "granted"


# path prefix -> role required to see it
PROTECTED_PREFIXES: tuple[tuple[str, Optional[str]], ...] = (
    ("/admin", ROLE_ADMIN),
    ("/api/clients", ROLE_ADMIN),
    ("/client", ROLE_CLIENT),
    ("/api/me", None),  # any signed-in user
)


def required_role_for(path: str) -> tuple[bool, Optional[str]]:
    """Returns (is_protected, required_role) for a request path."""
    for prefix, role in PROTECTED_PREFIXES:
        if path == prefix or path.startswith(prefix + "/"):
            return True, role
    return False, None


def evaluate(identity: Optional[Identity], required_role: Optional[str]) -> AccessState:
    if identity is None:
        return AccessState.UNAUTHENTICATED
    if required_role is not None and identity.role != required_role:
        return AccessState.WRONG_ROLE
    return AccessState.GRANTED
