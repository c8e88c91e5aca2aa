"""Identity resolution and access decisions."""
import pytest
from sqlalchemy.exc import OperationalError

from conftest import add_client, add_user
from dental_loyalty.core.access import AccessState, evaluate, required_role_for
from dental_loyalty.core.identity import Identity, resolve_identity
from dental_loyalty.models.auth import ROLE_ADMIN, ROLE_CLIENT, AuthUser, Profile


def test_no_session_or_unknown_user_resolves_to_none(db):
    assert resolve_identity(db, {}) is None
    assert resolve_identity(db, {"uid": "not-a-number"}) is None
    assert resolve_identity(db, {"uid": 999}) is None


def test_inactive_user_resolves_to_none(db):
    user = add_user(db, "off@example.com", ROLE_CLIENT)
    user.is_active = False
    db.commit()

    assert resolve_identity(db, {"uid": user.id}) is None


def test_client_identity_carries_linked_client(db):
    c = add_client(db)
    user = add_user(db, "c@example.com", ROLE_CLIENT, client_id=c.client_id)

    identity = resolve_identity(db, {"uid": user.id})
    assert identity == Identity(id=user.id, email="c@example.com", role="client", client_id=c.client_id)


def test_admin_identity_never_carries_client_id(db):
    user = add_user(db, "a@example.com", ROLE_ADMIN, client_id="stray")

    identity = resolve_identity(db, {"uid": user.id})
    assert identity.role == "admin"
    assert identity.is_admin
    assert identity.client_id is None


def test_missing_profile_defaults_to_client_without_record(db):
    user = AuthUser(email="bare@example.com", login_nonce="n")
    db.add(user)
    db.commit()

    identity = resolve_identity(db, {"uid": user.id})
    assert identity.role == "client"
    assert identity.client_id is None


def test_profile_lookup_failure_degrades_to_client(db, monkeypatch):
    c = add_client(db)
    user = add_user(db, "x@example.com", ROLE_ADMIN, client_id=c.client_id)
    real_get = db.get

    def flaky_get(model, ident, **kw):
        if model is Profile:
            raise OperationalError("SELECT profiles", {}, Exception("connection reset"))
        return real_get(model, ident, **kw)

    monkeypatch.setattr(db, "get", flaky_get)

    identity = resolve_identity(db, {"uid": user.id})
    assert identity.role == "client"
    assert identity.client_id is None


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/admin", (True, "admin")),
        ("/admin/clients/new", (True, "admin")),
        ("/api/clients/abc", (True, "admin")),
        ("/client", (True, "client")),
        ("/client/phone", (True, "client")),
        ("/api/me", (True, None)),
        ("/clientele", (False, None)),
        ("/login", (False, None)),
        ("/", (False, None)),
    ],
)
def test_required_role_for(path, expected):
    assert required_role_for(path) == expected


def test_evaluate_states():
    admin = Identity(id=1, email="a@x", role="admin")
    patient = Identity(id=2, email="c@x", role="client", client_id="c1")

    assert evaluate(None, "admin") is AccessState.UNAUTHENTICATED
    assert evaluate(None, None) is AccessState.UNAUTHENTICATED
    assert evaluate(patient, "admin") is AccessState.WRONG_ROLE
    assert evaluate(admin, "client") is AccessState.WRONG_ROLE
    assert evaluate(admin, "admin") is AccessState.GRANTED
    assert evaluate(patient, None) is AccessState.GRANTED
