"""Shared fixtures: in-memory database, app client, signed-in sessions."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["ADMIN_EMAIL"] = ""
os.environ["ADMIN_PASSWORD"] = ""
os.environ["LOGIN_LINK_WEBHOOK_URL"] = ""
os.environ["LOGIN_LINK_DEBUG"] = "0"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from main import app
from dental_loyalty.core.database import Base, SessionLocal, engine
from dental_loyalty.core.security import hash_password, make_login_token
from dental_loyalty.models.auth import ROLE_ADMIN, ROLE_CLIENT, AuthUser, Profile
from dental_loyalty.models.client import Client

ADMIN_EMAIL = "admin@clinic.test"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def add_client(db, name="Jane Doe", phone="555-0100", points=0, total_spent="0.00") -> Client:
    c = Client(name=name, phone_number=phone, points=points, total_spent=Decimal(total_spent))
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def add_user(db, email, role, client_id=None, password=None) -> AuthUser:
    fields = {}
    if password:
        fields["password_salt"], fields["password_hash"] = hash_password(password)
    user = AuthUser(email=email, login_nonce="nonce-" + email, **fields)
    user.profile = Profile(role=role, client_id=client_id)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def sign_in(tc: TestClient, user: AuthUser):
    token = make_login_token(user.id, user.login_nonce)
    return tc.get("/login/verify", params={"token": token}, follow_redirects=False)


@pytest.fixture
def admin_user(db):
    return add_user(db, ADMIN_EMAIL, ROLE_ADMIN, password=ADMIN_PASSWORD)


@pytest.fixture
def admin_client(client, admin_user):
    resp = client.post(
        "/login",
        data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "next": "/admin"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    return client


@pytest.fixture
def patient(db):
    return add_client(db, name="Jane Doe", phone="555-0100", points=10, total_spent="50.00")


@pytest.fixture
def patient_client(client, db, patient):
    user = add_user(db, "jane@example.com", ROLE_CLIENT, client_id=patient.client_id)
    resp = sign_in(client, user)
    assert resp.status_code == 303
    return client
