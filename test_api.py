"""JSON API: admin client management and the signed-in client's own endpoints."""
from sqlalchemy.exc import OperationalError

from conftest import ADMIN_EMAIL, add_client, add_user, sign_in
from dental_loyalty.models.auth import ROLE_CLIENT
from dental_loyalty.models.ledger import PointsAdjustment, SpendingRecord
from dental_loyalty.services import accounts, loyalty


# ── Guard ──────────────────────────────────────────────────
def test_api_requires_session(client):
    assert client.get("/api/clients").status_code == 401
    assert client.get("/api/me").status_code == 401


def test_client_cannot_use_admin_api(patient_client):
    resp = patient_client.get("/api/clients")
    assert resp.status_code == 403
    assert "admin" in resp.json()["detail"]


def test_admin_cannot_use_client_api(admin_client):
    assert admin_client.get("/api/me/client").status_code == 403


# ── Client CRUD ────────────────────────────────────────────
def test_create_and_fetch_client(admin_client):
    resp = admin_client.post("/api/clients", json={"name": " Ann Lee ", "phone_number": "555-1000"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["name"] == "Ann Lee"
    assert body["points"] == 0
    assert body["client_id"]

    got = admin_client.get(f"/api/clients/{body['client_id']}")
    assert got.status_code == 200
    assert got.json()["phone_number"] == "555-1000"


def test_create_rejects_blank_fields(admin_client):
    resp = admin_client.post("/api/clients", json={"name": "Ann", "phone_number": "   "})
    assert resp.status_code == 422

    resp = admin_client.post("/api/clients", json={"name": "Ann", "phone_number": "1", "total_spent": "-1"})
    assert resp.status_code == 422


def test_list_is_sorted_and_searchable(admin_client, db):
    add_client(db, name="Zed", phone="555-9")
    add_client(db, name="Ben", phone="555-1")

    names = [c["name"] for c in admin_client.get("/api/clients").json()]
    assert names == ["Ben", "Zed"]

    found = admin_client.get("/api/clients", params={"q": "555-9"}).json()
    assert [c["name"] for c in found] == ["Zed"]


def test_patch_updates_only_sent_fields(admin_client, patient):
    resp = admin_client.patch(f"/api/clients/{patient.client_id}", json={"points": 99})
    assert resp.status_code == 200
    body = resp.json()
    assert body["points"] == 99
    assert body["name"] == "Jane Doe"
    assert body["total_spent"] == "50.00"


def test_patch_rejects_blank_name(admin_client, patient):
    resp = admin_client.patch(f"/api/clients/{patient.client_id}", json={"name": ""})
    assert resp.status_code == 422


def test_unknown_client_is_404(admin_client):
    assert admin_client.get("/api/clients/nope").status_code == 404
    assert admin_client.patch("/api/clients/nope", json={"points": 1}).status_code == 404
    assert admin_client.post("/api/clients/nope/points", json={"points": 1}).status_code == 404


def test_delete_is_idempotent(admin_client, patient):
    for _ in range(2):
        assert admin_client.delete(f"/api/clients/{patient.client_id}").status_code == 204
    assert admin_client.get("/api/clients").json() == []


# ── Mutations ──────────────────────────────────────────────
def test_points_adjustment_reports_negative_balance(admin_client, db):
    c = add_client(db, points=5)
    resp = admin_client.post(f"/api/clients/{c.client_id}/points", json={"points": -8, "reason": "Correction"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["client"]["points"] == -3
    assert body["warning"] == "Balance is negative (-3 points)"
    assert db.query(PointsAdjustment).count() == 1


def test_zero_points_rejected(admin_client, patient):
    resp = admin_client.post(f"/api/clients/{patient.client_id}/points", json={"points": 0})
    assert resp.status_code == 422


def test_spending_updates_totals(admin_client, db, patient):
    resp = admin_client.post(
        f"/api/clients/{patient.client_id}/spending", json={"amount": "19.99", "description": "Cleaning"}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["client"]["points"] == 29
    assert body["client"]["total_spent"] == "69.99"
    assert body["warning"] is None
    assert db.query(SpendingRecord).count() == 1


def test_spending_rejects_non_positive(admin_client, patient):
    for amount in ("0", "-5", "1.234"):
        resp = admin_client.post(f"/api/clients/{patient.client_id}/spending", json={"amount": amount})
        assert resp.status_code == 422


def test_previews_do_not_write(admin_client, db, patient):
    pts = admin_client.get(f"/api/clients/{patient.client_id}/points/preview", params={"points": -15}).json()
    assert pts == {"current_points": 10, "delta": -15, "new_points": -5, "negative": True}

    spend = admin_client.get(f"/api/clients/{patient.client_id}/spending/preview", params={"amount": "19.99"}).json()
    assert spend["points_earned"] == 19
    assert spend["new_points"] == 29
    assert spend["new_total_spent"] == "69.99"

    assert db.query(PointsAdjustment).count() == 0
    assert db.query(SpendingRecord).count() == 0


def test_history_survives_delete(admin_client, patient):
    cid = patient.client_id
    admin_client.post(f"/api/clients/{cid}/points", json={"points": 3})
    admin_client.post(f"/api/clients/{cid}/spending", json={"amount": "5.00"})
    admin_client.delete(f"/api/clients/{cid}")

    hist = admin_client.get(f"/api/clients/{cid}/history").json()
    assert [a["points"] for a in hist["adjustments"]] == [3]
    assert [s["amount"] for s in hist["spending"]] == ["5.00"]


# ── Login linking ──────────────────────────────────────────
def test_link_login_creates_then_reuses_user(admin_client, patient):
    url = f"/api/clients/{patient.client_id}/login"
    first = admin_client.post(url, json={"email": "Jane@Example.com"})
    assert first.status_code == 200
    assert first.json()["created"] is True
    assert first.json()["email"] == "jane@example.com"

    second = admin_client.post(url, json={"email": "jane@example.com"})
    assert second.json()["created"] is False
    assert second.json()["user_id"] == first.json()["user_id"]


def test_link_login_rejects_admin_email(admin_client, patient):
    resp = admin_client.post(f"/api/clients/{patient.client_id}/login", json={"email": ADMIN_EMAIL})
    assert resp.status_code == 400


def test_linked_email_can_sign_in(admin_client, db, patient):
    admin_client.post(f"/api/clients/{patient.client_id}/login", json={"email": "jane@example.com"})
    admin_client.get("/logout")

    user = accounts.get_user_by_email(db, "jane@example.com")
    sign_in(admin_client, user)
    assert admin_client.get("/api/me/client").json()["client_id"] == patient.client_id


# ── Own endpoints ──────────────────────────────────────────
def test_me_reports_identity(admin_client):
    body = admin_client.get("/api/me").json()
    assert body["email"] == ADMIN_EMAIL
    assert body["role"] == "admin"
    assert body["client_id"] is None


def test_me_for_client(patient_client, patient):
    body = patient_client.get("/api/me").json()
    assert body["role"] == "client"
    assert body["client_id"] == patient.client_id


def test_client_reads_and_patches_own_record(patient_client, patient):
    assert patient_client.get("/api/me/client").json()["points"] == 10

    resp = patient_client.patch("/api/me/client", json={"phone_number": " 555-0111 "})
    assert resp.status_code == 200
    assert resp.json()["phone_number"] == "555-0111"

    resp = patient_client.patch("/api/me/client", json={"phone_number": "555", "points": 1000})
    assert resp.status_code == 422


def test_client_history_starts_empty(patient_client):
    body = patient_client.get("/api/me/history").json()
    assert body["adjustments"] == []
    assert body["spending"] == []


def test_unlinked_client_gets_404(client, db):
    user = add_user(db, "ghost@example.com", ROLE_CLIENT)
    sign_in(client, user)
    resp = client.get("/api/me/client")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Client profile not found"


# ── Bootstrap ──────────────────────────────────────────────
def test_bootstrap_admin_runs_once(db):
    user = accounts.bootstrap_admin(db, "Boss@Clinic.test", "pw-123456", "Boss")
    assert user is not None
    assert user.email == "boss@clinic.test"
    assert accounts.authenticate_admin(db, "boss@clinic.test", "pw-123456") is not None

    assert accounts.bootstrap_admin(db, "other@clinic.test", "pw", "Other") is None


# ── Input bounds and store failures ────────────────────────
def test_points_outside_integer_range_are_rejected(admin_client, patient):
    cid = patient.client_id
    huge = 10**20

    assert admin_client.post(f"/api/clients/{cid}/points", json={"points": huge}).status_code == 422
    assert admin_client.post(f"/api/clients/{cid}/points", json={"points": -huge}).status_code == 422
    assert admin_client.post(
        "/api/clients", json={"name": "A", "phone_number": "1", "points": huge}
    ).status_code == 422
    assert admin_client.patch(f"/api/clients/{cid}", json={"points": huge}).status_code == 422
    assert admin_client.get(f"/api/clients/{cid}/points/preview", params={"points": huge}).status_code == 422

    assert admin_client.get(f"/api/clients/{cid}").json()["points"] == 10


def test_patch_rejects_explicit_nulls(admin_client, patient):
    for field in ("name", "phone_number", "points", "total_spent"):
        resp = admin_client.patch(f"/api/clients/{patient.client_id}", json={field: None})
        assert resp.status_code == 422, field

    body = admin_client.get(f"/api/clients/{patient.client_id}").json()
    assert (body["name"], body["phone_number"]) == ("Jane Doe", "555-0100")


def test_store_failure_answers_503(admin_client, patient, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("UPDATE clients", {}, Exception("database is locked"))

    monkeypatch.setattr(loyalty, "add_spending", broken)

    resp = admin_client.post(f"/api/clients/{patient.client_id}/spending", json={"amount": "5.00"})
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Storage unavailable, try again"
