# dental_loyalty/web/admin.py
"""Admin roster and the client forms behind it (POST-redirect-GET)."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from dental_loyalty.core.database import SessionLocal
from dental_loyalty.core.errors import ClientNotFound, ValidationFailed
from dental_loyalty.core.loyalty_rules import POINTS_MAX, POINTS_MIN
from dental_loyalty.schemas.client import ClientCreate, ClientUpdate
from dental_loyalty.schemas.loyalty import PointsAdjustmentIn, SpendingIn
from dental_loyalty.services import accounts, clients as clients_service, loyalty
from dental_loyalty.web.render import first_error, redirect_with, render

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")

NOT_FOUND = "Client not found"


def _parse_int(raw: str) -> int | None:
    try:
        value = int((raw or "").strip())
    except ValueError:
        return None
    return value if POINTS_MIN <= value <= POINTS_MAX else None


def _parse_amount(raw: str) -> Decimal | None:
    try:
        value = Decimal((raw or "").strip())
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


# ── Roster ─────────────────────────────────────────────────
@router.get("", response_class=HTMLResponse)
@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def admin_roster(request: Request, q: str = ""):
    db = SessionLocal()
    try:
        all_clients = clients_service.list_clients(db)
        shown = clients_service.list_clients(db, search=q) if q.strip() else all_clients
        return render(
            request,
            "admin/roster.html",
            clients=shown,
            totals=clients_service.roster_totals(all_clients),
            q=q,
            page_title="Admin Dashboard",
        )
    finally:
        db.close()


# ── Create / edit ──────────────────────────────────────────
def _render_form(request: Request, *, client=None, values: dict, error: str | None = None,
                 linked: list[str] | None = None, status_code: int = 200):
    return render(
        request,
        "admin/client_form.html",
        status_code=status_code,
        client=client,
        values=values,
        error=error,
        linked_emails=linked or [],
        page_title="Edit Client" if client else "New Client",
    )


@router.get("/clients/new", response_class=HTMLResponse)
def new_client_form(request: Request):
    return _render_form(request, values={"name": "", "phone_number": "", "points": "0", "total_spent": "0"})


@router.post("/clients")
def create_client(
    request: Request,
    name: str = Form(""),
    phone_number: str = Form(""),
    points: str = Form("0"),
    total_spent: str = Form("0"),
):
    values = {"name": name, "phone_number": phone_number, "points": points, "total_spent": total_spent}
    if not name.strip() or not phone_number.strip():
        return _render_form(request, values=values, error="Name and phone number are required", status_code=400)

    try:
        payload = ClientCreate(
            name=name,
            phone_number=phone_number,
            points=points.strip() or 0,
            total_spent=total_spent.strip() or Decimal("0"),
        )
    except ValidationError as e:
        return _render_form(request, values=values, error=first_error(e), status_code=400)

    db = SessionLocal()
    try:
        clients_service.create_client(db, payload)
    except SQLAlchemyError:
        logger.exception("Create client failed")
        return redirect_with("/admin", e="Error creating client")
    finally:
        db.close()

    return redirect_with("/admin", i="Client created successfully")


@router.get("/clients/{client_id}/edit", response_class=HTMLResponse)
def edit_client_form(request: Request, client_id: str):
    db = SessionLocal()
    try:
        client = clients_service.get_client(db, client_id)
        values = {
            "name": client.name,
            "phone_number": client.phone_number,
            "points": str(client.points),
            "total_spent": str(client.total_spent),
        }
        return _render_form(request, client=client, values=values,
                            linked=accounts.linked_emails(db, client_id))
    except ClientNotFound:
        return redirect_with("/admin", e=NOT_FOUND)
    finally:
        db.close()


@router.post("/clients/{client_id}")
def update_client(
    request: Request,
    client_id: str,
    name: str = Form(""),
    phone_number: str = Form(""),
    points: str = Form(""),
    total_spent: str = Form(""),
):
    values = {"name": name, "phone_number": phone_number, "points": points, "total_spent": total_spent}

    db = SessionLocal()
    try:
        client = clients_service.get_client(db, client_id)
        if not name.strip() or not phone_number.strip():
            return _render_form(request, client=client, values=values,
                                error="Name and phone number are required", status_code=400)

        fields = {"name": name, "phone_number": phone_number}
        if points.strip():
            fields["points"] = points.strip()
        if total_spent.strip():
            fields["total_spent"] = total_spent.strip()
        try:
            payload = ClientUpdate(**fields)
        except ValidationError as e:
            return _render_form(request, client=client, values=values, error=first_error(e), status_code=400)

        clients_service.update_client(db, client_id, payload)
    except ClientNotFound:
        return redirect_with("/admin", e=NOT_FOUND)
    except SQLAlchemyError:
        logger.exception("Update client %s failed", client_id)
        return redirect_with("/admin", e="Error updating client")
    finally:
        db.close()

    return redirect_with("/admin", i="Client updated successfully")


@router.post("/clients/{client_id}/delete")
def delete_client(client_id: str):
    db = SessionLocal()
    try:
        clients_service.delete_client(db, client_id)
    except SQLAlchemyError:
        logger.exception("Delete client %s failed", client_id)
        return redirect_with("/admin", e="Error deleting client")
    finally:
        db.close()

    return redirect_with("/admin", i="Client deleted successfully")


@router.post("/clients/{client_id}/login")
def link_login(client_id: str, email: str = Form("")):
    back = f"/admin/clients/{client_id}/edit"
    db = SessionLocal()
    try:
        accounts.link_client_login(db, client_id, email)
    except ClientNotFound:
        return redirect_with("/admin", e=NOT_FOUND)
    except ValidationFailed as e:
        return redirect_with(back, e=str(e))
    except SQLAlchemyError:
        logger.exception("Linking login for client %s failed", client_id)
        return redirect_with(back, e="Error linking login")
    finally:
        db.close()

    return redirect_with(back, i="Login email linked")


# ── Points ─────────────────────────────────────────────────
@router.get("/clients/{client_id}/points", response_class=HTMLResponse)
def points_form(request: Request, client_id: str):
    db = SessionLocal()
    try:
        client = clients_service.get_client(db, client_id)
        return render(request, "admin/points_form.html", client=client,
                      history=loyalty.list_adjustments(db, client_id, limit=10),
                      page_title=f"Adjust Points - {client.name}")
    except ClientNotFound:
        return redirect_with("/admin", e=NOT_FOUND)
    finally:
        db.close()


@router.post("/clients/{client_id}/points")
def adjust_points(
    client_id: str,
    points: str = Form(""),
    mode: str = Form("add"),
    reason: str = Form(""),
):
    back = f"/admin/clients/{client_id}/points"
    magnitude = _parse_int(points)
    if magnitude is None or magnitude <= 0:
        return redirect_with(back, e="Please enter a valid number of points")

    delta = -magnitude if mode == "subtract" else magnitude
    try:
        payload = PointsAdjustmentIn(points=delta, reason=reason)
    except ValidationError as e:
        return redirect_with(back, e=first_error(e))

    db = SessionLocal()
    try:
        client = loyalty.adjust_points(db, client_id, payload.points, payload.reason)
        warning = loyalty.negative_balance_warning(client.points)
    except ClientNotFound:
        return redirect_with("/admin", e=NOT_FOUND)
    except SQLAlchemyError:
        logger.exception("Adjust points for %s failed", client_id)
        return redirect_with(back, e="Error adjusting points")
    finally:
        db.close()

    return redirect_with("/admin", i="Points adjusted successfully", w=warning)


# ── Spending ───────────────────────────────────────────────
@router.get("/clients/{client_id}/spending", response_class=HTMLResponse)
def spending_form(request: Request, client_id: str):
    db = SessionLocal()
    try:
        client = clients_service.get_client(db, client_id)
        return render(request, "admin/spending_form.html", client=client,
                      history=loyalty.list_spending(db, client_id, limit=10),
                      page_title=f"Add Spending - {client.name}")
    except ClientNotFound:
        return redirect_with("/admin", e=NOT_FOUND)
    finally:
        db.close()


@router.post("/clients/{client_id}/spending")
def add_spending(client_id: str, amount: str = Form(""), description: str = Form("")):
    back = f"/admin/clients/{client_id}/spending"
    value = _parse_amount(amount)
    if value is None or value <= 0:
        return redirect_with(back, e="Please enter a valid amount")

    try:
        payload = SpendingIn(amount=value, description=description)
    except ValidationError as e:
        return redirect_with(back, e=first_error(e))

    db = SessionLocal()
    try:
        loyalty.add_spending(db, client_id, payload.amount, payload.description)
    except ClientNotFound:
        return redirect_with("/admin", e=NOT_FOUND)
    except SQLAlchemyError:
        logger.exception("Add spending for %s failed", client_id)
        return redirect_with(back, e="Error recording spending")
    finally:
        db.close()

    return redirect_with("/admin", i="Spending recorded successfully")
