# dental_loyalty/web/client.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from dental_loyalty.core.database import SessionLocal
from dental_loyalty.core.errors import ClientNotFound
from dental_loyalty.schemas.client import ClientUpdate, PhoneUpdate
from dental_loyalty.services import clients as clients_service, loyalty
from dental_loyalty.web.render import first_error, redirect_with, render

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/client")


def _linked_client(db, request: Request):
    identity = getattr(request.state, "identity", None)
    if identity is None or not identity.client_id:
        return None
    try:
        return clients_service.get_client(db, identity.client_id)
    except ClientNotFound:
        return None


@router.get("", response_class=HTMLResponse)
@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def client_dashboard(request: Request, edit: int = 0):
    db = SessionLocal()
    try:
        client = _linked_client(db, request)
        if client is None:
            return render(request, "client/not_found.html", page_title="Client Dashboard")

        return render(
            request,
            "client/dashboard.html",
            client=client,
            spending=loyalty.list_spending(db, client.client_id),
            adjustments=loyalty.list_adjustments(db, client.client_id),
            editing=bool(edit),
            page_title="Client Dashboard",
        )
    finally:
        db.close()


@router.post("/phone")
def update_phone(request: Request, phone_number: str = Form("")):
    try:
        payload = PhoneUpdate(phone_number=phone_number)
    except ValidationError as e:
        return redirect_with("/client?edit=1", e=first_error(e))

    db = SessionLocal()
    try:
        client = _linked_client(db, request)
        if client is None:
            return redirect_with("/client", e="Client profile not found")
        clients_service.update_client(
            db, client.client_id, ClientUpdate(phone_number=payload.phone_number)
        )
    except ClientNotFound:
        return redirect_with("/client", e="Client profile not found")
    except SQLAlchemyError:
        logger.exception("Phone update failed")
        return redirect_with("/client", e="Error updating phone number")
    finally:
        db.close()

    return redirect_with("/client", i="Phone number updated successfully")
