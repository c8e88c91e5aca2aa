# dental_loyalty/api/clients.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from dental_loyalty.core.database import get_db
from dental_loyalty.core.errors import ClientNotFound, ValidationFailed
from dental_loyalty.core.loyalty_rules import POINTS_MAX, POINTS_MIN
from dental_loyalty.core.role_guards import require_admin
from dental_loyalty.schemas.auth import LinkLoginIn, LinkLoginOut
from dental_loyalty.schemas.client import ClientCreate, ClientOut, ClientUpdate
from dental_loyalty.schemas.loyalty import (
    ClientHistoryOut,
    MutationResult,
    PointsAdjustmentIn,
    PointsAdjustmentOut,
    PointsPreviewOut,
    SpendingIn,
    SpendingPreviewOut,
    SpendingRecordOut,
)
from dental_loyalty.services import accounts, clients as clients_service, loyalty

router = APIRouter(prefix="/clients", tags=["clients"], dependencies=[Depends(require_admin)])


def _client_or_404(db: Session, client_id: str):
    try:
        return clients_service.get_client(db, client_id)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")


@router.get("", response_model=List[ClientOut])
def list_clients(
    q: Optional[str] = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
) -> List[ClientOut]:
    return [ClientOut.model_validate(c) for c in clients_service.list_clients(db, search=q)]


@router.post("", response_model=ClientOut, status_code=201)
def create_client(payload: ClientCreate, db: Session = Depends(get_db)) -> ClientOut:
    return ClientOut.model_validate(clients_service.create_client(db, payload))


@router.get("/{client_id}", response_model=ClientOut)
def get_client(client_id: str, db: Session = Depends(get_db)) -> ClientOut:
    return ClientOut.model_validate(_client_or_404(db, client_id))


@router.patch("/{client_id}", response_model=ClientOut)
def update_client(client_id: str, payload: ClientUpdate, db: Session = Depends(get_db)) -> ClientOut:
    try:
        client = clients_service.update_client(db, client_id, payload)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")
    return ClientOut.model_validate(client)


@router.delete("/{client_id}", status_code=204)
def delete_client(client_id: str, db: Session = Depends(get_db)) -> Response:
    # missing ids count as already deleted
    clients_service.delete_client(db, client_id)
    return Response(status_code=204)


# ── Loyalty mutations ──────────────────────────────────────
@router.post("/{client_id}/points", response_model=MutationResult)
def adjust_points(client_id: str, payload: PointsAdjustmentIn, db: Session = Depends(get_db)) -> MutationResult:
    try:
        client = loyalty.adjust_points(db, client_id, payload.points, payload.reason)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=str(e))

    return MutationResult(
        client=ClientOut.model_validate(client),
        warning=loyalty.negative_balance_warning(client.points),
    )


@router.post("/{client_id}/spending", response_model=MutationResult)
def add_spending(client_id: str, payload: SpendingIn, db: Session = Depends(get_db)) -> MutationResult:
    try:
        client = loyalty.add_spending(db, client_id, payload.amount, payload.description)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=str(e))

    return MutationResult(client=ClientOut.model_validate(client))


@router.get("/{client_id}/points/preview", response_model=PointsPreviewOut)
def preview_points(
    client_id: str,
    points: int = Query(..., ge=POINTS_MIN, le=POINTS_MAX),
    db: Session = Depends(get_db),
) -> PointsPreviewOut:
    client = _client_or_404(db, client_id)
    return PointsPreviewOut(**loyalty.preview_points(client, points))


@router.get("/{client_id}/spending/preview", response_model=SpendingPreviewOut)
def preview_spending(
    client_id: str,
    amount: Decimal = Query(..., ge=0, max_digits=12, decimal_places=2),
    db: Session = Depends(get_db),
) -> SpendingPreviewOut:
    client = _client_or_404(db, client_id)
    return SpendingPreviewOut(**loyalty.preview_spending(client, amount))


@router.get("/{client_id}/history", response_model=ClientHistoryOut)
def client_history(
    client_id: str,
    limit: int = Query(default=loyalty.HISTORY_LIMIT, ge=1, le=500),
    db: Session = Depends(get_db),
) -> ClientHistoryOut:
    # audit rows outlive deleted clients, so no 404 here
    return ClientHistoryOut(
        client_id=client_id,
        adjustments=[PointsAdjustmentOut.model_validate(a) for a in loyalty.list_adjustments(db, client_id, limit)],
        spending=[SpendingRecordOut.model_validate(s) for s in loyalty.list_spending(db, client_id, limit)],
    )


@router.post("/{client_id}/login", response_model=LinkLoginOut)
def link_login(client_id: str, payload: LinkLoginIn, db: Session = Depends(get_db)) -> LinkLoginOut:
    try:
        user, created = accounts.link_client_login(db, client_id, payload.email)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=str(e))

    return LinkLoginOut(user_id=user.id, email=user.email, client_id=client_id, created=created)
