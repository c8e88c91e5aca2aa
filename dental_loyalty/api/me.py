# dental_loyalty/api/me.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from dental_loyalty.core.database import get_db
from dental_loyalty.core.errors import ClientNotFound
from dental_loyalty.core.identity import Identity
from dental_loyalty.core.role_guards import require_any, require_client
from dental_loyalty.models.client import Client
from dental_loyalty.schemas.auth import IdentityOut
from dental_loyalty.schemas.client import ClientOut, ClientUpdate, PhoneUpdate
from dental_loyalty.schemas.loyalty import ClientHistoryOut, PointsAdjustmentOut, SpendingRecordOut
from dental_loyalty.services import clients as clients_service, loyalty

router = APIRouter(prefix="/me", tags=["me"])


def _own_client(db: Session, identity: Identity) -> Client:
    if not identity.client_id:
        raise HTTPException(status_code=404, detail="Client profile not found")
    try:
        return clients_service.get_client(db, identity.client_id)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client profile not found")


@router.get("", response_model=IdentityOut)
def who_am_i(identity: Identity = Depends(require_any)) -> IdentityOut:
    return IdentityOut(**identity.as_dict())


@router.get("/client", response_model=ClientOut)
def my_client(identity: Identity = Depends(require_client), db: Session = Depends(get_db)) -> ClientOut:
    return ClientOut.model_validate(_own_client(db, identity))


@router.patch("/client", response_model=ClientOut)
def update_my_phone(
    payload: PhoneUpdate,
    identity: Identity = Depends(require_client),
    db: Session = Depends(get_db),
) -> ClientOut:
    client = _own_client(db, identity)
    updated = clients_service.update_client(
        db, client.client_id, ClientUpdate(phone_number=payload.phone_number)
    )
    return ClientOut.model_validate(updated)


@router.get("/history", response_model=ClientHistoryOut)
def my_history(identity: Identity = Depends(require_client), db: Session = Depends(get_db)) -> ClientHistoryOut:
    client = _own_client(db, identity)
    return ClientHistoryOut(
        client_id=client.client_id,
        adjustments=[PointsAdjustmentOut.model_validate(a) for a in loyalty.list_adjustments(db, client.client_id)],
        spending=[SpendingRecordOut.model_validate(s) for s in loyalty.list_spending(db, client.client_id)],
    )
