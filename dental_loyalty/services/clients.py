# dental_loyalty/services/clients.py
"""Client records: list, get, create, update, delete."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from dental_loyalty.core.errors import ClientNotFound
from dental_loyalty.models.client import Client
from dental_loyalty.schemas.client import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


def list_clients(db: Session, search: Optional[str] = None) -> list[Client]:
    stmt = select(Client).order_by(Client.name.asc(), Client.client_id.asc())

    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                func.lower(Client.name).like(pattern),
                Client.phone_number.like(pattern),
            )
        )

    return list(db.scalars(stmt).all())


def get_client(db: Session, client_id: str) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise ClientNotFound(client_id)
    return client


def create_client(db: Session, payload: ClientCreate) -> Client:
    now = _now()
    client = Client(
        name=payload.name,
        phone_number=payload.phone_number,
        points=int(payload.points),
        total_spent=payload.total_spent,
        created_at=now,
        updated_at=now,
    )
    db.add(client)
    db.commit()
    db.refresh(client)

    logger.info("Client created: %s (%s)", client.client_id, client.name)
    return client


def update_client(db: Session, client_id: str, payload: ClientUpdate) -> Client:
    client = get_client(db, client_id)

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(client, field, value)

    client.updated_at = _now()
    db.commit()
    db.refresh(client)
    return client


def delete_client(db: Session, client_id: str) -> bool:
    """Hard delete. Returns False when there was nothing to delete."""
    result = db.execute(delete(Client).where(Client.client_id == client_id))
    db.commit()

    deleted = (result.rowcount or 0) > 0
    if deleted:
        logger.info("Client deleted: %s", client_id)
    return deleted


def roster_totals(clients: list[Client]) -> dict:
    return {
        "clients": len(clients),
        "points": sum(int(c.points or 0) for c in clients),
        "total_spent": sum((Decimal(c.total_spent or 0) for c in clients), Decimal("0.00")),
    }
