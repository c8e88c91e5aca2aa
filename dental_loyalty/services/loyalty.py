# dental_loyalty/services/loyalty.py
"""
Point adjustments and spending.

Each mutation is one transaction: an atomic ``SET col = col + :delta`` on the
client row plus the audit insert. Two admins working on the same client at
once therefore both land, instead of the later write overwriting the earlier.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_loyalty.core.errors import ClientNotFound, ValidationFailed
from dental_loyalty.core.loyalty_rules import POINTS_MAX, POINTS_MIN, RULES
from dental_loyalty.models.client import Client
from dental_loyalty.models.ledger import PointsAdjustment, SpendingRecord
from dental_loyalty.services.clients import get_client

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


def _now() -> datetime:
    return datetime.utcnow()


def _q2(x: Decimal) -> Decimal:
    return Decimal(x).quantize(RULES.money_quantum, rounding=ROUND_HALF_UP)


def negative_balance_warning(points: int) -> Optional[str]:
    if points < 0:
        return f"Balance is negative ({points} points)"
    return None


def _apply(db: Session, client_id: str, values: dict, audit) -> Client:
    try:
        result = db.execute(
            update(Client)
            .where(Client.client_id == client_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            db.rollback()
            raise ClientNotFound(client_id)

        db.add(audit)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    # commit expired the identity map, so this reads the new totals
    return get_client(db, client_id)


# ── Points ────────────────────────────────────────────────────
def adjust_points(
    db: Session,
    client_id: str,
    delta: int,
    reason: Optional[str] = None,
) -> Client:
    """Adds a signed delta. A negative resulting balance is allowed."""
    delta = int(delta)
    if delta == 0:
        raise ValidationFailed("points must not be zero")
    if not POINTS_MIN <= delta <= POINTS_MAX:
        raise ValidationFailed("points out of range")

    now = _now()
    client = _apply(
        db,
        client_id,
        {"points": Client.points + delta, "updated_at": now},
        PointsAdjustment(
            client_id=client_id,
            points=delta,
            reason=(reason or "").strip(),
            created_at=now,
        ),
    )

    logger.info("Points adjusted: client=%s delta=%+d balance=%s", client_id, delta, client.points)
    return client


# ── Spending ──────────────────────────────────────────────────
def add_spending(
    db: Session,
    client_id: str,
    amount: Decimal,
    description: Optional[str] = None,
) -> Client:
    """Records a purchase; earns floor(amount) points."""
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationFailed("amount must be > 0")
    if amount != _q2(amount):
        raise ValidationFailed("amount must have at most 2 decimal places")
    amount = _q2(amount)

    earned = RULES.points_for_amount(amount)
    now = _now()
    client = _apply(
        db,
        client_id,
        {
            "total_spent": Client.total_spent + amount,
            "points": Client.points + earned,
            "updated_at": now,
        },
        SpendingRecord(
            client_id=client_id,
            amount=amount,
            description=(description or "").strip(),
            created_at=now,
        ),
    )

    logger.info(
        "Spending recorded: client=%s amount=%s earned=%s total=%s",
        client_id, amount, earned, client.total_spent,
    )
    return client


# ── Previews (no writes) ──────────────────────────────────────
def preview_points(client: Client, delta: int) -> dict:
    current = int(client.points or 0)
    new_points = current + int(delta)
    return {
        "current_points": current,
        "delta": int(delta),
        "new_points": new_points,
        "negative": new_points < 0,
    }


def preview_spending(client: Client, amount: Decimal) -> dict:
    amount = _q2(amount) if amount > 0 else Decimal("0.00")
    current_points = int(client.points or 0)
    current_total = _q2(Decimal(client.total_spent or 0))
    earned = RULES.points_for_amount(amount)
    return {
        "current_points": current_points,
        "current_total_spent": current_total,
        "amount": amount,
        "points_earned": earned,
        "new_points": current_points + earned,
        "new_total_spent": _q2(current_total + amount),
    }


# ── History ───────────────────────────────────────────────────
def list_adjustments(db: Session, client_id: str, limit: int = HISTORY_LIMIT) -> list[PointsAdjustment]:
    return list(
        db.scalars(
            select(PointsAdjustment)
            .where(PointsAdjustment.client_id == client_id)
            .order_by(PointsAdjustment.created_at.desc(), PointsAdjustment.id.desc())
            .limit(limit)
        ).all()
    )


def list_spending(db: Session, client_id: str, limit: int = HISTORY_LIMIT) -> list[SpendingRecord]:
    return list(
        db.scalars(
            select(SpendingRecord)
            .where(SpendingRecord.client_id == client_id)
            .order_by(SpendingRecord.created_at.desc(), SpendingRecord.id.desc())
            .limit(limit)
        ).all()
    )
