from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from dental_loyalty.core.database import Base


class PointsAdjustment(Base):
    """
    Manual change of a client's balance, unrelated to a purchase.
    Append-only: rows are never updated, and they outlive the client they reference.
    """
    __tablename__ = "points_adjustments"

    id = Column(Integer, primary_key=True, index=True)

    client_id = Column(String(36), nullable=False, index=True)

    points = Column(Integer, nullable=False)  # signed delta as entered
    reason = Column(String(255), nullable=False, default="")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class SpendingRecord(Base):
    """Purchase event. Append-only, same retention as PointsAdjustment."""

    __tablename__ = "spending_records"

    id = Column(Integer, primary_key=True, index=True)

    client_id = Column(String(36), nullable=False, index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(255), nullable=False, default="")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
