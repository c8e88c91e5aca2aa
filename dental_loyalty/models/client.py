from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from dental_loyalty.core.database import Base


def _new_client_id() -> str:
    return str(uuid.uuid4())


class Client(Base):
    __tablename__ = "clients"

    client_id = Column(String(36), primary_key=True, default=_new_client_id)

    name = Column(String(200), nullable=False, index=True)
    phone_number = Column(String(32), nullable=False, index=True)

    # may go negative after a manual adjustment
    points = Column(Integer, nullable=False, default=0)
    total_spent = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Client {self.client_id} {self.name!r} {self.points}pts>"
