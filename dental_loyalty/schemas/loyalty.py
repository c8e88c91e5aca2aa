from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dental_loyalty.core.loyalty_rules import POINTS_MAX, POINTS_MIN
from dental_loyalty.schemas.client import ClientOut


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class PointsAdjustmentIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    points: int = Field(..., ge=POINTS_MIN, le=POINTS_MAX, description="Signed delta: positive adds, negative removes")
    reason: Optional[str] = Field(default=None, max_length=255)

    @field_validator("points")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("points must not be zero")
        return v

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: Optional[str]) -> Optional[str]:
        return _optional_text(v)


class SpendingIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=255)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return _optional_text(v)


class PointsAdjustmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: str
    points: int
    reason: str
    created_at: datetime


class SpendingRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: str
    amount: Decimal
    description: str
    created_at: datetime


class MutationResult(BaseModel):
    """Updated client plus a non-blocking warning (e.g. negative balance)."""

    client: ClientOut
    warning: Optional[str] = None


class PointsPreviewOut(BaseModel):
    current_points: int
    delta: int
    new_points: int
    negative: bool


class SpendingPreviewOut(BaseModel):
    current_points: int
    current_total_spent: Decimal
    amount: Decimal
    points_earned: int
    new_points: int
    new_total_spent: Decimal


class ClientHistoryOut(BaseModel):
    client_id: str
    adjustments: list[PointsAdjustmentOut]
    spending: list[SpendingRecordOut]
