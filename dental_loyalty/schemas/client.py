from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dental_loyalty.core.loyalty_rules import POINTS_MAX, POINTS_MIN


def _required_text(value: Optional[str], field: str) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(f"{field} must not be blank")
    return value


class ClientCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., max_length=200)
    phone_number: str = Field(..., max_length=32)
    points: int = Field(default=0, ge=POINTS_MIN, le=POINTS_MAX)
    total_spent: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)

    @field_validator("name", "phone_number")
    @classmethod
    def not_blank(cls, v: str, info) -> str:
        return _required_text(v, info.field_name)


class ClientUpdate(BaseModel):
    """Partial update: only fields that were sent are written."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, max_length=200)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    points: Optional[int] = Field(default=None, ge=POINTS_MIN, le=POINTS_MAX)
    total_spent: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)

    @model_validator(mode="before")
    @classmethod
    def no_nulls(cls, data):
        # omit a field to leave it unchanged; null is not a value for any of them
        if isinstance(data, dict):
            nulls = [k for k, v in data.items() if v is None]
            if nulls:
                raise ValueError(f"{nulls[0]} must not be null")
        return data

    @field_validator("name", "phone_number")
    @classmethod
    def not_blank(cls, v: Optional[str], info) -> Optional[str]:
        return _required_text(v, info.field_name)


class PhoneUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    phone_number: str = Field(..., max_length=32)

    @field_validator("phone_number")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _required_text(v, "phone_number")


class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    client_id: str
    name: str
    phone_number: str
    points: int
    total_spent: Decimal
    created_at: datetime
    updated_at: datetime
