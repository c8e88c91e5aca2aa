from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dental_loyalty.core.security import normalize_email


class IdentityOut(BaseModel):
    id: int
    email: Optional[str] = None
    role: Literal["admin", "client"]
    client_id: Optional[str] = None
    name: Optional[str] = None


class LinkLoginIn(BaseModel):
    """Admin links a client record to the email it signs in with."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., min_length=3, max_length=255)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = normalize_email(v)
        if "@" not in v:
            raise ValueError("email is not valid")
        return v


class LinkLoginOut(BaseModel):
    user_id: int
    email: str
    client_id: str
    created: bool
