from dental_loyalty.schemas.client import ClientCreate, ClientUpdate, ClientOut, PhoneUpdate
from dental_loyalty.schemas.loyalty import (
    PointsAdjustmentIn,
    SpendingIn,
    PointsAdjustmentOut,
    SpendingRecordOut,
    MutationResult,
    PointsPreviewOut,
    SpendingPreviewOut,
    ClientHistoryOut,
)
from dental_loyalty.schemas.auth import IdentityOut, LinkLoginIn, LinkLoginOut

__all__ = [
    "ClientCreate",
    "ClientUpdate",
    "ClientOut",
    "PhoneUpdate",
    "PointsAdjustmentIn",
    "SpendingIn",
    "PointsAdjustmentOut",
    "SpendingRecordOut",
    "MutationResult",
    "PointsPreviewOut",
    "SpendingPreviewOut",
    "ClientHistoryOut",
    "IdentityOut",
    "LinkLoginIn",
    "LinkLoginOut",
]
