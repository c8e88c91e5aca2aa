# dental_loyalty/models/__init__.py
from dental_loyalty.models.client import Client
from dental_loyalty.models.auth import AuthUser, Profile
from dental_loyalty.models.ledger import PointsAdjustment, SpendingRecord

__all__ = ["Client", "AuthUser", "Profile", "PointsAdjustment", "SpendingRecord"]
