"""Domain errors raised by the services and translated by the api/web layers."""
from __future__ import annotations


class LoyaltyError(Exception):
    """Base class for client and loyalty operation failures."""


class ClientNotFound(LoyaltyError, LookupError):
    def __init__(self, client_id: str):
        super().__init__(f"Client not found: {client_id}")
        self.client_id = client_id


class ValidationFailed(LoyaltyError, ValueError):
    """Input was rejected before anything was written."""
