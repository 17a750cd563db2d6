"""Relay that hands OAuth access tokens from a browser redirect to a polling application."""

from .state import generate_state, is_valid_state
from .store import StoreError, StoreUnavailable, TokenRecord, TokenStore

__all__ = [
    "generate_state",
    "is_valid_state",
    "StoreError",
    "StoreUnavailable",
    "TokenRecord",
    "TokenStore",
]
