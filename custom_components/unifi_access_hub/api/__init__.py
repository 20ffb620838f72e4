"""API clients for UniFi Access Hub integration."""
from .access_client import AccessApiClient, lock_rule

__all__ = [
    "AccessApiClient",
    "lock_rule",
]
