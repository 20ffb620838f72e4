"""State reconciliation engine for UniFi Access Hub integration."""
from .access_methods import AccessMethodChanges, AccessMethodTracker, discover_access_methods
from .dispatcher import AccessHubDevice, TelemetryPublisher
from .scheduler import LockController, LockResetTask
from .transport import CommandTransport, async_confirmed_request
from .variant import is_doorbell_capable, resolve_kind, resolve_variant

__all__ = [
    "AccessHubDevice",
    "AccessMethodChanges",
    "AccessMethodTracker",
    "CommandTransport",
    "LockController",
    "LockResetTask",
    "TelemetryPublisher",
    "async_confirmed_request",
    "discover_access_methods",
    "is_doorbell_capable",
    "resolve_kind",
    "resolve_variant",
]
