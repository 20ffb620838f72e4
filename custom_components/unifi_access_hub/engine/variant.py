"""Device variant and kind resolution."""
from __future__ import annotations

import re

from ..const import (
    CAPABILITY_DOORBELL,
    CAPABILITY_GATE,
    CAPABILITY_HUB,
    G3_INTERCOM_CLASS,
    G3_READER_CLASS_PREFIXES,
    MINI_OR_ULTRA_MODELS,
    DeviceKind,
    DeviceVariant,
)
from ..models import DeviceSnapshot

_NON_ALPHANUMERIC = re.compile(r"[^A-Z0-9]")


def normalize_device_class(device_type: str | None) -> str:
    """Upper-case a device type and strip everything but letters and digits.

    The controller reports the same model under several spellings
    ("UA-G3-Reader", "UA G3 B"), so prefix checks run on this form.
    """
    return _NON_ALPHANUMERIC.sub("", (device_type or "").upper())


def is_g3_reader_class(normalized_class: str) -> bool:
    """Return True if a normalized device class is a G3 reader."""
    return any(normalized_class.startswith(prefix) for prefix in G3_READER_CLASS_PREFIXES)


def resolve_variant(device_type: str | None) -> DeviceVariant:
    """Classify a device type. Unknown types are standard."""
    if is_g3_reader_class(normalize_device_class(device_type)):
        return DeviceVariant.G3_READER

    if device_type in MINI_OR_ULTRA_MODELS:
        return DeviceVariant.MINI_OR_ULTRA

    return DeviceVariant.STANDARD


def is_doorbell_capable(snapshot: DeviceSnapshot) -> bool:
    """Return True if a device can raise ring events."""
    return (
        snapshot.has_capability(CAPABILITY_DOORBELL)
        or normalize_device_class(snapshot.device_type) == G3_INTERCOM_CLASS
    )


def resolve_kind(snapshot: DeviceSnapshot) -> DeviceKind:
    """Return which accessory profile a device presents as."""
    if snapshot.has_capability(*CAPABILITY_GATE):
        return DeviceKind.GATE

    if normalize_device_class(snapshot.device_type) == G3_INTERCOM_CLASS:
        return DeviceKind.INTERCOM

    # Doorbell-only devices with no relay of their own
    if (
        snapshot.has_capability(CAPABILITY_DOORBELL)
        and not snapshot.has_capability(CAPABILITY_HUB)
        and resolve_variant(snapshot.device_type) is DeviceVariant.STANDARD
        and snapshot.resolvable_location_id is None
        and not snapshot.configs
    ):
        return DeviceKind.INTERCOM

    return DeviceKind.HUB
