"""Canonical lock and sensor state derivation for UniFi Access Hub integration.

Every function here is pure: given a device snapshot and its resolved
variant, it returns the canonical value without touching any state.
"""
from __future__ import annotations

from typing import Any

from ..const import (
    CONTACT_ACTIVE_WORDS,
    CONTACT_INACTIVE_WORDS,
    DPS_WIRING_HUB,
    DPS_WIRING_MINI,
    KEY_DPS,
    KEY_DPS_MINI,
    KEY_LOCK_RELAY,
    KEY_LOCK_RELAY_MINI,
    LOCK_ACTIVE_WORDS,
    LOCK_INACTIVE_WORDS,
    MINI_ALWAYS_WIRED_CONTACT,
    MODEL_HUB,
    MODEL_HUB_DOOR_MINI,
    MODEL_ULTRA,
    ContactState,
    DeviceVariant,
    LockState,
    SensorChannel,
)
from ..models import DeviceSnapshot

WIRED_VALUE = "on"


def lock_relay_key(variant: DeviceVariant) -> str:
    """Return the configuration key carrying the lock relay state."""
    if variant is DeviceVariant.MINI_OR_ULTRA:
        return KEY_LOCK_RELAY_MINI
    return KEY_LOCK_RELAY


def _relay_activity(value: Any) -> tuple[bool, bool]:
    """Return (active, inactive) for a raw relay value."""
    # bool is checked first since it is also an int
    if isinstance(value, bool):
        return value, not value

    if isinstance(value, (int, float)):
        return value == 1, value == 0

    if isinstance(value, str):
        word = value.lower()
        return word in LOCK_ACTIVE_WORDS, word in LOCK_INACTIVE_WORDS

    return False, False


def lock_state(snapshot: DeviceSnapshot, variant: DeviceVariant) -> LockState:
    """Derive the canonical lock state from the relay telemetry.

    Readers carry no relay telemetry, so anything short of an explicit
    active value is reported as secured for them.
    """
    fallback = LockState.SECURED if variant is DeviceVariant.G3_READER else LockState.UNKNOWN

    value = snapshot.config(lock_relay_key(variant))
    if value is None:
        return fallback

    active, inactive = _relay_activity(value)
    if inactive:
        return LockState.SECURED
    if active:
        return LockState.UNSECURED

    return fallback


def _all_wired(snapshot: DeviceSnapshot, keys: tuple[str, ...]) -> bool:
    return all(snapshot.config(key) == WIRED_VALUE for key in keys)


def is_dps_wired(snapshot: DeviceSnapshot) -> bool:
    """Return True if the door position sensor is physically connected."""
    if snapshot.device_type == MODEL_ULTRA:
        return True

    if snapshot.device_type == MODEL_HUB_DOOR_MINI:
        return _all_wired(snapshot, DPS_WIRING_MINI)

    if snapshot.device_type == MODEL_HUB:
        return _all_wired(snapshot, DPS_WIRING_HUB)

    return False


def dps_state(snapshot: DeviceSnapshot, variant: DeviceVariant) -> ContactState:
    """Derive the door position sensor state. Unwired sensors read closed."""
    if not is_dps_wired(snapshot):
        return ContactState.DETECTED

    key = KEY_DPS_MINI if variant is DeviceVariant.MINI_OR_ULTRA else KEY_DPS
    if snapshot.config(key) == WIRED_VALUE:
        return ContactState.DETECTED

    return ContactState.NOT_DETECTED


def contact_wiring_keys(channel: SensorChannel, variant: DeviceVariant) -> tuple[str, str]:
    """Return the wiring indicator pair for a dry contact."""
    if variant is DeviceVariant.MINI_OR_ULTRA:
        return (f"wiring_state_d1-{channel}-neg", f"wiring_state_d1-{channel}-pos")
    return (f"wiring_state_{channel}-neg", f"wiring_state_{channel}-pos")


def contact_state_key(channel: SensorChannel, variant: DeviceVariant) -> str:
    """Return the configuration key carrying a dry contact state."""
    if variant is DeviceVariant.MINI_OR_ULTRA:
        return f"input_d1_{channel}"
    return f"input_state_{channel}"


def is_contact_wired(
    snapshot: DeviceSnapshot, variant: DeviceVariant, channel: SensorChannel
) -> bool:
    """Return True if a dry contact is physically connected."""
    if variant is DeviceVariant.MINI_OR_ULTRA and channel is MINI_ALWAYS_WIRED_CONTACT:
        return True

    return _all_wired(snapshot, contact_wiring_keys(channel, variant))


def _contact_word(value: Any) -> str:
    """Return the lower-cased word for a raw dry contact value."""
    if isinstance(value, bool):
        return str(value).lower()

    # 1.0 and 0.0 read like their integer forms
    if isinstance(value, (int, float)) and value in (0, 1):
        return str(int(value))

    return str(value).lower()


def contact_state(
    snapshot: DeviceSnapshot, variant: DeviceVariant, channel: SensorChannel
) -> ContactState:
    """Derive a dry contact state.

    Unrecognized values read as not detected, unlike the lock relay which
    reports them as unknown.
    """
    if not is_contact_wired(snapshot, variant, channel):
        return ContactState.DETECTED

    word = _contact_word(snapshot.config(contact_state_key(channel, variant)))
    if word in CONTACT_ACTIVE_WORDS:
        return ContactState.DETECTED
    if word in CONTACT_INACTIVE_WORDS:
        return ContactState.NOT_DETECTED

    # Unrecognized
    return ContactState.NOT_DETECTED


def is_wired(snapshot: DeviceSnapshot, variant: DeviceVariant, channel: SensorChannel) -> bool:
    """Return the wiring flag for any sensor channel."""
    if channel is SensorChannel.DPS:
        return is_dps_wired(snapshot)
    return is_contact_wired(snapshot, variant, channel)


def sensor_state(
    snapshot: DeviceSnapshot, variant: DeviceVariant, channel: SensorChannel
) -> ContactState:
    """Return the canonical state for any sensor channel."""
    if channel is SensorChannel.DPS:
        return dps_state(snapshot, variant)
    return contact_state(snapshot, variant, channel)
