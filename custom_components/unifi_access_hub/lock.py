"""Lock platform for UniFi Access Hub integration."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.lock import LockEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN, LockState
from .coordinator import AccessDataCoordinator
from .engine import AccessHubDevice
from .entity import AccessBaseEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up UniFi Access locks."""
    coordinator: AccessDataCoordinator = hass.data[DOMAIN][entry.entry_id]

    entities = [
        AccessLock(coordinator, device)
        for device in coordinator.devices.values()
        if device.has_lock
    ]

    if entities:
        _LOGGER.info("Adding %d lock entities", len(entities))
        async_add_entities(entities)


class AccessLock(AccessBaseEntity, LockEntity):
    """Lock relay of a UniFi Access hub, gate or reader."""

    def __init__(self, coordinator: AccessDataCoordinator, device: AccessHubDevice) -> None:
        """Initialize the lock."""
        super().__init__(coordinator, device, "lock")
        self._attr_name = device.lock_label

    @property
    def is_locked(self) -> bool | None:
        """Return true if the lock is secured, None when unknown."""
        state = self._device.lock.state
        if state == LockState.UNKNOWN:
            return None
        return state == LockState.SECURED

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return extra state attributes."""
        attrs: dict[str, Any] = {
            "variant": str(self._device.variant),
            "auto_relock_pending": self._device.lock.reset_task is not None,
        }
        if self._device.lock.last_error is not None:
            attrs["last_error"] = str(self._device.lock.last_error)
        return attrs

    async def async_lock(self, **kwargs: Any) -> None:
        """Lock the relay."""
        if not await self._device.async_lock():
            raise HomeAssistantError(f"Unable to lock {self._device.name}")

    async def async_unlock(self, **kwargs: Any) -> None:
        """Unlock the relay."""
        if not await self._device.async_unlock():
            raise HomeAssistantError(f"Unable to unlock {self._device.name}")
