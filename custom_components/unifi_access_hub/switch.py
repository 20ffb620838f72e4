"""Switch platform for UniFi Access Hub integration."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import ACCESS_METHODS, DOMAIN, AccessMethodType, LockState
from .coordinator import AccessDataCoordinator
from .engine import AccessHubDevice, AccessMethodChanges
from .entity import AccessBaseEntity
from .models import AccessMethodDefinition

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up UniFi Access switches."""
    coordinator: AccessDataCoordinator = hass.data[DOMAIN][entry.entry_id]

    entities: list[SwitchEntity] = []
    for device in coordinator.devices.values():
        if device.has_lock and device.options.lock_trigger:
            entities.append(AccessLockTriggerSwitch(coordinator, device))
        if device.options.doorbell_trigger:
            entities.append(AccessDoorbellTriggerSwitch(coordinator, device))

        exposed: dict[AccessMethodType, AccessMethodSwitch] = {}
        for definition in device.access_methods.definitions.values():
            switch = AccessMethodSwitch(coordinator, device, definition)
            exposed[definition.method_type] = switch
            entities.append(switch)

        entry.async_on_unload(
            device.add_access_method_listener(
                _access_method_handler(hass, coordinator, device, exposed, async_add_entities)
            )
        )

    if entities:
        _LOGGER.info("Adding %d switch entities", len(entities))
        async_add_entities(entities)


def _access_method_handler(
    hass: HomeAssistant,
    coordinator: AccessDataCoordinator,
    device: AccessHubDevice,
    exposed: dict[AccessMethodType, "AccessMethodSwitch"],
    async_add_entities: AddEntitiesCallback,
):
    """Return a listener creating switches for newly discovered access methods."""

    async def _async_replace(old: AccessMethodSwitch, new: AccessMethodSwitch) -> None:
        # A reappearing method gets a fresh entity
        await old.async_remove()
        async_add_entities([new])

    @callback
    def _handle_changes(changes: AccessMethodChanges) -> None:
        for definition in changes.added:
            switch = AccessMethodSwitch(coordinator, device, definition)
            old = exposed.get(definition.method_type)
            exposed[definition.method_type] = switch

            _LOGGER.info("%s: Adding %s switch", device.name, ACCESS_METHODS[definition.method_type]["name"])
            if old is None:
                async_add_entities([switch])
            else:
                hass.async_create_task(_async_replace(old, switch))

    return _handle_changes


class AccessLockTriggerSwitch(AccessBaseEntity, SwitchEntity):
    """Automation trigger mirroring the lock (on means unlocked)."""

    _attr_name = "Lock trigger"
    _attr_icon = "mdi:lock-open-variant"

    def __init__(self, coordinator: AccessDataCoordinator, device: AccessHubDevice) -> None:
        """Initialize the switch."""
        super().__init__(coordinator, device, "lock_trigger")

    @property
    def is_on(self) -> bool:
        """Return true if the lock is not secured."""
        return self._device.lock.state != LockState.SECURED

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Unlock."""
        if not await self._device.async_unlock():
            raise HomeAssistantError(f"Unable to unlock {self._device.name}")

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Lock."""
        if not await self._device.async_lock():
            raise HomeAssistantError(f"Unable to lock {self._device.name}")


class AccessDoorbellTriggerSwitch(AccessBaseEntity, SwitchEntity):
    """Automation trigger mirroring a pending doorbell ring.

    A ring cannot be raised or dismissed from here, so changes revert.
    """

    _attr_name = "Doorbell trigger"
    _attr_icon = "mdi:doorbell"

    def __init__(self, coordinator: AccessDataCoordinator, device: AccessHubDevice) -> None:
        """Initialize the switch."""
        super().__init__(coordinator, device, "doorbell_trigger")

    @property
    def is_on(self) -> bool:
        """Return true while the doorbell is ringing."""
        return self._device.ring_pending

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Revert to the ring state."""
        self.async_write_ha_state()

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Revert to the ring state."""
        self.async_write_ha_state()


class AccessMethodSwitch(AccessBaseEntity, SwitchEntity):
    """Toggle for one discovered access method."""

    def __init__(
        self,
        coordinator: AccessDataCoordinator,
        device: AccessHubDevice,
        definition: AccessMethodDefinition,
    ) -> None:
        """Initialize the switch."""
        super().__init__(coordinator, device, f"access_method_{definition.method_type}")
        self._definition = definition
        self._attr_name = ACCESS_METHODS[definition.method_type]["name"]

    @property
    def available(self) -> bool:
        """Return false once the method is no longer discovered."""
        current = self._device.access_methods.get(self._definition.method_type)
        return super().available and current is self._definition

    @property
    def is_on(self) -> bool:
        """Return true if the access method is enabled."""
        return self._definition.current_state

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return extra state attributes."""
        return {
            "config_key": self._definition.config_key,
            "extension_key": self._definition.extension_key,
        }

    async def _async_set(self, enabled: bool) -> None:
        if not await self._device.async_set_access_method(self._definition.method_type, enabled):
            raise HomeAssistantError(
                f"Unable to {'enable' if enabled else 'disable'} {self.name} on {self._device.name}"
            )

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Enable the access method."""
        await self._async_set(True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Disable the access method."""
        await self._async_set(False)
