"""Entity base class for UniFi Access Hub integration."""
from __future__ import annotations

from homeassistant.core import callback
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, MANUFACTURER
from .coordinator import AccessDataCoordinator
from .engine import AccessHubDevice


class AccessBaseEntity(CoordinatorEntity[AccessDataCoordinator]):
    """Base entity bound to one engine device.

    State changes arrive from the device's own listeners rather than from
    coordinator refreshes.
    """

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: AccessDataCoordinator,
        device: AccessHubDevice,
        entity_key: str,
    ) -> None:
        """Initialize the entity."""
        super().__init__(coordinator)
        self._device = device
        self._attr_unique_id = f"{DOMAIN}_{device.unique_id}_{entity_key}"

        snapshot = device.snapshot
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, device.unique_id)},
            name=device.name,
            manufacturer=MANUFACTURER,
            model=snapshot.device_type or None,
            sw_version=snapshot.firmware_version,
        )

    @property
    def available(self) -> bool:
        """Return if entity is available."""
        return self._device.available

    async def async_added_to_hass(self) -> None:
        """Listen to the engine device once added."""
        await super().async_added_to_hass()
        self.async_on_remove(self._device.add_listener(self._handle_device_update))

    @callback
    def _handle_device_update(self) -> None:
        """Handle a state change reported by the engine device."""
        self.async_write_ha_state()
