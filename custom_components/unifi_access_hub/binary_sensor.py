"""Binary sensor platform for UniFi Access Hub integration."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN, ContactState, SensorChannel
from .coordinator import AccessDataCoordinator
from .engine import AccessHubDevice
from .entity import AccessBaseEntity

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up UniFi Access binary sensors."""
    coordinator: AccessDataCoordinator = hass.data[DOMAIN][entry.entry_id]

    entities: list[BinarySensorEntity] = []
    for device in coordinator.devices.values():
        for channel in device.sensor_channels:
            entities.append(AccessContactSensor(coordinator, device, channel))
        if device.options.doorbell:
            entities.append(AccessDoorbellSensor(coordinator, device))

    if entities:
        _LOGGER.info("Adding %d binary sensor entities", len(entities))
        async_add_entities(entities)


class AccessContactSensor(AccessBaseEntity, BinarySensorEntity):
    """Door position sensor or dry contact input."""

    _attr_device_class = BinarySensorDeviceClass.DOOR

    def __init__(
        self,
        coordinator: AccessDataCoordinator,
        device: AccessHubDevice,
        channel: SensorChannel,
    ) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, device, str(channel))
        self._channel = channel
        self._attr_name = device.sensor_labels[channel]

    @property
    def is_on(self) -> bool | None:
        """Return true if the contact is open."""
        state = self._device.sensors.get(self._channel)
        if state is None or state == ContactState.UNKNOWN:
            return None
        return state == ContactState.NOT_DETECTED

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return extra state attributes."""
        return {"wired": self._device.is_sensor_wired(self._channel)}


class AccessDoorbellSensor(AccessBaseEntity, BinarySensorEntity):
    """On while a doorbell ring is pending."""

    _attr_name = "Doorbell"
    _attr_icon = "mdi:doorbell"

    def __init__(self, coordinator: AccessDataCoordinator, device: AccessHubDevice) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator, device, "doorbell")

    @property
    def is_on(self) -> bool:
        """Return true while the doorbell is ringing."""
        return self._device.ring_pending
