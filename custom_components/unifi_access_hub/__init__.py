"""The UniFi Access Hub integration for Home Assistant.

Keeps Home Assistant locks, contact sensors, doorbells and access method
toggles in step with the devices managed by a UniFi Access controller.
"""
from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant

from .const import DOMAIN
from .coordinator import AccessDataCoordinator

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [
    Platform.BINARY_SENSOR,
    Platform.LOCK,
    Platform.SWITCH,
]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up UniFi Access Hub from a config entry."""
    _LOGGER.debug("Setting up UniFi Access Hub integration")

    coordinator = AccessDataCoordinator(hass, entry)

    if not await coordinator.async_setup():
        _LOGGER.error("Failed to set up UniFi Access coordinator")
        await coordinator.async_shutdown()
        return False

    await coordinator.async_config_entry_first_refresh()

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Reload on option changes
    entry.async_on_unload(entry.add_update_listener(async_update_options))

    _LOGGER.info("UniFi Access Hub integration setup complete")
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.debug("Unloading UniFi Access Hub integration")

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        coordinator: AccessDataCoordinator = hass.data[DOMAIN][entry.entry_id]
        await coordinator.async_shutdown()

        hass.data[DOMAIN].pop(entry.entry_id)

    return unload_ok


async def async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Update options."""
    await hass.config_entries.async_reload(entry.entry_id)
