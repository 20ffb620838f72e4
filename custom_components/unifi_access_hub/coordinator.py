"""Data coordinator for UniFi Access Hub integration."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_HOST, CONF_PASSWORD, CONF_USERNAME
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect, async_dispatcher_send
from homeassistant.helpers.event import async_call_later
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .api import AccessApiClient
from .const import CONF_VERIFY_SSL, DEFAULT_VERIFY_SSL, DOMAIN, EVENT_DOORBELL_RING
from .engine import AccessHubDevice
from .engine.dispatcher import EventHandler
from .exceptions import AccessAuthError, UnifiAccessError
from .models import AccessEventPacket
from .mqtt_publisher import AccessMqttPublisher, async_setup_mqtt_publisher

_LOGGER = logging.getLogger(__name__)


class AccessDataCoordinator(DataUpdateCoordinator[dict[str, AccessHubDevice]]):
    """Coordinator owning the controller client and one engine device per physical device.

    Nothing is polled: devices are seeded once at setup and then kept
    current by the controller's notification stream.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=None,
        )

        self.entry = entry
        self.data = {}

        self.client = AccessApiClient(
            host=entry.data[CONF_HOST],
            username=entry.data[CONF_USERNAME],
            password=entry.data[CONF_PASSWORD],
            verify_ssl=entry.data.get(CONF_VERIFY_SSL, DEFAULT_VERIFY_SSL),
        )

        self._mqtt_publisher: Optional[AccessMqttPublisher] = None
        self._unsubscribe_rings: list[Callable[[], None]] = []

    @property
    def devices(self) -> dict[str, AccessHubDevice]:
        """Return engine devices keyed by controller id."""
        return self.data

    def _signal(self, key: str) -> str:
        """Return the dispatcher signal for an event channel key."""
        return f"{DOMAIN}_{self.entry.entry_id}_{key}"

    def subscribe(self, key: str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe a handler to an event type or device id."""

        @callback
        def _forward(packet: AccessEventPacket) -> None:
            handler(packet)

        return async_dispatcher_connect(self.hass, self._signal(key), _forward)

    @callback
    def _handle_packet(self, packet: AccessEventPacket) -> None:
        """Publish a packet under its event type and its target id."""
        _LOGGER.debug("Event %s for %s", packet.event, packet.event_object_id)
        async_dispatcher_send(self.hass, self._signal(packet.event), packet)
        if packet.event_object_id:
            async_dispatcher_send(self.hass, self._signal(packet.event_object_id), packet)

    def call_later(
        self, delay: float, action: Callable[[], Awaitable[None]]
    ) -> Callable[[], None]:
        """Schedule a coroutine function, returning a cancel callback."""

        async def _fire(_now) -> None:
            await action()

        return async_call_later(self.hass, delay, _fire)

    async def async_setup(self) -> bool:
        """Log in, seed the devices and start listening for notifications."""
        options = {**self.entry.data, **self.entry.options}

        try:
            await self.client.authenticate()
            records = await self.client.async_get_devices()
        except AccessAuthError as err:
            _LOGGER.error("UniFi Access authentication failed: %s", err)
            return False
        except UnifiAccessError as err:
            _LOGGER.error("Unable to reach UniFi Access: %s", err)
            return False

        self._mqtt_publisher = await async_setup_mqtt_publisher(self.hass, options)

        devices: dict[str, AccessHubDevice] = {}
        for record in records:
            device = AccessHubDevice(
                record,
                self.client,
                self.call_later,
                options=options,
                telemetry=self._mqtt_publisher,
            )
            if not device.unique_id:
                continue

            device.register(self.subscribe)
            device.register_telemetry()
            if device.options.doorbell:
                self._unsubscribe_rings.append(
                    device.add_ring_listener(self._ring_callback(device))
                )
            devices[device.unique_id] = device
            _LOGGER.info(
                "Added %s %s (%s, %s)", device.kind, device.name, device.snapshot.device_type, device.variant
            )

        self.data = devices
        await self.client.async_start_listening(self._handle_packet)

        _LOGGER.info("UniFi Access coordinator setup complete with %d devices", len(devices))
        return True

    def _ring_callback(self, device: AccessHubDevice) -> Callable[[], None]:
        @callback
        def _ring() -> None:
            self.hass.bus.async_fire(
                EVENT_DOORBELL_RING,
                {
                    "device_id": device.unique_id,
                    "name": device.name,
                    "request_id": device.ring_request_id,
                },
            )

        return _ring

    async def async_shutdown(self) -> None:
        """Shut down the coordinator."""
        await super().async_shutdown()

        while self._unsubscribe_rings:
            self._unsubscribe_rings.pop()()

        for device in self.data.values():
            device.unregister()

        await self.client.close()

        if self._mqtt_publisher:
            await self._mqtt_publisher.async_stop()

    async def _async_update_data(self) -> dict[str, AccessHubDevice]:
        """Return the devices; state arrives as push notifications."""
        return self.data
