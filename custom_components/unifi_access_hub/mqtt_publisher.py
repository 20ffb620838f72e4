"""MQTT Publisher for UniFi Access Hub integration.

This module publishes lock, sensor and doorbell telemetry to the MQTT broker
configured in Home Assistant. Each channel lives under
``<prefix>/<device>/<channel>``; publishing to ``.../get`` republishes the
current value and publishing to ``.../set`` forwards a command.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from homeassistant.components import mqtt
from homeassistant.core import HomeAssistant, callback

from .const import CONF_MQTT_ENABLED, CONF_MQTT_TOPIC, DEFAULT_MQTT_TOPIC

_LOGGER = logging.getLogger(__name__)


@dataclass
class MqttPublisherConfig:
    """Configuration for MQTT publisher."""

    enabled: bool = False
    topic_prefix: str = DEFAULT_MQTT_TOPIC
    retain: bool = True
    qos: int = 1


class AccessMqttPublisher:
    """Publishes UniFi Access device telemetry to MQTT."""

    def __init__(self, hass: HomeAssistant, config: MqttPublisherConfig) -> None:
        """Initialize the MQTT publisher."""
        self._hass = hass
        self._config = config
        self._unsubscribe_callbacks: list[Callable[[], None]] = []
        self._is_running = False

    @property
    def is_available(self) -> bool:
        """Check if MQTT integration is available."""
        return mqtt.async_get_mqtt(self._hass) is not None

    async def async_start(self) -> bool:
        """Start the MQTT publisher."""
        if not self._config.enabled:
            _LOGGER.debug("MQTT publisher is disabled")
            return False

        if not self.is_available:
            _LOGGER.warning(
                "MQTT integration is not available. "
                "Install and configure MQTT to use this feature."
            )
            return False

        self._is_running = True
        _LOGGER.info("MQTT publisher started with topic prefix: %s", self._config.topic_prefix)
        return True

    async def async_stop(self) -> None:
        """Stop the MQTT publisher."""
        for unsubscribe in self._unsubscribe_callbacks:
            unsubscribe()
        self._unsubscribe_callbacks.clear()
        self._is_running = False
        _LOGGER.info("MQTT publisher stopped")

    def topic(self, device_id: str, channel: str) -> str:
        """Return the topic of a device channel."""
        return f"{self._config.topic_prefix}/{device_id}/{channel}"

    def publish(self, device_id: str, channel: str, value: str) -> None:
        """Publish a channel value."""
        if not self._is_running:
            return
        self._hass.async_create_task(self._async_publish(self.topic(device_id, channel), value))

    async def _async_publish(self, topic: str, value: str) -> None:
        try:
            await mqtt.async_publish(
                self._hass,
                topic,
                value,
                qos=self._config.qos,
                retain=self._config.retain,
            )
            _LOGGER.debug("Published to MQTT: %s = %s", topic, value)
        except Exception as err:
            _LOGGER.error("Failed to publish to MQTT: %s", err)

    def subscribe_get(
        self,
        device_id: str,
        channel: str,
        label: str,
        supplier: Callable[[], str],
    ) -> None:
        """Republish the current value whenever ``.../get`` is requested."""

        @callback
        def _get_received(msg: Any) -> None:
            value = supplier()
            _LOGGER.debug("MQTT: %s status published: %s", label, value)
            self.publish(device_id, channel, value)

        self._subscribe(f"{self.topic(device_id, channel)}/get", _get_received)

    def subscribe_set(
        self,
        device_id: str,
        channel: str,
        label: str,
        handler: Callable[[str], Awaitable[None]],
    ) -> None:
        """Forward ``.../set`` payloads to a command handler."""

        @callback
        def _set_received(msg: Any) -> None:
            payload = msg.payload
            if isinstance(payload, bytes):
                payload = payload.decode()
            value = str(payload).strip().lower()
            _LOGGER.debug("MQTT: %s set message received: %s", label, value)
            self._hass.async_create_task(handler(value))

        self._subscribe(f"{self.topic(device_id, channel)}/set", _set_received)

    def _subscribe(self, topic: str, msg_callback: Callable[[Any], None]) -> None:
        if not self._is_running:
            return
        self._hass.async_create_task(self._async_subscribe(topic, msg_callback))

    async def _async_subscribe(self, topic: str, msg_callback: Callable[[Any], None]) -> None:
        try:
            unsubscribe = await mqtt.async_subscribe(
                self._hass, topic, msg_callback, qos=self._config.qos
            )
        except Exception as err:
            _LOGGER.error("Failed to subscribe to %s: %s", topic, err)
            return

        if not self._is_running:
            unsubscribe()
            return
        self._unsubscribe_callbacks.append(unsubscribe)
        _LOGGER.debug("Subscribed to MQTT topic: %s", topic)


async def async_setup_mqtt_publisher(
    hass: HomeAssistant,
    options: dict[str, Any],
) -> AccessMqttPublisher | None:
    """Set up the MQTT publisher from config entry options."""
    if not options.get(CONF_MQTT_ENABLED, False):
        return None

    publisher = AccessMqttPublisher(
        hass,
        MqttPublisherConfig(
            enabled=True,
            topic_prefix=options.get(CONF_MQTT_TOPIC) or DEFAULT_MQTT_TOPIC,
        ),
    )

    if await publisher.async_start():
        return publisher

    return None
