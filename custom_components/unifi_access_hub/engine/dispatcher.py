"""Per-device event reconciliation for UniFi Access Hub integration."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping, Protocol

from ..const import (
    CAPABILITY_DPS,
    DRY_CONTACTS,
    TYPE_SCOPED_EVENTS,
    AccessEventType,
    AccessMethodType,
    ContactState,
    DeviceKind,
    LockState,
    SensorChannel,
    TelemetryChannel,
)
from ..exceptions import AccessOfflineError, AccessTransportError, UnifiAccessError
from ..models import AccessEventPacket, DeviceOptions, DeviceSnapshot
from . import normalizer
from .access_methods import AccessMethodChanges, AccessMethodTracker, discover_access_methods
from .scheduler import LockController
from .transport import CallLater, CancelCallback, CommandTransport, async_confirmed_request
from .variant import is_doorbell_capable, resolve_kind, resolve_variant

_LOGGER = logging.getLogger(__name__)

EventHandler = Callable[[AccessEventPacket], None]
Subscribe = Callable[[str, EventHandler], CancelCallback]

SENSOR_LABELS = {
    SensorChannel.DPS: "Door position sensor",
    SensorChannel.REL: "Remote lock sensor",
    SensorChannel.REN: "Request to enter sensor",
    SensorChannel.REX: "Request to exit sensor",
}
GATE_SENSOR_LABELS = {**SENSOR_LABELS, SensorChannel.DPS: "Gate position sensor"}


class TelemetryPublisher(Protocol):
    """Realtime telemetry interface used by a device."""

    def publish(self, device_id: str, channel: str, value: str) -> None:
        """Publish a channel value."""

    def subscribe_get(
        self, device_id: str, channel: str, label: str, supplier: Callable[[], str]
    ) -> None:
        """Answer value requests on a channel."""

    def subscribe_set(
        self,
        device_id: str,
        channel: str,
        label: str,
        handler: Callable[[str], Awaitable[None]],
    ) -> None:
        """Handle value changes requested on a channel."""


def lock_payload(state: LockState) -> str:
    """Return the telemetry value for a lock state."""
    if state == LockState.SECURED:
        return "true"
    if state == LockState.UNSECURED:
        return "false"
    return "unknown"


def contact_payload(state: ContactState, wired: bool = True) -> str:
    """Return the telemetry value for a contact sensor ("true" means open)."""
    if not wired:
        return "unknown"
    if state == ContactState.DETECTED:
        return "false"
    if state == ContactState.NOT_DETECTED:
        return "true"
    return "unknown"


class AccessHubDevice:
    """The single owner of one physical device's reconciled state.

    Events are routed through an explicit dispatch table. Every observed
    change is forwarded to the telemetry publisher and to listeners
    exactly once.
    """

    def __init__(
        self,
        raw: Mapping[str, Any],
        transport: CommandTransport,
        call_later: CallLater,
        options: Mapping[str, Any] | None = None,
        telemetry: TelemetryPublisher | None = None,
    ) -> None:
        """Initialize the device from its controller record."""
        self._raw: dict[str, Any] = dict(raw)
        self.snapshot = DeviceSnapshot.from_dict(self._raw)
        self._transport = transport
        self._telemetry = telemetry

        self.variant = resolve_variant(self.snapshot.device_type)
        self.kind = resolve_kind(self.snapshot)
        self.doorbell_capable = is_doorbell_capable(self.snapshot)
        self.options = DeviceOptions.from_options(
            options or {},
            doorbell_capable=self.doorbell_capable,
            dps_capable=self.snapshot.has_capability(*CAPABILITY_DPS),
        )

        self.lock = LockController(
            self.name,
            self.variant,
            transport,
            call_later,
            get_snapshot=lambda: self.snapshot,
            on_state_change=self._lock_state_changed,
            lock_delay_interval=self.options.lock_delay_interval,
            initial_state=normalizer.lock_state(self.snapshot, self.variant),
        )

        self.sensors: dict[SensorChannel, ContactState] = {
            channel: normalizer.sensor_state(self.snapshot, self.variant, channel)
            for channel in self.sensor_channels
        }

        self.access_methods = AccessMethodTracker()
        self.access_methods.reconcile(discover_access_methods(self.snapshot))

        self.ring_request_id: str | None = None
        self.last_error: UnifiAccessError | None = None

        self._listeners: list[Callable[[], None]] = []
        self._ring_listeners: list[Callable[[], None]] = []
        self._access_method_listeners: list[Callable[[AccessMethodChanges], None]] = []
        self._unsubscribes: list[CancelCallback] = []

        self._handlers: dict[AccessEventType, EventHandler] = {
            AccessEventType.DEVICE_REMOTE_UNLOCK: self._handle_remote_unlock,
            AccessEventType.LOCATION_REMOTE_UNLOCK: self._handle_remote_unlock,
            AccessEventType.DEVICE_ACCESS_GRANTED: self._handle_access_granted,
            AccessEventType.LOCATION_ACCESS_GRANTED: self._handle_access_granted,
            AccessEventType.DEVICE_UPDATE: self._handle_update,
            AccessEventType.REMOTE_VIEW: self._handle_ring,
            AccessEventType.REMOTE_CALL: self._handle_ring,
            AccessEventType.REMOTE_VIEW_CHANGE: self._handle_ring_cancel,
            AccessEventType.REMOTE_CALL_CHANGE: self._handle_ring_cancel,
        }

    @property
    def unique_id(self) -> str:
        """Return the controller id of the device."""
        return self.snapshot.unique_id

    @property
    def name(self) -> str:
        """Return the display name of the device."""
        return self.snapshot.name or self.snapshot.unique_id

    @property
    def telemetry_id(self) -> str:
        """Return the id used for telemetry topics."""
        return self.snapshot.mac or self.snapshot.unique_id

    @property
    def available(self) -> bool:
        """Return True if the device is online."""
        return self.snapshot.is_online

    @property
    def has_lock(self) -> bool:
        """Return True if the device exposes a lock."""
        return self.kind != DeviceKind.INTERCOM

    @property
    def sensor_channels(self) -> list[SensorChannel]:
        """Return the sensor channels this device tracks."""
        if not self.has_lock:
            return []
        channels = [SensorChannel.DPS, *DRY_CONTACTS]
        return [channel for channel in channels if self.options.sensors.get(channel)]

    @property
    def sensor_labels(self) -> dict[SensorChannel, str]:
        """Return log and display labels per sensor channel."""
        return GATE_SENSOR_LABELS if self.kind == DeviceKind.GATE else SENSOR_LABELS

    @property
    def lock_label(self) -> str:
        """Return the label for the lock relay."""
        return "Gate lock relay" if self.kind == DeviceKind.GATE else "Door lock relay"

    @property
    def ring_pending(self) -> bool:
        """Return True while a doorbell ring is pending."""
        return self.ring_request_id is not None

    def is_sensor_wired(self, channel: SensorChannel) -> bool:
        """Return True if a sensor channel is physically connected."""
        return normalizer.is_wired(self.snapshot, self.variant, channel)

    # Listeners

    def add_listener(self, update_callback: Callable[[], None]) -> Callable[[], None]:
        """Listen for any state change. Returns a function removing the listener."""
        self._listeners.append(update_callback)
        return lambda: self._listeners.remove(update_callback)

    def add_ring_listener(self, ring_callback: Callable[[], None]) -> Callable[[], None]:
        """Listen for doorbell rings."""
        self._ring_listeners.append(ring_callback)
        return lambda: self._ring_listeners.remove(ring_callback)

    def add_access_method_listener(
        self, changes_callback: Callable[[AccessMethodChanges], None]
    ) -> Callable[[], None]:
        """Listen for access methods being added, updated or removed."""
        self._access_method_listeners.append(changes_callback)
        return lambda: self._access_method_listeners.remove(changes_callback)

    def _notify(self) -> None:
        for update_callback in list(self._listeners):
            update_callback()

    def _publish(self, channel: TelemetryChannel, value: str) -> None:
        if self._telemetry is not None:
            self._telemetry.publish(self.telemetry_id, channel, value)

    # Event routing

    def register(self, subscribe: Subscribe) -> None:
        """Subscribe to this device's own id and to the type-scoped events."""
        self.unregister()
        self._unsubscribes.append(subscribe(self.unique_id, self._handle_device_packet))
        for event_type in TYPE_SCOPED_EVENTS:
            self._unsubscribes.append(subscribe(event_type, self.handle_packet))

    def unregister(self) -> None:
        """Drop every subscription and the pending relock."""
        while self._unsubscribes:
            self._unsubscribes.pop()()
        self.lock.cancel_reset()

    def _handle_device_packet(self, packet: AccessEventPacket) -> None:
        # Type-scoped events also arrive through their own subscription
        if packet.event in TYPE_SCOPED_EVENTS:
            return
        self.handle_packet(packet)

    def handle_packet(self, packet: AccessEventPacket) -> None:
        """Route an event packet through the dispatch table."""
        try:
            event_type = AccessEventType(packet.event)
        except ValueError:
            return

        _LOGGER.debug("%s: Handling %s for %s", self.name, event_type, packet.event_object_id)
        self._handlers[event_type](packet)

    def _targets_location(self, packet: AccessEventPacket) -> bool:
        own = {self.snapshot.location_id, self.snapshot.door_id} - {None}
        return any(target in own for target in packet.target_ids)

    def _targets_device(self, packet: AccessEventPacket) -> bool:
        return self.unique_id in (packet.event_object_id, packet.data.get("device_id"))

    # Handlers

    def _handle_remote_unlock(self, packet: AccessEventPacket) -> None:
        if not self.has_lock:
            return

        if packet.event == AccessEventType.LOCATION_REMOTE_UNLOCK and not self._targets_location(
            packet
        ):
            return

        self.lock.observe_unlock()

    def _handle_access_granted(self, packet: AccessEventPacket) -> None:
        if not self.lock.is_reader:
            return

        if packet.event == AccessEventType.LOCATION_ACCESS_GRANTED:
            matched = self._targets_location(packet)
        else:
            matched = self._targets_device(packet)

        if not matched:
            _LOGGER.debug(
                "%s: Ignoring access granted for %s", self.name, ", ".join(packet.target_ids)
            )
            return

        self.lock.observe_unlock(optimistic=True)

    def _handle_update(self, packet: AccessEventPacket) -> None:
        was_available = self.available
        self._raw.update(packet.data)
        self.snapshot = DeviceSnapshot.from_dict(self._raw)

        # Lock changes notify listeners on their own
        if self.has_lock:
            self.lock.observe_update(normalizer.lock_state(self.snapshot, self.variant))

        changed = self.available != was_available
        labels = self.sensor_labels
        for channel in self.sensor_channels:
            state = normalizer.sensor_state(self.snapshot, self.variant, channel)
            if state == self.sensors.get(channel):
                continue

            self.sensors[channel] = state
            changed = True

            if not self.is_sensor_wired(channel):
                continue

            self._publish(TelemetryChannel(channel.value), contact_payload(state))
            if self.options.log_sensors.get(channel):
                _LOGGER.info(
                    "%s: %s %s",
                    self.name,
                    labels[channel],
                    "closed" if state == ContactState.DETECTED else "open",
                )

        changes = self.access_methods.reconcile(discover_access_methods(self.snapshot))
        if changes:
            for changes_callback in list(self._access_method_listeners):
                changes_callback(changes)

        if changed or changes:
            self._notify()

    def _is_ring_for_device(self, packet: AccessEventPacket) -> bool:
        if not self.doorbell_capable:
            return False

        return self.unique_id in (
            packet.data.get("connected_uah_id"),
            packet.data.get("device_id"),
            packet.event_object_id,
        )

    def _handle_ring(self, packet: AccessEventPacket) -> None:
        if not self._is_ring_for_device(packet):
            return

        self.ring_request_id = packet.request_id or packet.event_object_id
        self._publish(TelemetryChannel.DOORBELL, "true")
        if self.options.log_doorbell:
            _LOGGER.info("%s: Doorbell ring detected", self.name)

        for ring_callback in list(self._ring_listeners):
            ring_callback()
        self._notify()

    def _handle_ring_cancel(self, packet: AccessEventPacket) -> None:
        if self.ring_request_id is None or packet.cancel_request_id != self.ring_request_id:
            return

        self.ring_request_id = None
        self._publish(TelemetryChannel.DOORBELL, "false")
        if self.options.log_doorbell:
            _LOGGER.info("%s: Doorbell ring cancelled", self.name)

        self._notify()

    def _lock_state_changed(self, state: LockState) -> None:
        self._publish(TelemetryChannel.LOCK, lock_payload(state))
        if self.options.log_lock:
            _LOGGER.info("%s: %s", self.name, "Locked" if state == LockState.SECURED else "Unlocked")
        self._notify()

    # Commands

    async def async_lock(self) -> bool:
        """Lock the device."""
        return await self.lock.async_command(True)

    async def async_unlock(self) -> bool:
        """Unlock the device."""
        return await self.lock.async_command(False)

    async def async_set_access_method(self, method_type: AccessMethodType, enabled: bool) -> bool:
        """Enable or disable an access method. Returns False if the change failed."""
        definition = self.access_methods.get(method_type)
        if definition is None:
            _LOGGER.error("%s: Access method %s is not available", self.name, method_type)
            return False

        try:
            if not self.available:
                raise AccessOfflineError("Device is offline")

            endpoint = self._transport.endpoint("device")
            if endpoint is None:
                raise AccessTransportError("No device endpoint available")

            await async_confirmed_request(
                self._transport,
                f"{endpoint}/{self.unique_id}/settings",
                "PUT",
                [{"key": definition.config_key, "value": enabled}],
            )
        except UnifiAccessError as err:
            self.last_error = err
            _LOGGER.error(
                "%s: Unable to %s %s: %s",
                self.name,
                "enable" if enabled else "disable",
                method_type,
                err,
            )
            return False

        definition.current_state = enabled
        self._notify()
        return True

    # Telemetry

    def register_telemetry(self) -> None:
        """Expose every channel of this device over telemetry."""
        if self._telemetry is None:
            return

        device_id = self.telemetry_id
        labels = self.sensor_labels

        if self.doorbell_capable:
            self._telemetry.subscribe_get(
                device_id,
                TelemetryChannel.DOORBELL,
                "Doorbell ring",
                lambda: "true" if self.ring_pending else "false",
            )

        if not self.has_lock:
            return

        self._telemetry.subscribe_get(
            device_id, TelemetryChannel.LOCK, "Lock", lambda: lock_payload(self.lock.state)
        )
        self._telemetry.subscribe_set(
            device_id, TelemetryChannel.LOCK, "Lock", self._async_handle_lock_set
        )

        for channel in self.sensor_channels:
            self._telemetry.subscribe_get(
                device_id,
                TelemetryChannel(channel.value),
                labels[channel],
                lambda channel=channel: contact_payload(
                    self.sensors[channel], self.is_sensor_wired(channel)
                ),
            )

    async def _async_handle_lock_set(self, value: str) -> None:
        if value == "true":
            await self.lock.async_command(True)
        elif value == "false":
            await self.lock.async_hold_unlocked()
        else:
            _LOGGER.error("%s: Unknown lock set message received: %s", self.name, value)
