"""Tests for per-device event reconciliation."""
import dataclasses
import math
from unittest.mock import MagicMock

import pytest

from custom_components.unifi_access_hub.const import (
    CONF_DOORBELL,
    CONF_DOORBELL_TRIGGER,
    CONF_LOCK_DELAY_INTERVAL,
    AccessMethodType,
    ContactState,
    DeviceKind,
    LockState,
    SensorChannel,
)
from custom_components.unifi_access_hub.engine.dispatcher import (
    AccessHubDevice,
    contact_payload,
    lock_payload,
)
from custom_components.unifi_access_hub.exceptions import (
    AccessOfflineError,
    AccessTransportError,
)

DEVICE_UPDATE = "access.data.device.update"


def configs_with(record, overrides):
    """Return a record's configs with some values replaced."""
    configs = [
        {"key": entry["key"], "value": overrides.get(entry["key"], entry["value"])}
        for entry in record["configs"]
    ]
    known = {entry["key"] for entry in configs}
    configs.extend({"key": key, "value": value} for key, value in overrides.items() if key not in known)
    return configs


@pytest.fixture
def hub(hub_record, transport, timers, telemetry, event_bus):
    """Create a registered hub device."""
    device = AccessHubDevice(hub_record, transport, timers.call_later, telemetry=telemetry)
    device.register(event_bus.subscribe)
    return device


@pytest.fixture
def reader(reader_record, transport, timers, telemetry, event_bus):
    """Create a registered reader device."""
    device = AccessHubDevice(reader_record, transport, timers.call_later, telemetry=telemetry)
    device.register(event_bus.subscribe)
    return device


@pytest.fixture
def listener(hub):
    """Listen for hub state changes."""
    callback = MagicMock()
    hub.add_listener(callback)
    return callback


class TestPayloads:
    """Test telemetry payload mapping."""

    def test_lock_payload(self):
        """Test lock states map to true/false/unknown."""
        assert lock_payload(LockState.SECURED) == "true"
        assert lock_payload(LockState.UNSECURED) == "false"
        assert lock_payload(LockState.UNKNOWN) == "unknown"

    def test_contact_payload(self):
        """Test contact states report open as true."""
        assert contact_payload(ContactState.DETECTED) == "false"
        assert contact_payload(ContactState.NOT_DETECTED) == "true"
        assert contact_payload(ContactState.NOT_DETECTED, wired=False) == "unknown"


class TestInitialState:
    """Test state derived at construction."""

    def test_hub(self, hub):
        """Test the hub starts from its record."""
        assert hub.kind is DeviceKind.HUB
        assert hub.lock.state is LockState.SECURED
        assert hub.sensors[SensorChannel.DPS] is ContactState.DETECTED
        assert hub.sensors[SensorChannel.REL] is ContactState.NOT_DETECTED
        assert hub.telemetry_id == "aabbccddeeff"

    def test_reader_has_no_dps(self, reader):
        """Test DPS is only tracked on capable devices."""
        assert SensorChannel.DPS not in reader.sensor_channels
        assert reader.lock.state is LockState.SECURED

    def test_intercom(self, transport, timers):
        """Test an intercom exposes no lock or sensors."""
        device = AccessHubDevice(
            {"unique_id": "ic-1", "device_type": "UA-G3-Intercom"}, transport, timers.call_later
        )

        assert device.has_lock is False
        assert device.sensor_channels == []


class TestDeviceUpdate:
    """Test device update reconciliation."""

    @pytest.mark.asyncio
    async def test_unsecured_update(self, hub, hub_record, telemetry, timers, event_bus, listener):
        """Test an unlock seen in telemetry is published once and relocked."""
        event_bus.publish(DEVICE_UPDATE, "hub-1", {
            "configs": configs_with(hub_record, {"input_state_rly-lock_dry": "on"}),
        })

        telemetry.publish.assert_called_once_with("aabbccddeeff", "lock", "false")
        assert hub.lock.state is LockState.UNSECURED
        assert [call.delay for call in timers.pending] == [6.0]
        listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_secured_update_cancels_relock(self, hub, hub_record, telemetry, timers, event_bus):
        """Test a secured update cancels the pending relock."""
        event_bus.publish(DEVICE_UPDATE, "hub-1", {
            "configs": configs_with(hub_record, {"input_state_rly-lock_dry": "on"}),
        })
        event_bus.publish(DEVICE_UPDATE, "hub-1", {
            "configs": configs_with(hub_record, {"input_state_rly-lock_dry": "off"}),
        })

        assert hub.lock.state is LockState.SECURED
        assert timers.pending == []
        telemetry.publish.assert_called_with("aabbccddeeff", "lock", "true")

    def test_unchanged_update(self, hub, hub_record, telemetry, event_bus, listener):
        """Test an identical update changes nothing."""
        event_bus.publish(DEVICE_UPDATE, "hub-1", {"configs": hub_record["configs"]})

        telemetry.publish.assert_not_called()
        listener.assert_not_called()

    def test_wired_sensor_published(self, hub, hub_record, telemetry, event_bus, listener):
        """Test a wired sensor change is published."""
        event_bus.publish(DEVICE_UPDATE, "hub-1", {
            "configs": configs_with(hub_record, {"input_state_rel": "on"}),
        })

        assert hub.sensors[SensorChannel.REL] is ContactState.DETECTED
        telemetry.publish.assert_called_once_with("aabbccddeeff", "rel", "false")
        listener.assert_called_once()

    def test_unwired_sensor_not_published(self, hub, hub_record, telemetry, event_bus, listener):
        """Test a sensor losing its wiring is not published."""
        event_bus.publish(DEVICE_UPDATE, "hub-1", {
            "configs": configs_with(hub_record, {"wiring_state_rel-pos": "off"}),
        })

        assert hub.sensors[SensorChannel.REL] is ContactState.DETECTED
        telemetry.publish.assert_not_called()
        listener.assert_called_once()

    def test_availability(self, hub, event_bus, listener):
        """Test going offline notifies listeners."""
        event_bus.publish(DEVICE_UPDATE, "hub-1", {"is_online": False})

        assert hub.available is False
        listener.assert_called_once()

    def test_access_methods_reconciled(self, hub, event_bus):
        """Test new extensions surface as access method changes."""
        changes_callback = MagicMock()
        hub.add_access_method_listener(changes_callback)

        event_bus.publish(DEVICE_UPDATE, "hub-1", {"extensions": [{
            "unique_id": "ext-pin",
            "extension_name": "pin_code",
            "target_config": [{"config_key": "pin_enabled", "config_value": True}],
        }]})

        changes = changes_callback.call_args.args[0]
        assert [d.method_type for d in changes.added] == [AccessMethodType.PIN]
        assert hub.access_methods.get(AccessMethodType.PIN).current_state is True


class TestAccessGranted:
    """Test access granted handling on readers."""

    @pytest.mark.asyncio
    async def test_location_match(self, reader, transport, timers, event_bus):
        """Test a matching grant unlocks optimistically, then relocks locally."""
        event_bus.publish("access.data.location.access_granted", "evt-1", {"location_id": "door-2"})

        assert reader.lock.state is LockState.UNSECURED
        assert [call.delay for call in timers.pending] == [5.0]

        await timers.fire_pending()

        assert reader.lock.state is LockState.SECURED
        transport.async_unlock.assert_not_awaited()
        transport.async_request.assert_not_awaited()

    def test_location_mismatch(self, reader, timers, event_bus):
        """Test a grant for another location is ignored."""
        event_bus.publish("access.data.location.access_granted", "evt-1", {"location_id": "door-9"})

        assert reader.lock.state is LockState.SECURED
        assert timers.pending == []

    def test_device_match(self, reader, event_bus):
        """Test a device-scoped grant for the reader unlocks it."""
        event_bus.publish("access.data.device.access_granted", "reader-1")

        assert reader.lock.state is LockState.UNSECURED

    def test_hub_ignores_grants(self, hub, timers, event_bus):
        """Test grants are only reconciled for readers."""
        event_bus.publish("access.data.location.access_granted", "evt-1", {"location_id": "door-1"})

        assert hub.lock.state is LockState.SECURED
        assert timers.pending == []


class TestRemoteUnlock:
    """Test remote unlock handling."""

    def test_device_remote_unlock(self, hub, telemetry, timers, event_bus):
        """Test a device-scoped remote unlock is observed."""
        event_bus.publish("access.data.device.remote_unlock", "hub-1")

        assert hub.lock.state is LockState.UNSECURED
        telemetry.publish.assert_called_once_with("aabbccddeeff", "lock", "false")
        assert len(timers.pending) == 1

    def test_location_requires_match(self, hub, event_bus):
        """Test a location-scoped remote unlock must target this device."""
        event_bus.publish("access.data.location.remote_unlock", "door-9")
        assert hub.lock.state is LockState.SECURED

        event_bus.publish("access.data.location.remote_unlock", "door-1")
        assert hub.lock.state is LockState.UNSECURED

    def test_timed_unlock_not_relocked(self, hub_record, transport, timers, event_bus):
        """Test a configured interval leaves relocking to the controller."""
        device = AccessHubDevice(
            hub_record, transport, timers.call_later, options={CONF_LOCK_DELAY_INTERVAL: 5}
        )
        device.register(event_bus.subscribe)

        event_bus.publish("access.data.device.remote_unlock", "hub-1")

        assert device.lock.state is LockState.UNSECURED
        assert timers.pending == []


class TestDoorbell:
    """Test ring correlation."""

    def test_ring_and_cancel(self, hub, telemetry, event_bus, listener):
        """Test a ring stays pending until its own cancellation arrives."""
        ring_callback = MagicMock()
        hub.add_ring_listener(ring_callback)

        event_bus.publish("access.remote_call", "call-1", {"device_id": "hub-1", "request_id": "req-1"})

        assert hub.ring_pending is True
        ring_callback.assert_called_once()
        telemetry.publish.assert_called_once_with("aabbccddeeff", "doorbell", "true")

        event_bus.publish("access.remote_call.change", "call-1", {"remote_call_request_id": "req-other"})
        assert hub.ring_pending is True

        event_bus.publish("access.remote_call.change", "call-1", {"remote_call_request_id": "req-1"})
        assert hub.ring_pending is False
        telemetry.publish.assert_called_with("aabbccddeeff", "doorbell", "false")
        assert listener.call_count == 2

    def test_ring_for_other_device(self, hub, event_bus):
        """Test a ring for another device is ignored."""
        event_bus.publish("access.remote_view", "view-1", {"connected_uah_id": "hub-2", "request_id": "r"})

        assert hub.ring_pending is False

    def test_not_doorbell_capable(self, hub_record, transport, timers, event_bus):
        """Test rings are ignored by devices without a doorbell."""
        hub_record["capabilities"] = ["is_hub", "dps_alarm"]
        device = AccessHubDevice(hub_record, transport, timers.call_later)
        device.register(event_bus.subscribe)

        event_bus.publish("access.remote_call", "call-1", {"device_id": "hub-1", "request_id": "r"})

        assert device.ring_pending is False

    def test_trigger_without_doorbell_entity(self, hub_record, transport, timers, telemetry, event_bus):
        """Test rings still drive the trigger when the doorbell sensor is disabled."""
        device = AccessHubDevice(
            hub_record,
            transport,
            timers.call_later,
            options={CONF_DOORBELL: False, CONF_DOORBELL_TRIGGER: True},
            telemetry=telemetry,
        )
        device.register(event_bus.subscribe)

        event_bus.publish("access.remote_call", "call-1", {"device_id": "hub-1", "request_id": "r"})

        assert device.options.doorbell is False
        assert device.options.doorbell_trigger is True
        assert device.ring_pending is True
        telemetry.publish.assert_called_once_with("aabbccddeeff", "doorbell", "true")

    def test_no_double_delivery(self, hub, event_bus):
        """Test a type-scoped event addressed by id is handled once."""
        ring_callback = MagicMock()
        hub.add_ring_listener(ring_callback)

        event_bus.publish("access.remote_call", "hub-1", {"request_id": "r"})

        ring_callback.assert_called_once()


class TestRouting:
    """Test subscription management."""

    def test_unknown_event(self, hub, telemetry, event_bus, listener):
        """Test unknown event types are ignored."""
        event_bus.publish("access.data.device.firmware", "hub-1", {"version": "2"})

        telemetry.publish.assert_not_called()
        listener.assert_not_called()

    def test_unregister(self, hub, timers, event_bus):
        """Test unregistering drops handlers and the pending relock."""
        event_bus.publish("access.data.device.remote_unlock", "hub-1")

        hub.unregister()

        assert all(not handlers for handlers in event_bus.handlers.values())
        assert timers.pending == []

        event_bus.publish("access.remote_call", "call-1", {"device_id": "hub-1", "request_id": "r"})
        assert hub.ring_pending is False

    def test_register_twice(self, hub, event_bus):
        """Test registering again does not duplicate subscriptions."""
        hub.register(event_bus.subscribe)

        assert len(event_bus.handlers["hub-1"]) == 1


class TestSetAccessMethod:
    """Test access method commands."""

    @pytest.fixture
    def device(self, hub_record, transport, timers):
        """Create a hub exposing an NFC toggle."""
        hub_record["extensions"] = [{
            "unique_id": "ext-nfc",
            "extension_name": "nfc",
            "target_config": [{"config_key": "nfc_enabled", "config_value": False}],
        }]
        return AccessHubDevice(hub_record, transport, timers.call_later)

    @pytest.mark.asyncio
    async def test_enable(self, device, transport):
        """Test the settings body carries the discovered key."""
        callback = MagicMock()
        device.add_listener(callback)

        assert await device.async_set_access_method(AccessMethodType.NFC, True) is True

        transport.async_request.assert_awaited_once_with(
            "/proxy/access/api/v2/device/hub-1/settings",
            method="PUT",
            json=[{"key": "nfc_enabled", "value": True}],
        )
        assert device.access_methods.get(AccessMethodType.NFC).current_state is True
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_unknown_method(self, device, transport):
        """Test undiscovered methods cannot be set."""
        assert await device.async_set_access_method(AccessMethodType.FACE, True) is False

        transport.async_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_offline(self, device, transport):
        """Test offline devices are not contacted."""
        device.snapshot = dataclasses.replace(device.snapshot, is_online=False)

        assert await device.async_set_access_method(AccessMethodType.NFC, True) is False

        assert isinstance(device.last_error, AccessOfflineError)
        transport.async_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_response(self, device, transport):
        """Test a failed request leaves the toggle unchanged."""
        transport.async_request.return_value = None

        assert await device.async_set_access_method(AccessMethodType.NFC, True) is False

        assert isinstance(device.last_error, AccessTransportError)
        assert device.access_methods.get(AccessMethodType.NFC).current_state is False


class TestTelemetryCommands:
    """Test lock commands received over telemetry."""

    @pytest.fixture
    def lock_set(self, hub, telemetry):
        """Return the registered lock set handler."""
        hub.register_telemetry()
        return telemetry.subscribe_set.call_args.args[3]

    def test_channels_registered(self, hub, telemetry):
        """Test doorbell, lock and sensor channels are exposed."""
        hub.register_telemetry()

        channels = [call.args[1] for call in telemetry.subscribe_get.call_args_list]
        assert channels == ["doorbell", "lock", "dps", "rel", "ren", "rex"]

    @pytest.mark.asyncio
    async def test_lock(self, hub, transport, lock_set):
        """Test "true" locks the device."""
        await lock_set("true")

        transport.async_unlock.assert_awaited_once_with(hub.snapshot, 0)

    @pytest.mark.asyncio
    async def test_hold_unlocked(self, hub, transport, lock_set):
        """Test "false" keeps the device unlocked."""
        await lock_set("false")

        transport.async_unlock.assert_awaited_once_with(hub.snapshot, math.inf)

    @pytest.mark.asyncio
    async def test_unknown_value(self, transport, lock_set):
        """Test other values are rejected."""
        await lock_set("maybe")

        transport.async_unlock.assert_not_awaited()
