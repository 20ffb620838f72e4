"""Data models for UniFi Access Hub integration."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from .const import (
    CAPABILITY_HUB,
    CONF_DOORBELL,
    CONF_DOORBELL_TRIGGER,
    CONF_DPS,
    CONF_LOCK_DELAY_INTERVAL,
    CONF_LOCK_TRIGGER,
    CONF_LOG_DOORBELL,
    CONF_LOG_DPS,
    CONF_LOG_LOCK,
    CONF_LOG_REL,
    CONF_LOG_REN,
    CONF_LOG_REX,
    CONF_REL,
    CONF_REN,
    CONF_REX,
    AccessMethodType,
    LockState,
    SensorChannel,
)


@dataclass(frozen=True)
class TargetConfig:
    """A single key/value entry nested in a device extension."""

    key: str
    value: Any = None
    tag: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TargetConfig":
        """Build from a controller payload entry."""
        return cls(
            key=str(data.get("config_key") or data.get("key") or ""),
            value=data.get("config_value", data.get("value")),
            tag=data.get("config_tag") or data.get("tag"),
        )


@dataclass(frozen=True)
class ExtensionRecord:
    """Representation of a device extension."""

    unique_id: Optional[str] = None
    device_id: Optional[str] = None
    extension_name: Optional[str] = None
    source_id: Optional[str] = None
    target_name: Optional[str] = None
    target_type: Optional[str] = None
    target_value: Optional[str] = None
    target_config: tuple[TargetConfig, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExtensionRecord":
        """Build from a controller payload entry."""
        configs = data.get("target_config") or []
        return cls(
            unique_id=data.get("unique_id"),
            device_id=data.get("device_id"),
            extension_name=data.get("extension_name"),
            source_id=data.get("source_id"),
            target_name=data.get("target_name"),
            target_type=data.get("target_type"),
            target_value=data.get("target_value"),
            target_config=tuple(
                TargetConfig.from_dict(entry) for entry in configs if isinstance(entry, Mapping)
            ),
        )

    @property
    def identity_fields(self) -> tuple[Optional[str], ...]:
        """Return the string fields used to recognize an access method."""
        return (
            self.extension_name,
            self.target_name,
            self.target_type,
            self.target_value,
            self.source_id,
        )


@dataclass(frozen=True)
class DeviceSnapshot:
    """Immutable view of one physical device as last reported."""

    unique_id: str
    device_type: str = ""
    name: str = ""
    mac: str = ""
    is_online: bool = True
    capabilities: frozenset[str] = frozenset()
    configs: Mapping[str, Any] = field(default_factory=dict)
    extensions: tuple[ExtensionRecord, ...] = ()
    location_id: Optional[str] = None
    door_id: Optional[str] = None
    firmware_version: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeviceSnapshot":
        """Build from a controller device record."""
        configs: dict[str, Any] = {}
        for entry in data.get("configs") or []:
            if isinstance(entry, Mapping) and "key" in entry:
                configs.setdefault(entry["key"], entry.get("value"))

        door = data.get("door")
        door_id = data.get("door_id")
        if door_id is None and isinstance(door, Mapping):
            door_id = door.get("unique_id")

        is_online = data.get("is_online", data.get("is_connected", True))

        return cls(
            unique_id=str(data.get("unique_id") or data.get("id") or ""),
            device_type=str(data.get("device_type") or ""),
            name=str(data.get("alias") or data.get("name") or ""),
            mac=str(data.get("mac") or ""),
            is_online=bool(is_online),
            capabilities=frozenset(data.get("capabilities") or ()),
            configs=configs,
            extensions=tuple(
                ExtensionRecord.from_dict(entry)
                for entry in data.get("extensions") or []
                if isinstance(entry, Mapping)
            ),
            location_id=data.get("location_id") or None,
            door_id=door_id or None,
            firmware_version=data.get("firmware") or data.get("version"),
        )

    def config(self, key: str) -> Any:
        """Return a raw configuration value, or None when absent."""
        return self.configs.get(key)

    def has_capability(self, *capabilities: str) -> bool:
        """Return True if any of the given capabilities is advertised."""
        return any(capability in self.capabilities for capability in capabilities)

    @property
    def is_hub(self) -> bool:
        """Return True if commands can be addressed to this device directly."""
        return CAPABILITY_HUB in self.capabilities

    @property
    def resolvable_location_id(self) -> Optional[str]:
        """Return the location id, falling back to the associated door."""
        return self.location_id or self.door_id

    def with_hub_address(self, location_id: str) -> "DeviceSnapshot":
        """Return a copy addressable as a hub at the given location."""
        return dataclasses.replace(
            self,
            capabilities=self.capabilities | {CAPABILITY_HUB},
            location_id=location_id,
        )


@dataclass
class AccessMethodDefinition:
    """A discovered access method toggle."""

    method_type: AccessMethodType
    config_key: str
    extension_key: str
    current_state: bool = False


@dataclass(frozen=True)
class AccessEventPacket:
    """Representation of a realtime controller event."""

    event: str
    event_object_id: str = ""
    data: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AccessEventPacket":
        """Build from a decoded websocket message."""
        data = payload.get("data")
        return cls(
            event=str(payload.get("event") or ""),
            event_object_id=str(payload.get("event_object_id") or ""),
            data=data if isinstance(data, Mapping) else {},
        )

    @property
    def request_id(self) -> Optional[str]:
        """Return the ring request id of a remote view/call event."""
        return self.data.get("request_id")

    @property
    def cancel_request_id(self) -> Optional[str]:
        """Return the ring request id referenced by a cancellation."""
        return self.data.get("remote_call_request_id")

    @property
    def target_ids(self) -> tuple[str, ...]:
        """Return every identifier this event could be aimed at."""
        ids = [self.event_object_id]
        for key in ("device_id", "location_id", "door_id", "unique_id"):
            value = self.data.get(key)
            if isinstance(value, str):
                ids.append(value)
        location = self.data.get("location")
        if isinstance(location, Mapping) and isinstance(location.get("id"), str):
            ids.append(location["id"])
        return tuple(value for value in ids if value)


@dataclass
class LockStateSource:
    """Lock state with an optimistic override taking precedence."""

    derived: LockState = LockState.UNKNOWN
    override: Optional[LockState] = None

    @property
    def effective(self) -> LockState:
        """Return the override when present, otherwise the derived value."""
        return self.override if self.override is not None else self.derived

    def set_override(self, state: LockState) -> None:
        """Hold an optimistic state until the next confirmed update."""
        self.override = state

    def clear_override(self) -> None:
        """Trust the derived value again."""
        self.override = None


@dataclass
class DeviceOptions:
    """Feature flags resolved once per device."""

    lock_delay_interval: Optional[int] = None
    doorbell: bool = True
    doorbell_trigger: bool = False
    lock_trigger: bool = False
    sensors: dict[SensorChannel, bool] = field(
        default_factory=lambda: {channel: True for channel in SensorChannel}
    )
    log_lock: bool = True
    log_doorbell: bool = True
    log_sensors: dict[SensorChannel, bool] = field(
        default_factory=lambda: {channel: True for channel in SensorChannel}
    )

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any],
        *,
        doorbell_capable: bool = True,
        dps_capable: bool = True,
    ) -> "DeviceOptions":
        """Resolve options for a device, gated by its capabilities."""
        delay = options.get(CONF_LOCK_DELAY_INTERVAL)
        if delay in ("", None):
            delay = None
        else:
            delay = int(delay)
            # Invalid intervals fall back to the default unlock behavior
            if delay < 0:
                delay = None

        return cls(
            lock_delay_interval=delay,
            doorbell=doorbell_capable and options.get(CONF_DOORBELL, True),
            doorbell_trigger=doorbell_capable and options.get(CONF_DOORBELL_TRIGGER, False),
            lock_trigger=options.get(CONF_LOCK_TRIGGER, False),
            sensors={
                SensorChannel.DPS: dps_capable and options.get(CONF_DPS, True),
                SensorChannel.REL: options.get(CONF_REL, True),
                SensorChannel.REN: options.get(CONF_REN, True),
                SensorChannel.REX: options.get(CONF_REX, True),
            },
            log_lock=options.get(CONF_LOG_LOCK, True),
            log_doorbell=options.get(CONF_LOG_DOORBELL, True),
            log_sensors={
                SensorChannel.DPS: options.get(CONF_LOG_DPS, True),
                SensorChannel.REL: options.get(CONF_LOG_REL, True),
                SensorChannel.REN: options.get(CONF_LOG_REN, True),
                SensorChannel.REX: options.get(CONF_LOG_REX, True),
            },
        )
