"""Pytest fixtures for UniFi Access Hub tests."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.unifi_access_hub.models import AccessEventPacket


@dataclass
class ScheduledCall:
    """A callback recorded by the fake timer."""

    delay: float
    action: Callable[[], Awaitable[None]]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    async def fire(self) -> None:
        if self.cancelled or self.fired:
            return
        self.fired = True
        await self.action()


@dataclass
class FakeTimers:
    """Deterministic replacement for Home Assistant's async_call_later."""

    calls: list[ScheduledCall] = field(default_factory=list)

    def call_later(self, delay: float, action: Callable[[], Awaitable[None]]) -> Callable[[], None]:
        call = ScheduledCall(delay, action)
        self.calls.append(call)
        return call.cancel

    @property
    def pending(self) -> list[ScheduledCall]:
        return [call for call in self.calls if not call.cancelled and not call.fired]

    async def fire_pending(self) -> int:
        """Fire every call pending right now. Returns how many fired."""
        pending = self.pending
        for call in pending:
            await call.fire()
        return len(pending)


class FakeEventBus:
    """String keyed event channel, as the coordinator provides."""

    def __init__(self) -> None:
        self.handlers: dict[str, list[Callable[[AccessEventPacket], None]]] = {}

    def subscribe(self, key: str, handler: Callable[[AccessEventPacket], None]) -> Callable[[], None]:
        self.handlers.setdefault(str(key), []).append(handler)
        return lambda: self.handlers[str(key)].remove(handler)

    def publish(self, event: str, event_object_id: str = "", data: dict[str, Any] | None = None) -> None:
        packet = AccessEventPacket(event=event, event_object_id=event_object_id, data=data or {})
        for key in (packet.event, packet.event_object_id):
            for handler in list(self.handlers.get(key, [])):
                handler(packet)


def success_response(code: str = "SUCCESS") -> MagicMock:
    """Create a raw response whose JSON body carries a result code."""
    response = MagicMock()
    response.status = 200
    response.json = AsyncMock(return_value={"code": code, "msg": "", "data": {}})
    return response


@pytest.fixture
def timers():
    """Create a fake timer."""
    return FakeTimers()


@pytest.fixture
def event_bus():
    """Create a fake event channel."""
    return FakeEventBus()


@pytest.fixture
def transport():
    """Create a mock command transport."""
    mock = MagicMock()
    mock.async_unlock = AsyncMock(return_value=True)
    mock.async_request = AsyncMock(return_value=success_response())
    mock.endpoint = MagicMock(
        side_effect=lambda kind: {
            "device": "/proxy/access/api/v2/device",
            "location": "/proxy/access/api/v2/location",
        }.get(kind)
    )
    return mock


@pytest.fixture
def telemetry():
    """Create a mock telemetry publisher."""
    return MagicMock()


@pytest.fixture
def hub_record():
    """Create a raw UA Hub record."""
    return {
        "unique_id": "hub-1",
        "device_type": "UAH",
        "alias": "Front Door Hub",
        "mac": "aabbccddeeff",
        "is_online": True,
        "capabilities": ["is_hub", "door_bell", "dps_alarm"],
        "location_id": "door-1",
        "configs": [
            {"key": "input_state_rly-lock_dry", "value": "off"},
            {"key": "wiring_state_dps-neg", "value": "on"},
            {"key": "wiring_state_dps-pos", "value": "on"},
            {"key": "input_state_dps", "value": "on"},
            {"key": "wiring_state_rel-neg", "value": "on"},
            {"key": "wiring_state_rel-pos", "value": "on"},
            {"key": "input_state_rel", "value": "off"},
        ],
        "extensions": [],
    }


@pytest.fixture
def reader_record():
    """Create a raw G3 reader record."""
    return {
        "unique_id": "reader-1",
        "device_type": "UA-G3-Reader",
        "alias": "Side Reader",
        "mac": "112233445566",
        "is_online": True,
        "capabilities": [],
        "location_id": "door-2",
        "configs": [],
        "extensions": [],
    }


@pytest.fixture
def mini_record():
    """Create a raw UA Hub Door Mini record."""
    return {
        "unique_id": "mini-1",
        "device_type": "UA-Hub-Door-Mini",
        "alias": "Garage Mini",
        "mac": "665544332211",
        "is_online": True,
        "capabilities": ["is_hub", "dps_alarm"],
        "location_id": "door-3",
        "configs": [
            {"key": "output_d1_lock_relay", "value": "off"},
            {"key": "wiring_state_d1-dps-neg", "value": "on"},
            {"key": "wiring_state_d1-dps-pos", "value": "on"},
            {"key": "input_d1_dps", "value": "on"},
            {"key": "input_d1_rex", "value": "off"},
        ],
        "extensions": [],
    }
