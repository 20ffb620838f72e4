"""Command transport contract for the reconciliation engine."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Protocol

from ..const import API_SUCCESS_CODE
from ..exceptions import AccessResponseError, AccessTransportError
from ..models import DeviceSnapshot

_LOGGER = logging.getLogger(__name__)

CancelCallback = Callable[[], None]
CallLater = Callable[[float, Callable[[], Awaitable[None]]], CancelCallback]


class TransportResponse(Protocol):
    """Response returned by a raw request."""

    status: int

    async def json(self, *args: Any, **kwargs: Any) -> Any:
        """Decode the response body."""


class CommandTransport(Protocol):
    """What the engine needs from the controller client."""

    async def async_unlock(self, device: DeviceSnapshot, duration: float | None) -> bool:
        """Set the unlock duration of a hub-addressable device."""

    async def async_request(
        self, path: str, method: str = "GET", json: Any = None
    ) -> TransportResponse | None:
        """Issue a raw request, returning None when the call failed."""

    def endpoint(self, kind: str) -> str | None:
        """Resolve the base path for an endpoint kind."""


async def async_confirmed_request(
    transport: CommandTransport,
    path: str,
    method: str = "PUT",
    payload: Any = None,
) -> dict[str, Any]:
    """Issue a raw request and require a successful JSON confirmation."""
    response = await transport.async_request(path, method=method, json=payload)
    if response is None:
        raise AccessTransportError(f"No response from {method} {path}")

    try:
        data = await response.json(content_type=None)
    except ValueError as err:
        raise AccessResponseError(f"Invalid JSON from {path}: {err}") from err

    if not isinstance(data, dict):
        raise AccessResponseError(f"Unexpected payload from {path}: {data!r}")

    if data.get("code") != API_SUCCESS_CODE:
        raise AccessResponseError(
            f"{method} {path} rejected: {data.get('code')} {data.get('msg', '')}".rstrip()
        )

    _LOGGER.debug("%s %s confirmed", method, path)
    return data
