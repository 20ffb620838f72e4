"""UniFi Access controller API client.

This module talks to the Access application running on a UniFi console.
It provides what the reconciliation engine needs from the controller:

- Cookie based login with the console's CSRF token
- A single device fetch used to seed devices at setup
- Lock rule commands (unlock, keep unlocked, timed unlock, relock)
- Raw requests against the device and location endpoints
- The realtime notification websocket
"""
from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import Any, Awaitable, Callable, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout, CookieJar

from ..const import API_SUCCESS_CODE, API_TIMEOUT, WEBSOCKET_RECONNECT_DELAY
from ..exceptions import AccessAuthError, AccessTransportError, UnifiAccessError
from ..models import AccessEventPacket, DeviceSnapshot

_LOGGER = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"
ACCESS_API_PATH = "/proxy/access/api/v2"
DEVICES_PATH = f"{ACCESS_API_PATH}/devices"
NOTIFICATION_PATH = f"{ACCESS_API_PATH}/ws/notification"
CSRF_HEADER = "X-CSRF-Token"

ENDPOINTS = {
    "device": f"{ACCESS_API_PATH}/device",
    "location": f"{ACCESS_API_PATH}/location",
}


def lock_rule(duration: float | None) -> dict[str, Any] | None:
    """Return the lock rule body for an unlock duration in minutes.

    None means a plain unlock that relocks on the device default.
    """
    if duration is None:
        return None
    if duration == 0:
        return {"type": "reset"}
    if math.isinf(duration):
        return {"type": "keep_unlock"}
    return {"type": "custom", "interval": int(duration)}


class AccessApiClient:
    """UniFi Access API client."""

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        verify_ssl: bool = False,
        session: Optional[ClientSession] = None,
    ) -> None:
        """Initialize the client.

        Args:
            host: Console hostname or IP address
            username: Local console user
            password: Local console password
            verify_ssl: Verify the console certificate
            session: aiohttp session (optional)
        """
        self._host = host
        self._username = username
        self._password = password
        self._verify_ssl = verify_ssl

        self._session = session
        self._own_session = session is None

        self._csrf_token: Optional[str] = None
        self._authenticated = False
        self._listen_task: Optional[asyncio.Task] = None

    @property
    def _base_url(self) -> str:
        """Return the console base URL."""
        return f"https://{self._host}"

    async def _get_session(self) -> ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = ClientTimeout(total=API_TIMEOUT)
            # Consoles are usually addressed by IP, which the default jar refuses
            self._session = ClientSession(timeout=timeout, cookie_jar=CookieJar(unsafe=True))
            self._own_session = True
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._csrf_token:
            headers[CSRF_HEADER] = self._csrf_token
        return headers

    async def close(self) -> None:
        """Stop listening and close the client."""
        await self.async_stop_listening()
        if self._own_session and self._session and not self._session.closed:
            await self._session.close()

    async def authenticate(self) -> bool:
        """Log in to the console.

        Returns:
            True if authentication successful
        """
        session = await self._get_session()
        _LOGGER.debug("Logging in to UniFi Access at %s", self._host)

        try:
            async with session.post(
                f"{self._base_url}{LOGIN_PATH}",
                json={
                    "username": self._username,
                    "password": self._password,
                    "rememberMe": True,
                    "token": "",
                },
                ssl=self._verify_ssl,
            ) as response:
                if response.status in (401, 403):
                    raise AccessAuthError("Invalid UniFi Access credentials")

                if response.status != 200:
                    raise AccessTransportError(f"Login failed: HTTP {response.status}")

                self._csrf_token = response.headers.get(CSRF_HEADER)
        except aiohttp.ClientError as err:
            raise AccessTransportError(f"Connection error: {err}") from err

        self._authenticated = True
        _LOGGER.info("Successfully authenticated with UniFi Access at %s", self._host)
        return True

    def endpoint(self, kind: str) -> str | None:
        """Return the base path of an endpoint kind, or None if unknown."""
        return ENDPOINTS.get(kind)

    async def async_request(
        self,
        path: str,
        method: str = "GET",
        json: Any = None,
    ) -> aiohttp.ClientResponse | None:
        """Make a raw request to the console.

        The body is read before returning, so the response can be decoded
        after the connection has been released.

        Returns:
            The response, or None if the request could not be completed
        """
        if not self._authenticated:
            try:
                await self.authenticate()
            except UnifiAccessError as err:
                _LOGGER.error("Unable to log in to UniFi Access: %s", err)
                return None

        session = await self._get_session()
        _LOGGER.debug("UniFi Access request: %s %s", method, path)

        try:
            async with session.request(
                method,
                f"{self._base_url}{path}",
                headers=self._headers(),
                json=json,
                ssl=self._verify_ssl,
            ) as response:
                await response.read()

                if response.status == 401:
                    # Session expired, log in again on the next request
                    self._authenticated = False
                    _LOGGER.warning("UniFi Access session expired")
                    return None

                if CSRF_HEADER in response.headers:
                    self._csrf_token = response.headers[CSRF_HEADER]

                return response
        except aiohttp.ClientError as err:
            _LOGGER.error("UniFi Access request %s %s failed: %s", method, path, err)
            return None

    async def _async_success(self, path: str, method: str, body: Any = None) -> bool:
        response = await self.async_request(path, method, body)
        if response is None:
            return False

        try:
            data = await response.json(content_type=None)
        except ValueError:
            _LOGGER.error("Invalid JSON response from %s", path)
            return False

        if not isinstance(data, dict) or data.get("code") != API_SUCCESS_CODE:
            _LOGGER.error("UniFi Access rejected %s %s: %s", method, path, data)
            return False

        return True

    async def async_get_devices(self) -> list[dict[str, Any]]:
        """Fetch every device record known to the controller.

        Returns:
            List of raw device records
        """
        response = await self.async_request(DEVICES_PATH)
        if response is None:
            raise AccessTransportError("Unable to fetch UniFi Access devices")

        try:
            data = await response.json(content_type=None)
        except ValueError as err:
            raise AccessTransportError(f"Invalid JSON response: {err}") from err

        if not isinstance(data, dict) or data.get("code") != API_SUCCESS_CODE:
            raise AccessTransportError(f"Unexpected device list: {data}")

        devices = data.get("data") or []
        _LOGGER.debug("Fetched %d UniFi Access devices", len(devices))
        return [device for device in devices if isinstance(device, dict)]

    async def async_unlock(self, device: DeviceSnapshot, duration: float | None) -> bool:
        """Apply an unlock duration to a hub-addressable device.

        Args:
            device: Device to command, flagged as a hub with a location
            duration: None to unlock once, 0 to relock, infinity to keep
                unlocked, otherwise minutes to stay unlocked

        Returns:
            True if the controller accepted the command
        """
        location_id = device.resolvable_location_id
        if not device.is_hub or location_id is None:
            _LOGGER.error("%s cannot be unlocked: no hub location", device.name or device.unique_id)
            return False

        location = f"{ENDPOINTS['location']}/{location_id}"
        rule = lock_rule(duration)
        if rule is None:
            return await self._async_success(f"{location}/unlock", "PUT")

        return await self._async_success(f"{location}/lock_rule", "PUT", rule)

    async def async_start_listening(
        self,
        on_packet: Callable[[AccessEventPacket], Awaitable[None] | None],
    ) -> None:
        """Start the realtime notification listener."""
        if self._listen_task is not None and not self._listen_task.done():
            return
        self._listen_task = asyncio.create_task(self._async_listen(on_packet))

    async def async_stop_listening(self) -> None:
        """Stop the realtime notification listener."""
        task = self._listen_task
        self._listen_task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _async_listen(
        self,
        on_packet: Callable[[AccessEventPacket], Awaitable[None] | None],
    ) -> None:
        """Listen for notifications, reconnecting after a fixed delay."""
        url = f"wss://{self._host}{NOTIFICATION_PATH}"

        while True:
            try:
                if not self._authenticated:
                    await self.authenticate()

                session = await self._get_session()
                async with session.ws_connect(
                    url, headers=self._headers(), ssl=self._verify_ssl, heartbeat=30
                ) as websocket:
                    _LOGGER.info("Connected to UniFi Access notifications")
                    async for message in websocket:
                        if message.type == aiohttp.WSMsgType.TEXT:
                            await self._async_dispatch(message.data, on_packet)
                        elif message.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                            break
                _LOGGER.warning("UniFi Access notification stream closed")
            except AccessAuthError as err:
                _LOGGER.error("UniFi Access notification login failed: %s", err)
            except (aiohttp.ClientError, UnifiAccessError) as err:
                self._authenticated = False
                _LOGGER.warning("UniFi Access notification stream error: %s", err)

            await asyncio.sleep(WEBSOCKET_RECONNECT_DELAY)

    async def _async_dispatch(
        self,
        text: str,
        on_packet: Callable[[AccessEventPacket], Awaitable[None] | None],
    ) -> None:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            _LOGGER.debug("Ignoring non-JSON notification: %s", text[:200])
            return

        if not isinstance(payload, dict) or "event" not in payload:
            return

        result = on_packet(AccessEventPacket.from_dict(payload))
        if asyncio.iscoroutine(result):
            await result
