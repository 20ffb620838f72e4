"""Lock commands and automatic relock for UniFi Access Hub integration."""
from __future__ import annotations

from dataclasses import dataclass
from functools import partial
import logging
import math
from typing import Callable, Optional

from ..const import (
    AUTO_RESET_DELAY,
    AUTO_RESET_MAX_ATTEMPTS,
    AUTO_RESET_RETRY_DELAY,
    G3_READER_RESET_DELAY,
    DeviceVariant,
    LockState,
)
from ..exceptions import (
    AccessAddressingError,
    AccessOfflineError,
    AccessRetryExhaustedError,
    AccessTransportError,
    UnifiAccessError,
)
from ..models import DeviceSnapshot, LockStateSource
from .transport import CallLater, CancelCallback, CommandTransport, async_confirmed_request

_LOGGER = logging.getLogger(__name__)


@dataclass
class LockResetTask:
    """A pending automatic relock."""

    snapshot: DeviceSnapshot
    attempt: int = 1
    delay: float = AUTO_RESET_DELAY
    cancel: Optional[CancelCallback] = None


class LockController:
    """Issues lock commands for one device and keeps it relocking.

    The controller owns the lock state exposed for its device: the
    telemetry-derived value, the optimistic override used by readers and
    the single pending relock task.
    """

    def __init__(
        self,
        name: str,
        variant: DeviceVariant,
        transport: CommandTransport,
        call_later: CallLater,
        get_snapshot: Callable[[], DeviceSnapshot],
        on_state_change: Callable[[LockState], None],
        lock_delay_interval: int | None = None,
        initial_state: LockState = LockState.UNKNOWN,
    ) -> None:
        """Initialize the controller."""
        self._name = name
        self._variant = variant
        self._transport = transport
        self._call_later = call_later
        self._get_snapshot = get_snapshot
        self._on_state_change = on_state_change
        self._lock_delay_interval = lock_delay_interval

        self.source = LockStateSource(derived=initial_state)
        self._state = initial_state
        self._reset_task: LockResetTask | None = None
        self.last_error: UnifiAccessError | None = None

        self._describe_unlock_behavior()

    def _describe_unlock_behavior(self) -> None:
        if self.is_reader:
            if self._lock_delay_interval is not None:
                _LOGGER.warning(
                    "%s: G3 readers have no timed unlock, ignoring the configured "
                    "lock delay interval of %s minutes",
                    self._name,
                    self._lock_delay_interval,
                )
            return

        if self._lock_delay_interval is None:
            _LOGGER.info(
                "%s: The lock relay will lock %d seconds after unlocking",
                self._name,
                AUTO_RESET_DELAY,
            )
        elif self._lock_delay_interval == 0:
            _LOGGER.info("%s: The lock relay will remain unlocked indefinitely", self._name)
        else:
            _LOGGER.info(
                "%s: The lock relay will remain unlocked for %d minutes after unlocking",
                self._name,
                self._lock_delay_interval,
            )

    @property
    def is_reader(self) -> bool:
        """Return True if the device is a G3 reader."""
        return self._variant is DeviceVariant.G3_READER

    @property
    def state(self) -> LockState:
        """Return the lock state currently exposed."""
        return self._state

    @property
    def uses_default_unlock(self) -> bool:
        """Return True if unlocks rely on the automatic relock."""
        return self.is_reader or self._lock_delay_interval is None

    @property
    def reset_task(self) -> LockResetTask | None:
        """Return the pending relock, if any."""
        return self._reset_task

    def _apply(self, state: LockState) -> None:
        if state == self._state:
            return
        self._state = state
        self._on_state_change(state)

    def unlock_duration(self, is_locking: bool) -> float | None:
        """Return the unlock duration in minutes for a command.

        None applies the device default, 0 locks and infinity keeps the
        lock released until told otherwise.
        """
        if is_locking:
            return 0

        if self.is_reader or self._lock_delay_interval is None:
            return None

        if self._lock_delay_interval == 0:
            return math.inf

        return self._lock_delay_interval

    def addressable_device(self, snapshot: DeviceSnapshot | None = None) -> DeviceSnapshot:
        """Return a snapshot the transport can address.

        Readers have no relay of their own and are commanded through their
        location, so a copy flagged as a hub is synthesized for them.
        """
        snapshot = snapshot or self._get_snapshot()

        if snapshot.is_hub or not self.is_reader:
            return snapshot

        location_id = snapshot.resolvable_location_id
        if location_id is None:
            raise AccessAddressingError(f"No addressable location for {self._name}")

        return snapshot.with_hub_address(location_id)

    async def _async_lock_location(self, device: DeviceSnapshot) -> None:
        location_id = device.resolvable_location_id
        if location_id is None:
            raise AccessAddressingError(f"No addressable location for {self._name}")

        endpoint = self._transport.endpoint("location")
        if endpoint is None:
            raise AccessTransportError("No location endpoint available")

        await async_confirmed_request(self._transport, f"{endpoint}/{location_id}/lock", "PUT")

    async def async_command(self, is_locking: bool) -> bool:
        """Lock or unlock the device. Returns False if the command failed."""
        action = "lock" if is_locking else "unlock"
        duration = self.unlock_duration(is_locking)

        try:
            if not self._get_snapshot().is_online:
                raise AccessOfflineError("Device is offline")

            if is_locking:
                self.cancel_reset()

            device = self.addressable_device()

            if self.is_reader and duration == 0:
                await self._async_lock_location(device)
            elif not await self._transport.async_unlock(device, duration):
                raise AccessTransportError(f"Controller refused to {action}")
        except UnifiAccessError as err:
            self.last_error = err
            _LOGGER.error("%s: Unable to %s: %s", self._name, action, err)
            return False

        target = LockState.SECURED if is_locking else LockState.UNSECURED
        if self.is_reader:
            self.source.set_override(target)
        self._apply(target)

        if not is_locking and duration is None:
            self.schedule_reset()

        return True

    async def async_hold_unlocked(self) -> bool:
        """Release the lock until told otherwise, leaving state to the next update."""
        try:
            if not self._get_snapshot().is_online:
                raise AccessOfflineError("Device is offline")

            self.cancel_reset()

            if not await self._transport.async_unlock(self.addressable_device(), math.inf):
                raise AccessTransportError("Controller refused to unlock")
        except UnifiAccessError as err:
            self.last_error = err
            _LOGGER.error("%s: Unable to unlock: %s", self._name, err)
            return False

        return True

    def observe_unlock(self, *, optimistic: bool = False) -> None:
        """Record an unlock reported by the controller.

        An optimistic unlock holds the override since no relay telemetry
        will ever confirm it.
        """
        if optimistic:
            self.source.set_override(LockState.UNSECURED)
        else:
            self.source.clear_override()

        self._apply(LockState.UNSECURED)

        if self.uses_default_unlock:
            self.schedule_reset()

    def observe_update(self, derived: LockState) -> bool:
        """Reconcile a confirmed device update. Returns True if the state changed."""
        self.source.clear_override()
        self.source.derived = derived
        state = self.source.effective

        if state == LockState.SECURED:
            self.cancel_reset()

        if state == self._state:
            return False

        self._apply(state)

        if state == LockState.UNSECURED and self.uses_default_unlock:
            self.schedule_reset()

        return True

    def schedule_reset(self) -> LockResetTask:
        """Start the automatic relock, replacing any pending one."""
        self.cancel_reset()

        delay = G3_READER_RESET_DELAY if self.is_reader else AUTO_RESET_DELAY
        task = LockResetTask(snapshot=self._get_snapshot(), delay=delay)
        self._reset_task = task
        task.cancel = self._call_later(delay, partial(self._async_fire_reset, task))

        _LOGGER.debug("%s: Automatic relock scheduled in %s seconds", self._name, delay)
        return task

    def cancel_reset(self) -> None:
        """Cancel the pending relock. Safe to call when none is pending."""
        task = self._reset_task
        self._reset_task = None
        if task is None:
            return

        if task.cancel is not None:
            task.cancel()
            task.cancel = None
        _LOGGER.debug("%s: Automatic relock cancelled", self._name)

    async def _async_relock(self, task: LockResetTask) -> None:
        if not self._get_snapshot().is_online:
            raise AccessOfflineError("Device is offline")

        if not await self._transport.async_unlock(self.addressable_device(task.snapshot), 0):
            raise AccessTransportError("Controller refused to lock")

    async def _async_fire_reset(self, task: LockResetTask) -> None:
        # A cancelled or replaced task does nothing
        if task is not self._reset_task:
            return
        task.cancel = None

        if self.is_reader:
            self._reset_task = None
            self.source.set_override(LockState.SECURED)
            self._apply(LockState.SECURED)
            return

        try:
            await self._async_relock(task)
        except UnifiAccessError as err:
            if task is not self._reset_task:
                return

            if task.attempt >= AUTO_RESET_MAX_ATTEMPTS:
                self._reset_task = None
                self.last_error = AccessRetryExhaustedError(
                    f"Gave up relocking after {task.attempt} attempts: {err}"
                )
                _LOGGER.error("%s: %s", self._name, self.last_error)
                return

            _LOGGER.warning(
                "%s: Automatic relock attempt %d of %d failed, retrying in %s seconds: %s",
                self._name,
                task.attempt,
                AUTO_RESET_MAX_ATTEMPTS,
                AUTO_RESET_RETRY_DELAY,
                err,
            )
            task.attempt += 1
            task.delay = AUTO_RESET_RETRY_DELAY
            task.cancel = self._call_later(task.delay, partial(self._async_fire_reset, task))
            return

        if task is not self._reset_task:
            return

        self._reset_task = None
        self._apply(LockState.SECURED)
