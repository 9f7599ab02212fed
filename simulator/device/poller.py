"""Refresh device snapshots from simctl and poll until a condition holds."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from simulator.device.simctl import SimctlBackend
from simulator.models import Device, WaitTimeoutError

logger = logging.getLogger("simulator.poller")

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_WAIT_TIMEOUT = 30.0


class DevicePoller:
    """Busy-polls `simctl list devices`; there is no push notification to subscribe to."""

    def __init__(
        self,
        simctl: SimctlBackend,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.simctl = simctl
        self.poll_interval = poll_interval
        self._clock = clock

    async def reload(self, device: Device) -> bool:
        """Overwrite every field of `device` from a fresh listing.

        Returns False, leaving the snapshot untouched, if the listing no
        longer contains the device. Listing failures propagate.
        """
        devices = await self.simctl.list_devices()
        fresh = next((d for d in devices if d.udid == device.udid), None)
        if fresh is None:
            return False
        for name in Device.model_fields:
            setattr(device, name, getattr(fresh, name))
        return True

    async def wait(
        self,
        device: Device,
        until: Callable[[Device], bool],
        timeout: float = DEFAULT_WAIT_TIMEOUT,
    ) -> Device:
        """Poll until `until(device)` is true, updating `device` in place each tick.

        Returns the (same, refreshed) device.

        Raises:
            WaitTimeoutError: the condition didn't hold before the deadline.
            SimulatorError: a listing failed; not retried.
        """
        start = self._clock()
        deadline = start + timeout
        polls = 0
        while True:
            await asyncio.sleep(self.poll_interval)
            polls += 1
            present = await self.reload(device)
            if present:
                if until(device):
                    logger.info(
                        "Device %s ready after %d polls (%.1fs)",
                        device.udid[:8], polls, self._clock() - start,
                    )
                    return device
            else:
                logger.debug("Device %s missing from listing, keeping last snapshot", device.udid[:8])

            if self._clock() >= deadline:
                logger.info("Timed out waiting for device %s (state=%s)", device.udid[:8], device.state)
                detail = f"last state: {device.state}"
                if not present:
                    detail = f"device not present in last listing, {detail}"
                raise WaitTimeoutError(
                    f"Device {device.udid} did not reach the expected state within {timeout}s ({detail})",
                    tool="simctl",
                )
