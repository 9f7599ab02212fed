"""SimctlBackend — async wrapper around xcrun simctl listing and lifecycle commands."""

from __future__ import annotations

import json
import logging
import re

from pydantic import ValidationError

from simulator.device.shell import Shell
from simulator.models import Device, ListingError, Runtime

logger = logging.getLogger("simulator.simctl")


class SimctlBackend:
    """Lists and controls simulators via `xcrun simctl` subprocess calls."""

    def __init__(self, shell: Shell) -> None:
        self.shell = shell

    async def _list_json(self, kind: str) -> dict:
        """Run `simctl list <kind> --json` and return the decoded object."""
        stdout = await self.shell.simctl("list", kind, "--json")
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ListingError(f"simctl list {kind} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ListingError(f"simctl list {kind} returned {type(data).__name__}, expected object")
        return data

    async def list_devices(self) -> list[Device]:
        """List every simulator (available or not) from `simctl list devices --json`."""
        data = await self._list_json("devices")
        runtimes = data.get("devices")
        if not isinstance(runtimes, dict):
            return []

        devices: list[Device] = []
        for runtime_key, device_list in runtimes.items():
            if not isinstance(device_list, list):
                raise ListingError(
                    f"devices under {runtime_key} is {type(device_list).__name__}, expected list"
                )
            runtime_name = self._parse_runtime(runtime_key)
            for entry in device_list:
                try:
                    devices.append(Device.model_validate({**entry, "runtimeName": runtime_name}))
                except (ValidationError, TypeError) as e:
                    raise ListingError(f"unexpected device entry under {runtime_key}: {e}") from e
        return devices

    async def list_runtimes(self) -> list[Runtime]:
        """List installed runtimes from `simctl list runtimes --json`."""
        data = await self._list_json("runtimes")
        entries = data.get("runtimes") or []
        if not isinstance(entries, list):
            raise ListingError(f"runtimes is {type(entries).__name__}, expected list")
        runtimes: list[Runtime] = []
        for entry in entries:
            try:
                runtimes.append(Runtime.model_validate(entry))
            except (ValidationError, TypeError) as e:
                raise ListingError(f"unexpected runtime entry: {e}") from e
        return runtimes

    @staticmethod
    def _parse_runtime(runtime_key: str) -> str:
        """Extract a human-readable runtime name from a listing key.

        e.g. 'com.apple.CoreSimulator.SimRuntime.iOS-18-6' -> 'iOS 18.6'
        Older Xcodes already key the listing by name ('iOS 12.1'); those pass through.
        """
        match = re.search(r"SimRuntime\.(.+)$", runtime_key)
        if not match:
            return runtime_key
        raw = match.group(1)  # e.g. 'iOS-18-6'
        parts = raw.split("-", 1)
        if len(parts) == 2:
            return f"{parts[0]} {parts[1].replace('-', '.')}"
        return raw

    async def boot(self, udid: str) -> None:
        """Boot a simulator."""
        await self.shell.simctl("boot", udid)

    async def shutdown(self, udid: str) -> None:
        """Shutdown a simulator."""
        await self.shell.simctl("shutdown", udid)

    async def erase(self, udid: str) -> None:
        """Erase a simulator's contents and settings."""
        await self.shell.simctl("erase", udid)

    async def spawn(self, udid: str, *argv: str) -> str:
        """Run a binary inside a booted simulator and return its stdout."""
        return await self.shell.simctl("spawn", udid, *argv)
