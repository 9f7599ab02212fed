"""SimulatorController — one entry point for device listings, paths, services and lifecycle."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from simulator.config import SimulatorConfig
from simulator.device.launchctl import parse_launchctl_list
from simulator.device.plist import read_plist, set_plist_value
from simulator.device.poller import DevicePoller
from simulator.device.runtimes import RuntimePathResolver
from simulator.device.shell import Shell
from simulator.device.simctl import SimctlBackend
from simulator.device.xcode import Xcode
from simulator.models import (
    BOOTED,
    Device,
    DeviceNotFoundError,
    PlistError,
    Runtime,
    RuntimeNotFoundError,
    RuntimePlatform,
    Service,
)

logger = logging.getLogger("simulator.controller")


class SimulatorController:
    """Wires a Shell into the simctl backend, Xcode lookups, the runtime resolver and the poller."""

    def __init__(self, shell: Shell | None = None, config: SimulatorConfig | None = None) -> None:
        self.config = config or SimulatorConfig()
        self.shell = shell or Shell()
        self.simctl = SimctlBackend(self.shell)
        self.xcode = Xcode(self.shell)
        self.resolver = RuntimePathResolver(self.xcode, self.config.system_runtimes_dir)
        self.poller = DevicePoller(self.simctl, poll_interval=self.config.poll_interval)

    # ----------------------------------------------------------------
    # Listings
    # ----------------------------------------------------------------

    async def list_devices(self) -> list[Device]:
        return await self.simctl.list_devices()

    async def get_device(self, udid: str) -> Device:
        """Return the current snapshot of one device, or raise DeviceNotFoundError."""
        for device in await self.simctl.list_devices():
            if device.udid == udid:
                return device
        raise DeviceNotFoundError(f"Device {udid} not found", tool="simctl")

    async def list_runtimes(self) -> list[Runtime]:
        return await self.simctl.list_runtimes()

    async def latest_runtime(self, platform: RuntimePlatform) -> Runtime | None:
        """Highest-version available runtime for a platform, or None if none is installed."""
        candidates = [
            r for r in await self.simctl.list_runtimes()
            if r.platform == platform and r.is_available is not False
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda r: r.version_tuple)

    # ----------------------------------------------------------------
    # Paths
    # ----------------------------------------------------------------

    def devices_path(self) -> Path:
        """~/Library/Developer/CoreSimulator/Devices unless configured otherwise."""
        return self.config.devices_dir

    def home_path(self, device: Device) -> Path:
        return self.devices_path() / device.udid

    def device_plist_path(self, device: Device) -> Path:
        return self.home_path(device) / "device.plist"

    def global_preferences_plist_path(self, device: Device) -> Path:
        return self.home_path(device) / "data" / "Library" / "Preferences" / ".GlobalPreferences.plist"

    # ----------------------------------------------------------------
    # Device metadata
    # ----------------------------------------------------------------

    async def device_plist(self, device: Device) -> dict:
        """Contents of the device's device.plist (UDID, deviceType, runtime, name, state...)."""
        return await read_plist(self.device_plist_path(device))

    async def _device_plist_string(self, device: Device, key: str) -> str:
        value = (await self.device_plist(device)).get(key)
        if not isinstance(value, str):
            raise PlistError(
                f"{self.device_plist_path(device)} has no string {key!r}",
                tool="plutil",
            )
        return value

    async def device_type(self, device: Device) -> str:
        """e.g. com.apple.CoreSimulator.SimDeviceType.iPhone-XR"""
        return await self._device_plist_string(device, "deviceType")

    async def runtime_identifier(self, device: Device) -> str:
        """e.g. com.apple.CoreSimulator.SimRuntime.iOS-12-1"""
        return await self._device_plist_string(device, "runtime")

    async def runtime(self, device: Device) -> Runtime:
        """The installed Runtime the device runs against."""
        identifier = await self.runtime_identifier(device)
        for runtime in await self.simctl.list_runtimes():
            if runtime.identifier == identifier:
                return runtime
        raise RuntimeNotFoundError(f"runtime {identifier} is not installed", tool="simctl")

    async def global_preferences(self, device: Device) -> dict:
        """The device's .GlobalPreferences.plist (AppleLocale, AppleLanguages, ...)."""
        return await read_plist(self.global_preferences_plist_path(device))

    async def set_locale(self, device: Device, locale: str) -> None:
        """Set AppleLocale; takes effect on the next boot."""
        await set_plist_value(self.shell, self.global_preferences_plist_path(device), "AppleLocale", locale)

    async def set_language(self, device: Device, language: str) -> None:
        """Make `language` the only entry of AppleLanguages; takes effect on the next boot."""
        await set_plist_value(self.shell, self.global_preferences_plist_path(device), "AppleLanguages", [language])

    # ----------------------------------------------------------------
    # Runtime root and services
    # ----------------------------------------------------------------

    async def runtime_path(self, device: Device) -> Path:
        """RuntimeRoot directory of the device's runtime."""
        identifier = await self.runtime_identifier(device)
        return await self.resolver.resolve(device.platform, identifier)

    async def launchctl_path(self, device: Device) -> Path:
        root = await self.runtime_path(device)
        return root / "bin" / "launchctl"

    async def services(self, device: Device) -> list[Service]:
        """launchd jobs inside a booted device."""
        launchctl = await self.launchctl_path(device)
        output = await self.simctl.spawn(device.udid, str(launchctl), "list")
        return parse_launchctl_list(output)

    # ----------------------------------------------------------------
    # Lifecycle
    # ----------------------------------------------------------------

    async def boot(self, device: Device) -> None:
        await self.simctl.boot(device.udid)

    async def shutdown(self, device: Device) -> None:
        await self.simctl.shutdown(device.udid)

    async def erase(self, device: Device) -> None:
        await self.simctl.erase(device.udid)

    async def launch(self, device: Device, timeout: float | None = None) -> Device:
        """Open Simulator.app on this device and wait until it has booted."""
        app = await self.xcode.simulator_app_path()
        logger.info("Launching %s (%s)", device.name, device.udid[:8])
        await self.shell.open("-Fgn", str(app), "--args", "-CurrentDeviceUDID", device.udid)
        return await self.wait_for_state(device, BOOTED, timeout)

    async def reload(self, device: Device) -> bool:
        return await self.poller.reload(device)

    async def wait(
        self,
        device: Device,
        until: Callable[[Device], bool],
        timeout: float | None = None,
    ) -> Device:
        if timeout is None:
            timeout = self.config.wait_timeout
        return await self.poller.wait(device, until, timeout=timeout)

    async def wait_for_state(self, device: Device, state: str, timeout: float | None = None) -> Device:
        return await self.wait(device, lambda d: d.state == state, timeout=timeout)
