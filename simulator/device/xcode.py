"""Paths inside the active Xcode installation."""

from __future__ import annotations

from pathlib import Path

from simulator.device.shell import Shell
from simulator.models import RuntimePlatform

_DEVICE_PLATFORMS = {
    RuntimePlatform.IOS: "iPhoneOS",
    RuntimePlatform.WATCHOS: "WatchOS",
    RuntimePlatform.TVOS: "AppleTVOS",
}

_SIMULATOR_PLATFORMS = {
    RuntimePlatform.IOS: "iPhoneSimulator",
    RuntimePlatform.WATCHOS: "WatchSimulator",
    RuntimePlatform.TVOS: "AppleTVSimulator",
}


class Xcode:
    """Resolves platform and SDK directories under `xcode-select -p`."""

    def __init__(self, shell: Shell) -> None:
        self.shell = shell

    async def path(self) -> Path:
        """The active developer directory, e.g. /Applications/Xcode.app/Contents/Developer."""
        return await self.shell.developer_dir()

    @staticmethod
    def device_platform(platform: RuntimePlatform) -> str | None:
        """e.g. IOS -> 'iPhoneOS'; None for platforms Xcode has no directory for."""
        return _DEVICE_PLATFORMS.get(platform)

    @staticmethod
    def simulator_platform(platform: RuntimePlatform) -> str | None:
        """e.g. IOS -> 'iPhoneSimulator'."""
        return _SIMULATOR_PLATFORMS.get(platform)

    async def runtime_profiles_path(self, platform: RuntimePlatform) -> Path | None:
        """Directory holding the .simruntime bundles Xcode ships for a platform.

        e.g. <developer>/Platforms/iPhoneOS.platform/Developer/Library/CoreSimulator/Profiles/Runtimes
        """
        name = self.device_platform(platform)
        if name is None:
            return None
        root = await self.path()
        return (
            root / "Platforms" / f"{name}.platform"
            / "Developer" / "Library" / "CoreSimulator" / "Profiles" / "Runtimes"
        )

    async def simulator_sdk_path(self, platform: RuntimePlatform) -> Path | None:
        """e.g. <developer>/Platforms/iPhoneSimulator.platform/Developer/SDKs/iPhoneSimulator.sdk"""
        name = self.simulator_platform(platform)
        if name is None:
            return None
        root = await self.path()
        return root / "Platforms" / f"{name}.platform" / "Developer" / "SDKs" / f"{name}.sdk"

    async def simulator_app_path(self) -> Path:
        root = await self.path()
        return root / "Applications" / "Simulator.app"
