"""Core data models for simulator devices, runtimes and services."""

from __future__ import annotations

import enum
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

BOOTED = "Booted"
SHUTDOWN = "Shutdown"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SimulatorError(Exception):
    """Base error for everything that can go wrong talking to the simulator tooling."""

    def __init__(self, message: str, tool: str = "simctl") -> None:
        super().__init__(message)
        self.tool = tool


class ShellError(SimulatorError):
    """An external command could not be launched or exited non-zero."""


class ListingError(SimulatorError):
    """A device or runtime listing could not be decoded."""


class PlistError(SimulatorError):
    """A property list could not be read or written."""


class DeviceNotFoundError(SimulatorError):
    """No device with the requested udid is known to simctl."""


class RuntimeNotFoundError(SimulatorError):
    """No installed runtime profile matches the requested identifier."""


class DirectoryListingError(SimulatorError):
    """A candidate runtime directory exists but could not be listed."""


class WaitTimeoutError(SimulatorError):
    """A device did not reach the awaited condition before the deadline."""


class InvalidLaunchctlOutputError(SimulatorError):
    """launchctl list printed a row that doesn't have the expected shape."""


# ---------------------------------------------------------------------------
# Runtimes
# ---------------------------------------------------------------------------


class RuntimePlatform(str, enum.Enum):
    """OS family a runtime (and therefore a device) belongs to."""

    IOS = "iOS"
    WATCHOS = "watchOS"
    TVOS = "tvOS"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> RuntimePlatform:
        """Parse the leading token of a human-readable runtime name.

        e.g. 'iOS 12.1' -> IOS, 'watchOS 5.1' -> WATCHOS, 'xrOS 1.0' -> UNKNOWN
        """
        token = name.strip().split(" ", 1)[0] if name else ""
        for platform in cls:
            if platform is not cls.UNKNOWN and platform.value == token:
                return platform
        return cls.UNKNOWN


class Runtime(BaseModel):
    """An installed OS runtime image, as reported by `simctl list runtimes`."""

    model_config = ConfigDict(populate_by_name=True)

    identifier: str = Field(description="e.g. com.apple.CoreSimulator.SimRuntime.watchOS-5-1")
    name: str = Field(description="e.g. watchOS 5.1")
    version: str = Field(default="", description="e.g. 5.1")
    build_version: str = Field(default="", alias="buildversion", description="e.g. 16R591")
    availability: str = ""
    availability_error: str | None = Field(default=None, alias="availabilityError")
    is_available: bool | None = Field(default=None, alias="isAvailable")
    bundle_path: Path | None = Field(default=None, alias="bundlePath")

    @property
    def platform(self) -> RuntimePlatform:
        return RuntimePlatform.from_name(self.name)

    @property
    def version_tuple(self) -> tuple[int, ...]:
        """Numeric version components for ordering ('12.1' -> (12, 1))."""
        return tuple(int(p) for p in re.findall(r"\d+", self.version))


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


class Device(BaseModel):
    """Snapshot of one simulator device at the time it was listed.

    Only `udid` is stable; every other field may change between listings.
    DevicePoller.reload() overwrites the fields in place.
    """

    model_config = ConfigDict(populate_by_name=True)

    udid: str
    name: str
    runtime_name: str = Field(default="", alias="runtimeName", description="e.g. iOS 12.1")
    state: str = SHUTDOWN
    availability: str = ""
    availability_error: str | None = Field(default=None, alias="availabilityError")
    is_available: bool | None = Field(default=None, alias="isAvailable")
    device_type_identifier: str | None = Field(default=None, alias="deviceTypeIdentifier")
    data_path: str | None = Field(default=None, alias="dataPath")
    log_path: str | None = Field(default=None, alias="logPath")

    @property
    def is_booted(self) -> bool:
        return self.state == BOOTED

    @property
    def platform(self) -> RuntimePlatform:
        return RuntimePlatform.from_name(self.runtime_name)


class Service(BaseModel):
    """A launchd job running (or loaded) inside a booted simulator."""

    pid: str = Field(description="Process id, '-' when the job isn't running")
    status: int = Field(description="Last exit status (0 == clean)")
    label: str = Field(description="e.g. com.apple.storedownloadd.daemon")


# ---------------------------------------------------------------------------
# API request bodies
# ---------------------------------------------------------------------------


class WaitRequest(BaseModel):
    """Request body for POST /api/v1/simulators/devices/{udid}/wait."""

    state: str = BOOTED
    timeout: float = Field(default=30.0, gt=0, le=600)


class LaunchRequest(BaseModel):
    """Request body for POST /api/v1/simulators/devices/{udid}/launch."""

    timeout: float = Field(default=60.0, gt=0, le=600)


class LocaleRequest(BaseModel):
    """Request body for PUT /api/v1/simulators/devices/{udid}/locale."""

    locale: str = Field(description="e.g. en_US")


class LanguageRequest(BaseModel):
    """Request body for PUT /api/v1/simulators/devices/{udid}/language."""

    language: str = Field(description="e.g. fr")
