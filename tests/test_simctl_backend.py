"""Tests for SimctlBackend — mock asyncio.create_subprocess_exec."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from simulator.device.shell import Shell
from simulator.device.simctl import SimctlBackend
from simulator.models import ListingError, RuntimePlatform, ShellError

FIXTURES = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mock_proc(stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0):
    """Create a mock async subprocess."""
    proc = AsyncMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.returncode = returncode
    return proc


def _backend() -> SimctlBackend:
    return SimctlBackend(Shell())


# ---------------------------------------------------------------------------
# list_devices
# ---------------------------------------------------------------------------


class TestListDevices:
    async def test_invokes_simctl_list_json(self):
        proc = _mock_proc(stdout=b'{"devices": {}}')
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await _backend().list_devices()
        mock_exec.assert_called_once_with(
            "xcrun", "simctl", "list", "devices", "--json",
            stdout=-1, stderr=-1,
        )

    async def test_parse_fixture(self):
        fixture_data = (FIXTURES / "simctl_list_devices.json").read_bytes()
        proc = _mock_proc(stdout=fixture_data)
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            devices = await _backend().list_devices()

        # Unavailable devices are listed too
        assert len(devices) == 4

        by_udid = {d.udid: d for d in devices}
        booted = by_udid["AAAA-1111-2222-3333-444444444444"]
        assert booted.name == "iPhone 16 Pro"
        assert booted.state == "Booted"
        assert booted.is_booted
        assert booted.runtime_name == "iOS 18.6"
        assert booted.platform == RuntimePlatform.IOS
        assert booted.is_available is True
        assert booted.device_type_identifier == "com.apple.CoreSimulator.SimDeviceType.iPhone-16-Pro"

        watch = by_udid["CCCC-1111-2222-3333-444444444444"]
        assert watch.runtime_name == "watchOS 11.0"
        assert watch.platform == RuntimePlatform.WATCHOS

        broken = by_udid["DDDD-1111-2222-3333-444444444444"]
        assert broken.is_available is False
        assert broken.availability_error == "runtime profile not found"

    async def test_legacy_runtime_keys_pass_through(self):
        data = {
            "devices": {
                "iOS 12.1": [
                    {
                        "availability": "(available)",
                        "state": "Shutdown",
                        "isAvailable": True,
                        "name": "iPhone XR",
                        "udid": "X",
                        "availabilityError": "",
                    },
                ]
            }
        }
        proc = _mock_proc(stdout=json.dumps(data).encode())
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            devices = await _backend().list_devices()
        assert devices[0].runtime_name == "iOS 12.1"
        assert devices[0].availability == "(available)"

    async def test_empty_runtime(self):
        data = {"devices": {"com.apple.CoreSimulator.SimRuntime.iOS-14-4": []}}
        proc = _mock_proc(stdout=json.dumps(data).encode())
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            devices = await _backend().list_devices()
        assert devices == []

    async def test_missing_devices_key_returns_empty(self):
        proc = _mock_proc(stdout=b"{}")
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            assert await _backend().list_devices() == []

    async def test_invalid_json_raises_listing_error(self):
        proc = _mock_proc(stdout=b"not json")
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ListingError, match="invalid JSON"):
                await _backend().list_devices()

    async def test_entry_without_udid_raises_listing_error(self):
        data = {"devices": {"iOS 12.1": [{"name": "iPhone XR", "state": "Shutdown"}]}}
        proc = _mock_proc(stdout=json.dumps(data).encode())
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ListingError, match="iOS 12.1"):
                await _backend().list_devices()

    async def test_non_list_device_group_raises_listing_error(self):
        proc = _mock_proc(stdout=b'{"devices": {"iOS 12.1": null}}')
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ListingError, match="iOS 12.1"):
                await _backend().list_devices()

    async def test_non_utf8_output_raises_shell_error(self):
        proc = _mock_proc(stdout=b'{"devices": {"\xff": []}}')
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ShellError, match="non-UTF-8") as exc_info:
                await _backend().list_devices()
        assert exc_info.value.tool == "simctl"

    async def test_simctl_failure_raises_shell_error(self):
        proc = _mock_proc(stderr=b"CoreSimulatorService connection interrupted", returncode=1)
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ShellError, match="connection interrupted"):
                await _backend().list_devices()


# ---------------------------------------------------------------------------
# list_runtimes
# ---------------------------------------------------------------------------


class TestListRuntimes:
    async def test_parse_fixture(self):
        fixture_data = (FIXTURES / "simctl_list_runtimes.json").read_bytes()
        proc = _mock_proc(stdout=fixture_data)
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            runtimes = await _backend().list_runtimes()
        mock_exec.assert_called_once_with(
            "xcrun", "simctl", "list", "runtimes", "--json",
            stdout=-1, stderr=-1,
        )

        assert [r.identifier for r in runtimes] == [
            "com.apple.CoreSimulator.SimRuntime.iOS-18-6",
            "com.apple.CoreSimulator.SimRuntime.iOS-17-2",
            "com.apple.CoreSimulator.SimRuntime.iOS-26-0",
            "com.apple.CoreSimulator.SimRuntime.watchOS-11-0",
        ]
        watch = runtimes[3]
        assert watch.platform == RuntimePlatform.WATCHOS
        assert watch.build_version == "22R349"
        assert watch.version == "11.0"
        assert watch.availability == "(available)"
        assert watch.bundle_path == Path(
            "/Applications/Xcode.app/Contents/Developer/Platforms/WatchOS.platform"
            "/Developer/Library/CoreSimulator/Profiles/Runtimes/watchOS.simruntime"
        )

    async def test_entry_without_identifier_raises(self):
        proc = _mock_proc(stdout=json.dumps({"runtimes": [{"name": "iOS 18.6"}]}).encode())
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ListingError):
                await _backend().list_runtimes()

    async def test_runtimes_not_a_list_raises(self):
        proc = _mock_proc(stdout=b'{"runtimes": 7}')
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ListingError, match="expected list"):
                await _backend().list_runtimes()


# ---------------------------------------------------------------------------
# _parse_runtime
# ---------------------------------------------------------------------------


class TestParseRuntime:
    def test_ios_18_6(self):
        assert SimctlBackend._parse_runtime(
            "com.apple.CoreSimulator.SimRuntime.iOS-18-6"
        ) == "iOS 18.6"

    def test_watchos(self):
        assert SimctlBackend._parse_runtime(
            "com.apple.CoreSimulator.SimRuntime.watchOS-11-0"
        ) == "watchOS 11.0"

    def test_legacy_name(self):
        assert SimctlBackend._parse_runtime("tvOS 12.1") == "tvOS 12.1"


# ---------------------------------------------------------------------------
# boot / shutdown / erase / spawn
# ---------------------------------------------------------------------------


class TestSimctlCommands:
    async def test_boot(self):
        proc = _mock_proc()
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await _backend().boot("AAAA-1111")
            mock_exec.assert_called_once_with(
                "xcrun", "simctl", "boot", "AAAA-1111",
                stdout=-1, stderr=-1,
            )

    async def test_shutdown(self):
        proc = _mock_proc()
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await _backend().shutdown("AAAA-1111")
            mock_exec.assert_called_once_with(
                "xcrun", "simctl", "shutdown", "AAAA-1111",
                stdout=-1, stderr=-1,
            )

    async def test_erase(self):
        proc = _mock_proc()
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            await _backend().erase("AAAA-1111")
            mock_exec.assert_called_once_with(
                "xcrun", "simctl", "erase", "AAAA-1111",
                stdout=-1, stderr=-1,
            )

    async def test_spawn_returns_stdout(self):
        proc = _mock_proc(stdout=b"PID\tStatus\tLabel\n")
        with patch("asyncio.create_subprocess_exec", return_value=proc) as mock_exec:
            out = await _backend().spawn("AAAA-1111", "/rt/bin/launchctl", "list")
        assert out == "PID\tStatus\tLabel\n"
        mock_exec.assert_called_once_with(
            "xcrun", "simctl", "spawn", "AAAA-1111", "/rt/bin/launchctl", "list",
            stdout=-1, stderr=-1,
        )

    async def test_boot_error(self):
        proc = _mock_proc(stderr=b"Unable to boot device in current state: Booted", returncode=149)
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(ShellError, match="current state: Booted") as exc_info:
                await _backend().boot("AAAA-1111")
        assert exc_info.value.tool == "simctl"
