"""Shell — async runner for the xcrun / xcode-select / open command line tools."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from simulator.models import ShellError

logger = logging.getLogger("simulator.shell")

XCRUN = "xcrun"
XCODE_SELECT = "/usr/bin/xcode-select"
OPEN = "/usr/bin/open"


class Shell:
    """Runs external commands and returns their decoded output.

    One instance is shared by everything a SimulatorController builds, and
    tests swap it for a mock.
    """

    async def run(self, *argv: str, tool: str | None = None) -> tuple[str, str]:
        """Run a command and return (stdout, stderr).

        Raises ShellError if the program can't be launched, exits non-zero,
        or writes output that isn't UTF-8.
        """
        tool = tool or Path(argv[0]).name
        logger.debug("exec: %s", " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ShellError(f"could not launch {argv[0]}: {e}", tool=tool) from e
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise ShellError(
                f"{' '.join(argv[:3])} failed: {stderr.decode(errors='replace').strip()}",
                tool=tool,
            )
        try:
            return stdout.decode(), stderr.decode()
        except UnicodeDecodeError as e:
            raise ShellError(f"{' '.join(argv[:3])} produced non-UTF-8 output: {e}", tool=tool) from e

    async def simctl(self, *args: str) -> str:
        """Run `xcrun simctl <args>` and return stdout."""
        stdout, _ = await self.run(XCRUN, "simctl", *args, tool="simctl")
        return stdout

    async def developer_dir(self) -> Path:
        """Return the active developer directory (`xcode-select -p`)."""
        stdout, _ = await self.run(XCODE_SELECT, "-p", tool="xcode-select")
        return Path(stdout.rstrip("\r\n"))

    async def open(self, *args: str) -> None:
        """Run /usr/bin/open with the given arguments."""
        await self.run(OPEN, *args, tool="open")

    async def is_available(self) -> bool:
        """Check if xcrun is on the PATH."""
        try:
            proc = await asyncio.create_subprocess_exec(
                "which", XCRUN,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            await proc.communicate()
            return proc.returncode == 0
        except OSError:
            return False
