"""Locate the on-disk RuntimeRoot of an installed simulator runtime.

Runtime bundles (`*.simruntime`) live either inside Xcode's platform
directory or in the system-wide CoreSimulator profiles directory. Each
bundle's Contents/Info.plist carries a CFBundleIdentifier equal to the
runtime identifier simctl reports, e.g.
'com.apple.CoreSimulator.SimRuntime.iOS-12-1'.
"""

from __future__ import annotations

import logging
from pathlib import Path

from simulator.config import SYSTEM_RUNTIMES_DIR
from simulator.device.plist import read_plist
from simulator.device.xcode import Xcode
from simulator.models import (
    DirectoryListingError,
    PlistError,
    RuntimeNotFoundError,
    RuntimePlatform,
)

logger = logging.getLogger("simulator.runtimes")

INFO_PLIST = Path("Contents") / "Info.plist"
RUNTIME_ROOT = Path("Contents") / "Resources" / "RuntimeRoot"
BUNDLE_IDENTIFIER_KEY = "CFBundleIdentifier"


class RuntimePathResolver:
    """Searches candidate directories, in order, for a runtime's RuntimeRoot."""

    def __init__(self, xcode: Xcode, system_runtimes_dir: Path = SYSTEM_RUNTIMES_DIR) -> None:
        self.xcode = xcode
        self.system_runtimes_dir = Path(system_runtimes_dir)

    async def candidate_dirs(self, platform: RuntimePlatform) -> list[Path]:
        """Xcode's platform runtimes directory (if the platform has one), then the system one."""
        candidates: list[Path] = []
        xcode_dir = await self.xcode.runtime_profiles_path(platform)
        if xcode_dir is not None:
            candidates.append(xcode_dir)
        candidates.append(self.system_runtimes_dir)
        return candidates

    async def resolve(self, platform: RuntimePlatform, runtime_identifier: str) -> Path:
        """Return the RuntimeRoot directory of the runtime with the given identifier.

        The first candidate whose Info.plist identifier matches and whose
        RuntimeRoot exists wins. Bundles with a missing or unreadable
        Info.plist are skipped; a directory that exists but can't be listed
        is fatal.

        Raises:
            DirectoryListingError: a candidate directory couldn't be listed.
            RuntimeNotFoundError: nothing matched.
        """
        for directory in await self.candidate_dirs(platform):
            for bundle in self._children(directory):
                if await self._bundle_identifier(bundle) != runtime_identifier:
                    continue
                root = bundle / RUNTIME_ROOT
                if root.is_dir():
                    logger.debug("Resolved %s to %s", runtime_identifier, root)
                    return root
                logger.debug("Runtime bundle %s has no RuntimeRoot, skipping", bundle)

        raise RuntimeNotFoundError(
            f"runtime profile not found for {runtime_identifier} ({platform.value})",
            tool="filesystem",
        )

    @staticmethod
    def _children(directory: Path) -> list[Path]:
        """Immediate children of a directory, sorted; [] if it doesn't exist."""
        try:
            return sorted(directory.iterdir())
        except FileNotFoundError:
            return []
        except OSError as e:
            raise DirectoryListingError(f"cannot list {directory}: {e}", tool="filesystem") from e

    @staticmethod
    async def _bundle_identifier(bundle: Path) -> str | None:
        """CFBundleIdentifier from a bundle's Info.plist, or None if it can't be read."""
        info = bundle / INFO_PLIST
        if not info.is_file():
            return None
        try:
            plist = await read_plist(info)
        except PlistError as e:
            logger.debug("Skipping %s: %s", bundle, e)
            return None
        identifier = plist.get(BUNDLE_IDENTIFIER_KEY)
        if not isinstance(identifier, str):
            logger.debug("Skipping %s: no %s in Info.plist", bundle, BUNDLE_IDENTIFIER_KEY)
            return None
        return identifier
