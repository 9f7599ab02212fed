"""Property list access for simulator metadata.

Reads go through plistlib off the event loop; in-place edits go through
`plutil -replace` on the caller's Shell, so the file keeps its on-disk format.
"""

from __future__ import annotations

import asyncio
import datetime
import json
import plistlib
from pathlib import Path
from typing import Any
from xml.parsers.expat import ExpatError

from simulator.device.shell import Shell
from simulator.models import PlistError, ShellError

PLUTIL = "plutil"


def _json_value(obj: Any) -> Any:
    """Turn NSData into hex and NSDate into ISO 8601, recursing into containers."""
    if isinstance(obj, dict):
        return {k: _json_value(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_json_value(v) for v in obj]
    if isinstance(obj, bytes):
        return obj.hex()
    if isinstance(obj, datetime.datetime):
        return obj.isoformat()
    return obj


def _load(path: Path) -> Any:
    with open(path, "rb") as f:
        return plistlib.load(f)


async def read_plist(path: Path) -> dict:
    """Decode an XML or binary plist whose root is a dictionary.

    Raises PlistError if the file is missing, malformed, or not a dictionary.
    """
    try:
        root = await asyncio.to_thread(_load, path)
    except (OSError, ValueError, ExpatError) as e:
        raise PlistError(f"plistlib read failed for {path}: {e}", tool=PLUTIL) from e
    if not isinstance(root, dict):
        raise PlistError(f"{path} does not contain a dictionary", tool=PLUTIL)
    return _json_value(root)


def plutil_argument(value: Any) -> tuple[str, str]:
    """Map a Python value to plutil's (type flag, literal) pair.

    bool is checked before int since it is an int subclass.
    """
    if isinstance(value, bool):
        return "-bool", "true" if value else "false"
    if isinstance(value, int):
        return "-integer", str(value)
    if isinstance(value, float):
        return "-float", str(value)
    if isinstance(value, (list, dict)):
        return "-json", json.dumps(value)
    return "-string", str(value)


async def set_plist_value(shell: Shell, path: Path, key: str, value: Any) -> None:
    """Replace (or insert) `key` in the plist at `path`.

    Raises PlistError when plutil is missing or rejects the edit.
    """
    type_flag, literal = plutil_argument(value)
    try:
        await shell.run(PLUTIL, "-replace", key, type_flag, literal, str(path), tool=PLUTIL)
    except ShellError as e:
        raise PlistError(f"plutil set failed for {path} key {key!r}: {e}", tool=PLUTIL) from e
