"""Configuration defaults and the optional ~/.simulator/config.json overrides."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path


logger = logging.getLogger("simulator.config")

CONFIG_DIR = Path.home() / ".simulator"
USER_CONFIG_FILE = CONFIG_DIR / "config.json"

SYSTEM_RUNTIMES_DIR = Path("/Library/Developer/CoreSimulator/Profiles/Runtimes")
DEVICES_DIR = Path.home() / "Library" / "Developer" / "CoreSimulator" / "Devices"


@dataclass
class SimulatorConfig:
    """Tunables for polling, runtime lookup and the local HTTP server."""

    poll_interval: float = 1.0
    wait_timeout: float = 30.0
    system_runtimes_dir: Path = field(default=SYSTEM_RUNTIMES_DIR)
    devices_dir: Path = field(default=DEVICES_DIR)
    host: str = "127.0.0.1"
    port: int = 9200

    def __post_init__(self) -> None:
        self.system_runtimes_dir = Path(self.system_runtimes_dir).expanduser()
        self.devices_dir = Path(self.devices_dir).expanduser()

    @classmethod
    def load(cls, path: Path | None = None) -> SimulatorConfig:
        """Build a config from defaults overlaid with the user config file.

        Unknown keys are ignored; a missing or unreadable file yields the defaults.
        """
        known = {f.name for f in fields(cls)}
        overrides = {k: v for k, v in read_user_config(path).items() if k in known}
        return cls(**overrides)


def read_user_config(path: Path | None = None) -> dict:
    """Read user config from ~/.simulator/config.json. Returns {} if missing or invalid."""
    path = path or USER_CONFIG_FILE
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except Exception as e:
        logger.warning("Failed to read config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a JSON object", path)
        return {}
    return data
