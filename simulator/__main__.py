"""Allow `python -m simulator`; delegates to simulator.main.cli()."""

from __future__ import annotations

import sys

from simulator.main import cli

if __name__ == "__main__":
    sys.exit(cli())
