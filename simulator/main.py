"""simulator — command line entry point and HTTP app factory.

Usage:
    python3 -m simulator devices                     List simulators
    python3 -m simulator runtimes [--platform iOS]   List installed runtimes
    python3 -m simulator boot <udid>                 Boot a simulator
    python3 -m simulator shutdown <udid>             Shut a simulator down
    python3 -m simulator launch <udid>               Open Simulator.app and wait for boot
    python3 -m simulator wait <udid> --state Booted  Poll until a device reaches a state
    python3 -m simulator runtime-path <udid>         Print the device's RuntimeRoot
    python3 -m simulator services <udid>             List launchd services in a booted device
    python3 -m simulator serve                       Start the local HTTP API
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

import uvicorn
from fastapi import FastAPI

from simulator.api.simulators import router as simulators_router
from simulator.config import SimulatorConfig
from simulator.device.controller import SimulatorController
from simulator.models import BOOTED, SimulatorError

VERSION = "0.1.0"


def create_app(
    config: SimulatorConfig | None = None,
    controller: SimulatorController | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    if config is None:
        config = SimulatorConfig.load()

    app = FastAPI(
        title="Simulator Control Server",
        version=VERSION,
        description="List, boot and inspect Apple simulator devices",
    )
    app.state.config = config
    app.state.controller = controller or SimulatorController(config=config)

    app.include_router(simulators_router)

    @app.get("/health")
    async def health() -> dict:
        """Health check with simctl availability."""
        simctl = await app.state.controller.shell.is_available()
        return {"status": "ok", "version": VERSION, "tools": {"simctl": simctl}}

    return app


# ---------------------------------------------------------------------------
# CLI commands
# ---------------------------------------------------------------------------


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def _cmd_devices(controller: SimulatorController, args: argparse.Namespace) -> None:
    devices = await controller.list_devices()
    if args.booted:
        devices = [d for d in devices if d.is_booted]
    _print_json([d.model_dump(mode="json") for d in devices])


async def _cmd_runtimes(controller: SimulatorController, args: argparse.Namespace) -> None:
    runtimes = await controller.list_runtimes()
    if args.platform:
        runtimes = [r for r in runtimes if r.platform.value == args.platform]
    _print_json([r.model_dump(mode="json") for r in runtimes])


async def _cmd_boot(controller: SimulatorController, args: argparse.Namespace) -> None:
    device = await controller.get_device(args.udid)
    await controller.boot(device)
    if args.wait:
        await controller.wait_for_state(device, BOOTED, timeout=args.timeout)
    _print_json(device.model_dump(mode="json"))


async def _cmd_shutdown(controller: SimulatorController, args: argparse.Namespace) -> None:
    device = await controller.get_device(args.udid)
    await controller.shutdown(device)


async def _cmd_launch(controller: SimulatorController, args: argparse.Namespace) -> None:
    device = await controller.get_device(args.udid)
    await controller.launch(device, timeout=args.timeout)
    _print_json(device.model_dump(mode="json"))


async def _cmd_wait(controller: SimulatorController, args: argparse.Namespace) -> None:
    device = await controller.get_device(args.udid)
    await controller.wait_for_state(device, args.state, timeout=args.timeout)
    _print_json(device.model_dump(mode="json"))


async def _cmd_runtime_path(controller: SimulatorController, args: argparse.Namespace) -> None:
    device = await controller.get_device(args.udid)
    print(await controller.runtime_path(device))


async def _cmd_services(controller: SimulatorController, args: argparse.Namespace) -> None:
    device = await controller.get_device(args.udid)
    services = await controller.services(device)
    _print_json([s.model_dump() for s in services])


_COMMANDS = {
    "devices": _cmd_devices,
    "runtimes": _cmd_runtimes,
    "boot": _cmd_boot,
    "shutdown": _cmd_shutdown,
    "launch": _cmd_launch,
    "wait": _cmd_wait,
    "runtime-path": _cmd_runtime_path,
    "services": _cmd_services,
}


def _cmd_serve(config: SimulatorConfig, args: argparse.Namespace) -> None:
    host = args.host or config.host
    port = args.port or config.port
    print(f"Simulator Control Server v{VERSION}")
    print(f"  http://{host}:{port}")
    uvicorn.run(create_app(config=config), host=host, port=port, log_level="info")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Control Apple simulator devices via simctl",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    devices_parser = subparsers.add_parser("devices", help="List simulators")
    devices_parser.add_argument("--booted", action="store_true", help="Only booted devices")

    runtimes_parser = subparsers.add_parser("runtimes", help="List installed runtimes")
    runtimes_parser.add_argument("--platform", choices=["iOS", "watchOS", "tvOS"], default=None)

    boot_parser = subparsers.add_parser("boot", help="Boot a simulator")
    boot_parser.add_argument("udid")
    boot_parser.add_argument("--wait", action="store_true", help="Block until the device is booted")
    boot_parser.add_argument("--timeout", type=float, default=None, help="Wait timeout in seconds")

    shutdown_parser = subparsers.add_parser("shutdown", help="Shut a simulator down")
    shutdown_parser.add_argument("udid")

    launch_parser = subparsers.add_parser("launch", help="Open Simulator.app and wait for boot")
    launch_parser.add_argument("udid")
    launch_parser.add_argument("--timeout", type=float, default=None, help="Wait timeout in seconds")

    wait_parser = subparsers.add_parser("wait", help="Wait for a device to reach a state")
    wait_parser.add_argument("udid")
    wait_parser.add_argument("--state", default=BOOTED, help=f"State to wait for (default: {BOOTED})")
    wait_parser.add_argument("--timeout", type=float, default=None, help="Wait timeout in seconds")

    runtime_path_parser = subparsers.add_parser("runtime-path", help="Print the device's RuntimeRoot")
    runtime_path_parser.add_argument("udid")

    services_parser = subparsers.add_parser("services", help="List launchd services in a booted device")
    services_parser.add_argument("udid")

    serve_parser = subparsers.add_parser("serve", help="Start the local HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind host (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (default: 9200)")

    return parser


def cli(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config = SimulatorConfig.load()
    if args.command == "serve":
        _cmd_serve(config, args)
        return 0

    controller = SimulatorController(config=config)
    try:
        asyncio.run(_COMMANDS[args.command](controller, args))
    except SimulatorError as e:
        print(f"Error: [{e.tool}] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli())
