"""API routes for simulator devices and runtimes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Request

from simulator.device.controller import SimulatorController
from simulator.models import (
    Device,
    DeviceNotFoundError,
    LanguageRequest,
    LaunchRequest,
    LocaleRequest,
    RuntimeNotFoundError,
    RuntimePlatform,
    SimulatorError,
    WaitRequest,
    WaitTimeoutError,
)

router = APIRouter(prefix="/api/v1/simulators", tags=["simulators"])
logger = logging.getLogger("simulator.api")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_controller(request: Request) -> SimulatorController:
    """Get the SimulatorController from app state."""
    controller = request.app.state.controller
    if controller is None:
        raise HTTPException(status_code=503, detail="Simulator controller not initialized")
    return controller


def _handle_simulator_error(e: SimulatorError) -> HTTPException:
    """Map a SimulatorError to an appropriate HTTPException."""
    if isinstance(e, (DeviceNotFoundError, RuntimeNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, WaitTimeoutError):
        return HTTPException(status_code=504, detail=str(e))
    logger.warning("[%s] %s", e.tool, e)
    return HTTPException(status_code=500, detail=f"[{e.tool}] {e}")


async def _device(request: Request, udid: str) -> tuple[SimulatorController, Device]:
    controller = _get_controller(request)
    try:
        return controller, await controller.get_device(udid)
    except SimulatorError as e:
        raise _handle_simulator_error(e)


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


@router.get("/devices")
async def list_devices(
    request: Request,
    state: str | None = Query(default=None, description="e.g. Booted, Shutdown"),
    available: bool | None = Query(default=None),
):
    """List all simulators, optionally filtered by state and availability.

    Devices whose availability simctl did not report match neither
    `available=true` nor `available=false`.
    """
    controller = _get_controller(request)
    try:
        devices = await controller.list_devices()
    except SimulatorError as e:
        raise _handle_simulator_error(e)

    if state:
        devices = [d for d in devices if d.state.lower() == state.lower()]
    if available is not None:
        devices = [d for d in devices if d.is_available is available]
    return {"devices": [d.model_dump(mode="json") for d in devices], "total": len(devices)}


@router.get("/devices/{udid}")
async def get_device(request: Request, udid: str):
    _, device = await _device(request, udid)
    return device.model_dump(mode="json")


@router.post("/devices/{udid}/boot")
async def boot_device(request: Request, udid: str):
    """Boot a simulator (returns immediately; use /wait to block until booted)."""
    controller, device = await _device(request, udid)
    try:
        await controller.boot(device)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return {"status": "booting", "udid": udid}


@router.post("/devices/{udid}/shutdown")
async def shutdown_device(request: Request, udid: str):
    controller, device = await _device(request, udid)
    try:
        await controller.shutdown(device)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return {"status": "shutdown", "udid": udid}


@router.post("/devices/{udid}/erase")
async def erase_device(request: Request, udid: str):
    controller, device = await _device(request, udid)
    try:
        await controller.erase(device)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return {"status": "erased", "udid": udid}


@router.post("/devices/{udid}/launch")
async def launch_device(request: Request, udid: str, body: LaunchRequest | None = None):
    """Open Simulator.app on the device and wait until it is booted."""
    body = body or LaunchRequest()
    controller, device = await _device(request, udid)
    try:
        device = await controller.launch(device, timeout=body.timeout)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return device.model_dump(mode="json")


@router.post("/devices/{udid}/wait")
async def wait_for_device(request: Request, udid: str, body: WaitRequest):
    """Poll until the device reaches `state`; 504 on timeout."""
    controller, device = await _device(request, udid)
    try:
        device = await controller.wait_for_state(device, body.state, timeout=body.timeout)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return device.model_dump(mode="json")


@router.get("/devices/{udid}/runtime")
async def device_runtime(request: Request, udid: str):
    controller, device = await _device(request, udid)
    try:
        runtime = await controller.runtime(device)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return runtime.model_dump(mode="json")


@router.get("/devices/{udid}/runtime-path")
async def device_runtime_path(request: Request, udid: str):
    """On-disk RuntimeRoot of the device's runtime, plus the launchctl inside it."""
    controller, device = await _device(request, udid)
    try:
        root = await controller.runtime_path(device)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return {"udid": udid, "runtime_path": str(root), "launchctl_path": str(root / "bin" / "launchctl")}


@router.get("/devices/{udid}/services")
async def device_services(request: Request, udid: str):
    controller, device = await _device(request, udid)
    try:
        services = await controller.services(device)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return {"udid": udid, "services": [s.model_dump() for s in services], "total": len(services)}


@router.get("/devices/{udid}/preferences")
async def device_preferences(request: Request, udid: str):
    controller, device = await _device(request, udid)
    try:
        return await controller.global_preferences(device)
    except SimulatorError as e:
        raise _handle_simulator_error(e)


@router.put("/devices/{udid}/locale")
async def set_device_locale(request: Request, udid: str, body: LocaleRequest):
    controller, device = await _device(request, udid)
    try:
        await controller.set_locale(device, body.locale)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return {"status": "ok", "udid": udid, "locale": body.locale}


@router.put("/devices/{udid}/language")
async def set_device_language(request: Request, udid: str, body: LanguageRequest):
    controller, device = await _device(request, udid)
    try:
        await controller.set_language(device, body.language)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    return {"status": "ok", "udid": udid, "language": body.language}


# ---------------------------------------------------------------------------
# Runtimes
# ---------------------------------------------------------------------------


@router.get("/runtimes")
async def list_runtimes(request: Request, platform: RuntimePlatform | None = Query(default=None)):
    controller = _get_controller(request)
    try:
        runtimes = await controller.list_runtimes()
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    if platform:
        runtimes = [r for r in runtimes if r.platform == platform]
    return {"runtimes": [r.model_dump(mode="json") for r in runtimes], "total": len(runtimes)}


@router.get("/runtimes/latest")
async def latest_runtime(request: Request, platform: RuntimePlatform = Query(default=RuntimePlatform.IOS)):
    controller = _get_controller(request)
    try:
        runtime = await controller.latest_runtime(platform)
    except SimulatorError as e:
        raise _handle_simulator_error(e)
    if runtime is None:
        raise HTTPException(status_code=404, detail=f"No {platform.value} runtime installed")
    return runtime.model_dump(mode="json")
