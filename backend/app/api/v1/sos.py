"""
FastAPI routes: SOS button.

    GET  /api/v1/sos/state            — phase, progress, last alert, dispatch report
    POST /api/v1/sos/press            — button down (starts the 3 s hold)
    POST /api/v1/sos/release          — button up (cancels an unconfirmed hold)
    POST /api/v1/sos/cancel-dispatch  — abort channel invocations not yet issued
    POST /api/v1/sos/location         — answer a pending location request
    POST /api/v1/sos/location/deny    — refuse a pending location request
    GET  /api/v1/sos/history          — owner's recorded SOS events, newest first

The hold runs on the server's event loop. After confirmation the
client sees ``awaiting_location: true`` in the state and answers with
its own fix (LOCATION_SOURCE=client).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from backend.app.api.deps import Owner, get_owner, get_registry
from backend.app.api.schemas import (
    CancelDispatchResult,
    HistoryOut,
    LocationDenial,
    LocationReport,
    PressResult,
    SOSEventOut,
    SOSStateOut,
)
from backend.app.sos.controller import SOSController
from backend.app.sos.sessions import SessionRegistry

router = APIRouter(prefix="/api/v1/sos", tags=["sos"])


def _state(registry: SessionRegistry, controller: SOSController) -> SOSStateOut:
    source = registry.client_source(controller.owner_id)
    return SOSStateOut(
        **controller.snapshot(),
        awaiting_location=bool(source and source.awaiting),
    )


async def _controller(owner: Owner, registry: SessionRegistry) -> SOSController:
    return await registry.controller_for(owner.id, owner.email)


@router.get("/state", response_model=SOSStateOut, summary="Current SOS button state")
async def get_state(
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    controller = await _controller(owner, registry)
    return _state(registry, controller)


@router.post("/press", response_model=PressResult, summary="Press and start holding")
async def press(
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    controller = await _controller(owner, registry)
    accepted = controller.press_start()
    return PressResult(accepted=accepted, state=_state(registry, controller))


@router.post("/release", response_model=PressResult, summary="Release the button")
async def release(
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    controller = await _controller(owner, registry)
    accepted = controller.press_end()
    return PressResult(accepted=accepted, state=_state(registry, controller))


@router.post(
    "/cancel-dispatch",
    response_model=CancelDispatchResult,
    summary="Abort pending channel invocations",
    description="Invocations already issued cannot be recalled.",
)
async def cancel_dispatch(
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    controller = await _controller(owner, registry)
    cancelled = controller.cancel_dispatch()
    return CancelDispatchResult(cancelled=cancelled, state=_state(registry, controller))


@router.post("/location", response_model=SOSStateOut, summary="Report the device position")
async def report_location(
    body: LocationReport,
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    controller = await _controller(owner, registry)
    source = registry.client_source(owner.id)
    if source is None or not source.submit(body.latitude, body.longitude, body.accuracy_m):
        raise HTTPException(status_code=409, detail="No location request is pending.")
    await controller.settle()
    return _state(registry, controller)


@router.post("/location/deny", response_model=SOSStateOut, summary="Refuse location access")
async def deny_location(
    body: LocationDenial,
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    controller = await _controller(owner, registry)
    source = registry.client_source(owner.id)
    if source is None or not source.deny(body.message):
        raise HTTPException(status_code=409, detail="No location request is pending.")
    await controller.settle()
    return _state(registry, controller)


@router.get("/history", response_model=HistoryOut, summary="Recorded SOS events")
async def history(
    owner: Owner = Depends(get_owner),
    registry: SessionRegistry = Depends(get_registry),
):
    events = await registry.event_log.list(owner.id)
    return HistoryOut(
        events=[SOSEventOut(**e.to_dict()) for e in events],
        count=len(events),
    )
