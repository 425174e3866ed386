from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from loungetv.schemas.display import DisplayState, ServingOut
from loungetv.services.display import DisplaySession, UnknownCommandError, serving_out

# Handlers are async so every touch of the rotation happens on the event loop.
router = APIRouter(prefix="/display", tags=["display"])


def get_display(request: Request) -> DisplaySession:
    return request.app.state.display


@router.get("/state", response_model=DisplayState)
async def display_state(display: DisplaySession = Depends(get_display)):
    return display.state()


@router.post("/commands/{command}", response_model=DisplayState)
async def send_command(command: str, display: DisplaySession = Depends(get_display)):
    try:
        display.handle_command(command)
    except UnknownCommandError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return display.state()


@router.post("/refresh", response_model=DisplayState)
async def refresh_now(display: DisplaySession = Depends(get_display)):
    if display.refresh() is None:
        raise HTTPException(status_code=503, detail=display.state().last_refresh_error or "Catalog unavailable")
    return display.state()


@router.get("/serving", response_model=ServingOut)
async def currently_serving(display: DisplaySession = Depends(get_display)):
    report = display.serving_report()
    if report is None:
        display.refresh()
        report = display.serving_report()
    if report is None:
        raise HTTPException(status_code=503, detail="Nothing resolved yet")
    return report


@router.get("/preview", response_model=ServingOut)
async def preview(at: datetime | None = None, display: DisplaySession = Depends(get_display)):
    instant = at or display.clock.now()
    try:
        resolution = display.preview(instant)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="Catalog unavailable") from exc
    return serving_out(resolution, instant)
