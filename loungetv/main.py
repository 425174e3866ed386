import os
import asyncio
import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from loungetv.db import Base, engine, ensure_sqlite_schema
from loungetv.db import SessionLocal
from loungetv.api import display as display_api, playlist
from loungetv.services.catalog import SqlCatalogProvider
from loungetv.services.clock import SystemClock
from loungetv.services.display import DisplaySession
from loungetv.services.realtime import hub
from loungetv.services.timers import AsyncioScheduler

Base.metadata.create_all(bind=engine)
ensure_sqlite_schema()

API_KEY = os.getenv("SIGNAGE_API_KEY", "").strip()
SERVER_HOST = os.getenv("SIGNAGE_SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("SIGNAGE_SERVER_PORT", "8000"))
LOG_LEVEL = os.getenv("SIGNAGE_LOG_LEVEL", "INFO").strip().upper() or "INFO"
QUIET_ACCESS_LOG = os.getenv("SIGNAGE_QUIET_ACCESS_LOG", "1").strip().lower() in {"1", "true", "yes", "on"}
QUIET_WEBSOCKET_LOG = os.getenv("SIGNAGE_QUIET_WEBSOCKET_LOG", "1").strip().lower() in {"1", "true", "yes", "on"}
_display_task: asyncio.Task | None = None

logger = logging.getLogger(__name__)
logging.getLogger("loungetv").setLevel(LOG_LEVEL)

if QUIET_ACCESS_LOG:
    # Keep warning/error lines, suppress normal access noise (200/201 etc).
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

if QUIET_WEBSOCKET_LOG:
    # A TV dropping off Wi-Fi produces transport tracebacks; clients reconnect on their own.
    logging.getLogger("websockets").setLevel(logging.CRITICAL)
    logging.getLogger("uvicorn.protocols.websockets").setLevel(logging.CRITICAL)


def create_display() -> DisplaySession:
    return DisplaySession(
        catalog=SqlCatalogProvider(SessionLocal),
        clock=SystemClock(),
        scheduler=AsyncioScheduler(),
        hub=hub,
    )


app = FastAPI(title="Lounge TV")
app.state.display = create_display()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {
        "ok": True,
        "service": "loungetv",
        "time_utc": datetime.now(timezone.utc).isoformat(),
        "docs": "/docs",
    }


@app.get("/healthz")
async def healthz(request: Request):
    display: DisplaySession = request.app.state.display
    return {
        "ok": True,
        "state": display.controller.state.value,
        "refresh_error": display.state().last_refresh_error,
        "revision": hub.revision,
        "clients": hub.client_count,
    }


@app.websocket("/ws/updates")
async def ws_updates(websocket: WebSocket):
    display: DisplaySession = websocket.app.state.display
    await hub.connect(websocket, snapshot=display.state().model_dump(mode="json"))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(websocket)
    except Exception:
        await hub.disconnect(websocket)


@app.on_event("startup")
async def startup_events() -> None:
    global _display_task
    if _display_task is None or _display_task.done():
        _display_task = asyncio.create_task(app.state.display.run_forever())
        logger.info("Display refresh loop started")


@app.on_event("shutdown")
async def shutdown_events() -> None:
    global _display_task
    if _display_task is not None:
        _display_task.cancel()
        try:
            await _display_task
        except asyncio.CancelledError:
            pass
        _display_task = None
    app.state.display.close()


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    if not API_KEY:
        return await call_next(request)
    path = request.url.path
    if path.startswith("/docs") or path.startswith("/openapi.json") or path.startswith("/redoc") or path == "/healthz":
        return await call_next(request)
    if request.headers.get("X-API-Key") != API_KEY:
        return JSONResponse({"detail": "Unauthorized"}, status_code=401)
    return await call_next(request)


@app.middleware("http")
async def catalog_mutation_middleware(request: Request, call_next):
    response = await call_next(request)
    method = request.method.upper()
    path = request.url.path
    if response.status_code < 400 and method in {"POST", "PUT", "DELETE"} and path.startswith("/playlists"):
        # Overrides take effect now rather than at the next scheduled refresh.
        request.app.state.display.refresh()
        await hub.publish(
            "config_changed",
            {
                "path": path,
                "method": method,
            },
        )
    return response


app.include_router(display_api.router)
app.include_router(playlist.router)


def run() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)


if __name__ == "__main__":
    run()
