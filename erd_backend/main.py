"""
ERD Layout Backend - FastAPI Application

This is the main entry point for the diagram backend.
It provides:
- REST API for loading diagrams and driving viewport, detail level and search
- WebSocket endpoint for scene updates and load progress
- CORS configuration for local frontend development
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, model_validator

from erd_core.errors import DataSourceError, LoadError
from erd_core.models import DetailLevel, LoadProgress, SingleTable, WholeSchema

from .config import create_data_source, load_settings
from .session import diagram_session
from .websocket_manager import ws_manager


logger = logging.getLogger(__name__)

settings = load_settings()


# --- Async change notification ---
# Bridge between sync DiagramSession callbacks and async WebSocket broadcasts.
# Created in the lifespan so they belong to the serving event loop.

_change_event: Optional[asyncio.Event] = None
_progress_queue: Optional[asyncio.Queue] = None


def on_session_change():
    """Callback for session changes - sets event for async handler."""
    if _change_event is not None:
        _change_event.set()


def on_session_progress(progress: LoadProgress):
    """Callback for load progress - every update is queued, none coalesced."""
    if _progress_queue is not None:
        _progress_queue.put_nowait(progress)


async def change_broadcaster(event: asyncio.Event):
    """Background task that broadcasts scene changes to WebSocket clients."""
    while True:
        await event.wait()
        event.clear()

        scope = diagram_session.scope
        await ws_manager.notify_scene_updated(scope.model_dump() if scope else None)


async def progress_broadcaster(queue: asyncio.Queue):
    """Background task that forwards load progress to WebSocket clients."""
    while True:
        progress = await queue.get()
        await ws_manager.notify_progress(progress)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    global _change_event, _progress_queue

    if diagram_session.source is None:
        diagram_session.source = create_data_source(settings)
    if diagram_session.source is None:
        logger.warning("No data source configured; set ERD_DATA_SOURCE_URL or ERD_SCHEMA_FILE")

    _change_event = asyncio.Event()
    _progress_queue = asyncio.Queue()
    diagram_session.on_change(on_session_change)
    diagram_session.on_progress(on_session_progress)

    tasks = [
        asyncio.create_task(change_broadcaster(_change_event)),
        asyncio.create_task(progress_broadcaster(_progress_queue)),
    ]

    yield

    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
    _change_event = None
    _progress_queue = None


# --- FastAPI App ---

app = FastAPI(
    title="ERD Layout API",
    description="Layout, viewport and search backend for relationship diagrams",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "connections": ws_manager.connection_count,
        "data_source": diagram_session.source is not None
    }


# --- Diagram State ---

@app.get("/api/diagram")
async def get_diagram():
    """Get the current diagram state and scene."""
    return diagram_session.get_state()


@app.get("/api/diagram/summary")
async def get_summary():
    """Get the header summary and diagnostics without node geometry."""
    scene = diagram_session.get_scene()
    return {
        "success": True,
        "summary": scene.summary.model_dump() if scene.summary else None,
        "detail": scene.detail.value,
        "diagnostics": [i.to_dict() for i in diagram_session.diagnostics()],
        "error": diagram_session.error
    }


# --- Loading ---

class LoadRequest(BaseModel):
    table: Optional[str] = None
    schema_name: Optional[str] = None

    @model_validator(mode='after')
    def exactly_one_scope(self) -> "LoadRequest":
        if bool(self.table) == bool(self.schema_name):
            raise ValueError("Specify exactly one of 'table' or 'schema_name'")
        return self


async def _run_load(coro):
    try:
        applied = await coro
    except LoadError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": e.user_message, "retryable": e.retryable}
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not applied:
        return {"success": False, "message": "Superseded by a newer load"}
    return {"success": True, **diagram_session.get_state()}


@app.post("/api/diagram/load")
async def load_diagram(request: LoadRequest):
    """Load a single-table or whole-schema diagram."""
    if request.table:
        scope = SingleTable(table_id=request.table)
    else:
        scope = WholeSchema(schema_name=request.schema_name)
    return await _run_load(diagram_session.load(scope))


@app.post("/api/diagram/reload")
async def reload_diagram():
    """Reload the current scope from scratch (retry after a failure)."""
    return await _run_load(diagram_session.reload())


@app.get("/api/diagram/ddl")
async def get_ddl():
    """Get the CREATE TABLE statement of the anchor table."""
    try:
        ddl = await diagram_session.copy_ddl()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DataSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "ddl": ddl}


# --- Detail Level ---

class DetailRequest(BaseModel):
    level: Optional[DetailLevel] = None  # None toggles


@app.post("/api/diagram/detail")
async def set_detail(request: DetailRequest):
    """Set or toggle the detail level."""
    if request.level is None:
        diagram_session.toggle_detail()
    else:
        diagram_session.set_detail(request.level)
    return {"success": True, "detail": diagram_session.detail.value}


# --- Viewport ---

class ViewportSizeRequest(BaseModel):
    width: float
    height: float


class ZoomRequest(BaseModel):
    delta: float


class PanRequest(BaseModel):
    dx: float = 0
    dy: float = 0


class WheelRequest(BaseModel):
    delta_x: float = 0
    delta_y: float = 0
    zoom_modifier: bool = False


def _viewport_response() -> dict:
    return {"success": True, "viewport": diagram_session.viewport.model_dump()}


@app.post("/api/viewport/size")
async def set_viewport_size(request: ViewportSizeRequest):
    """Report the host's drawing area size."""
    try:
        diagram_session.set_viewport_size(request.width, request.height)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "viewport_size": diagram_session.viewport_size.model_dump()}


@app.post("/api/viewport/zoom")
async def zoom(request: ZoomRequest):
    diagram_session.zoom_by(request.delta)
    return _viewport_response()


@app.post("/api/viewport/zoom-in")
async def zoom_in():
    diagram_session.zoom_in()
    return _viewport_response()


@app.post("/api/viewport/zoom-out")
async def zoom_out():
    diagram_session.zoom_out()
    return _viewport_response()


@app.post("/api/viewport/pan")
async def pan(request: PanRequest):
    diagram_session.pan_by(request.dx, request.dy)
    return _viewport_response()


@app.post("/api/viewport/wheel")
async def wheel(request: WheelRequest):
    diagram_session.wheel(request.delta_x, request.delta_y, request.zoom_modifier)
    return _viewport_response()


class PanModeRequest(BaseModel):
    enabled: bool


class PointerRequest(BaseModel):
    x: float
    y: float
    button: int = 0


@app.post("/api/viewport/pan-mode")
async def set_pan_mode(request: PanModeRequest):
    """Choose whether a primary-button drag pans the canvas."""
    diagram_session.set_pan_mode(request.enabled)
    return {"success": True, "pan_mode": diagram_session.pan_mode}


@app.post("/api/viewport/drag/start")
async def drag_start(request: PointerRequest):
    panning = diagram_session.press(request.x, request.y, request.button)
    return {"success": True, "panning": panning}


@app.post("/api/viewport/drag/move")
async def drag_move(request: PointerRequest):
    diagram_session.drag(request.x, request.y)
    return _viewport_response()


@app.post("/api/viewport/drag/end")
async def drag_end():
    diagram_session.release()
    return _viewport_response()


@app.post("/api/viewport/fit")
async def fit_to_screen():
    diagram_session.fit_to_screen()
    return _viewport_response()


@app.get("/api/viewport/hit")
async def hit_test(x: float = Query(...), y: float = Query(...)):
    """Find the table under a screen point."""
    node = diagram_session.node_at(x, y)
    if node:
        return {"success": True, "node": node.model_dump()}
    raise HTTPException(status_code=404, detail="No table at this point")


# --- Search ---

class SearchRequest(BaseModel):
    query: str


def _search_response() -> dict:
    scene = diagram_session.get_scene()
    return {
        "success": True,
        "search": scene.search.model_dump(),
        "matches": [m.id for m in diagram_session.search_state.matches],
        "viewport": scene.viewport.model_dump()
    }


@app.post("/api/search")
async def search(request: SearchRequest):
    """Search tables by name; the view follows the first match."""
    diagram_session.set_search(request.query)
    return _search_response()


@app.post("/api/search/next")
async def search_next():
    diagram_session.next_match()
    return _search_response()


@app.post("/api/search/previous")
async def search_previous():
    diagram_session.previous_match()
    return _search_response()


@app.delete("/api/search")
async def clear_search():
    diagram_session.clear_search()
    return _search_response()


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Clients receive `scene_updated` and `load_progress` events.
    """
    await ws_manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"type": "pong"}')
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)


def run():
    """Run the backend with uvicorn."""
    import uvicorn
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
