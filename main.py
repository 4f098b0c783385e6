# main.py
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

import httpx
from fastapi import FastAPI, HTTPException, WebSocket, status
from pydantic import BaseModel
from starlette.websockets import WebSocketDisconnect

from backend_client import BackendClient
from config import Settings, load_settings, setup_logging
from metrics import DashboardMetrics, position_pl_percent, summarize
from models import (
    AccountSnapshot, ActivityEntry, EquitySample, InstrumentDescriptor,
    IntelligenceReport, Position, SearchResult, TradeRecord,
)
from scheduler import PollingScheduler
from search import JsonFileStore, MemoryStore, SearchHistory, SearchOrchestrator
from state import OVERLAYS, SearchStatus, ViewState
from symbols import decode_symbol

logger = logging.getLogger("ygg.service")


# --- Response models ---

class PositionRow(BaseModel):
    position: Position
    instrument: InstrumentDescriptor
    pl_percent: float


class SearchView(BaseModel):
    status: SearchStatus
    query: Optional[str] = None
    result: Optional[SearchResult] = None
    error: Optional[str] = None
    history: List[str] = []


class DashboardSnapshot(BaseModel):
    version: int
    loading: bool
    clock: datetime
    last_update: Optional[datetime] = None
    account: Optional[AccountSnapshot] = None
    positions: List[PositionRow] = []
    activities: List[ActivityEntry] = []
    trades: List[TradeRecord] = []
    equity_history: List[EquitySample] = []
    metrics: DashboardMetrics
    intelligence: Optional[IntelligenceReport] = None
    intelligence_loading: bool = False
    intelligence_updated_at: Optional[datetime] = None
    theme: str
    console_tab: str
    position_filter: str
    show_history_overlay: bool
    show_search_overlay: bool
    search: SearchView


class SearchRequest(BaseModel):
    query: str


class OverlayRequest(BaseModel):
    visible: bool


def search_view(view: ViewState) -> SearchView:
    s = view.search
    return SearchView(status=s.status, query=s.query, result=s.result, error=s.error, history=list(s.history))


def build_snapshot(view: ViewState) -> DashboardSnapshot:
    samples = view.history.samples()
    return DashboardSnapshot(
        version=view.version,
        loading=view.loading,
        clock=view.clock,
        last_update=view.last_update,
        account=view.account,
        positions=[
            PositionRow(position=p, instrument=decode_symbol(p.symbol), pl_percent=position_pl_percent(p))
            for p in view.visible_positions()
        ],
        activities=view.recent_activities(),
        trades=view.trades if view.show_history_overlay else view.recent_trades(),
        equity_history=samples,
        metrics=summarize(view.account, samples, view.positions, view.trades),
        intelligence=view.intelligence,
        intelligence_loading=view.intelligence_loading,
        intelligence_updated_at=view.intelligence_updated_at,
        theme=view.theme,
        console_tab=view.console_tab,
        position_filter=view.position_filter,
        show_history_overlay=view.show_history_overlay,
        show_search_overlay=view.show_search_overlay,
        search=search_view(view),
    )


def build_app(settings: Optional[Settings] = None,
              transport: Optional[httpx.AsyncBaseTransport] = None,
              persist_history: bool = True) -> FastAPI:
    """Wire client, view, scheduler and search into a FastAPI app.

    ``transport`` lets tests route backend calls to an in-process stub.
    """
    settings = settings or load_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = BackendClient.from_settings(settings, transport=transport)
        view = ViewState(history_limit=settings.history_limit)
        store = JsonFileStore(settings.cache_dir) if persist_history else MemoryStore()
        history = SearchHistory(store, limit=settings.search_history_limit)
        app.state.view = view
        app.state.client = client
        app.state.search = SearchOrchestrator(client, view, history)
        app.state.scheduler = PollingScheduler.from_settings(client, view, settings)
        await app.state.scheduler.start()
        try:
            yield
        finally:
            await app.state.scheduler.stop()
            await client.aclose()

    app = FastAPI(title="YGG Dash", lifespan=lifespan)

    # --- View ---

    @app.get("/state", response_model=DashboardSnapshot, tags=["View"])
    async def get_state():
        return build_snapshot(app.state.view)

    @app.post("/refresh", response_model=DashboardSnapshot, tags=["View"])
    async def refresh():
        """Manual refresh: runs the same fast cycle the scheduler does."""
        await app.state.scheduler.refresh()
        return build_snapshot(app.state.view)

    # --- Search ---

    @app.post("/search", response_model=SearchView, tags=["Search"])
    async def submit_search(req: SearchRequest):
        if not req.query.strip():
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Query is empty.")
        await app.state.search.submit(req.query)
        return search_view(app.state.view)

    @app.delete("/search", response_model=SearchView, tags=["Search"])
    async def dismiss_search():
        app.state.search.dismiss()
        return search_view(app.state.view)

    @app.get("/search/history", response_model=List[str], tags=["Search"])
    async def get_search_history():
        return app.state.view.search.history

    @app.delete("/search/history", response_model=List[str], tags=["Search"])
    async def clear_search_history():
        app.state.search.clear_history()
        return app.state.view.search.history

    # --- UI flags ---

    @app.post("/ui/theme", tags=["UI"])
    async def toggle_theme():
        return {"theme": app.state.view.toggle_theme()}

    @app.put("/ui/console-tab/{tab}", tags=["UI"])
    async def set_console_tab(tab: str):
        try:
            app.state.view.set_console_tab(tab.upper())
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        return {"console_tab": app.state.view.console_tab}

    @app.put("/ui/position-filter/{name}", tags=["UI"])
    async def set_position_filter(name: str):
        try:
            app.state.view.set_position_filter(name.upper())
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        return {"position_filter": app.state.view.position_filter}

    @app.put("/ui/overlays/{name}", tags=["UI"])
    async def set_overlay(name: str, req: OverlayRequest):
        if name not in OVERLAYS:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Overlay {name} not found.")
        app.state.view.set_overlay(name, req.visible)
        return {"overlay": name, "visible": req.visible}

    # --- Stream ---

    @app.websocket("/ws/state")
    async def websocket_state(websocket: WebSocket):
        """Send a snapshot on connect, then again whenever the view changes."""
        await websocket.accept()
        view: ViewState = app.state.view
        try:
            last_version = view.version
            await websocket.send_json(build_snapshot(view).model_dump(mode="json"))
            while True:
                if view.version != last_version:
                    last_version = view.version
                    await websocket.send_json(build_snapshot(view).model_dump(mode="json"))
                # Client messages are ignored; receiving surfaces disconnects
                try:
                    await asyncio.wait_for(websocket.receive_text(), timeout=0.1)
                except asyncio.TimeoutError:
                    pass
        except WebSocketDisconnect:
            logger.info("State stream client disconnected")
        except Exception as e:
            logger.warning("State stream error: %s", e)
        finally:
            # Attempt graceful close if still connected
            try:
                await websocket.close()
            except Exception:
                pass

    return app


app = build_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
