"""mdgraph FastAPI application entry point."""
from __future__ import annotations

import asyncio
import logging
import webbrowser
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from mdgraph import __version__, config
from mdgraph.file_watcher import FileWatcher, SettingsWatcher
from mdgraph.graph.broadcaster import SnapshotBroadcaster
from mdgraph.graph.engine import LinkGraphEngine
from mdgraph.observability import initialize as initialize_observability, shutdown as shutdown_observability
from mdgraph.routers.graph import graph_router
from mdgraph.settings import AppSettings, PaletteSource

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("mdgraph")


def _open_browser(url: str) -> None:
    logger.info(f"Opening browser: {url}")
    try:
        webbrowser.open(url)
    except webbrowser.Error as e:
        logger.error(f"Failed to open browser: {e}")


def create_app(
    watch_dir: Optional[Path] = None,
    *,
    port: Optional[int] = None,
    debounce_ms: Optional[int] = None,
    open_browser: Optional[bool] = None,
    static_dir: Optional[Path] = None,
) -> FastAPI:
    watch_root = Path(watch_dir or config.WATCH_DIR).resolve()
    delay = (config.DEBOUNCE_MS if debounce_ms is None else debounce_ms) / 1000
    should_open = config.OPEN_BROWSER if open_browser is None else open_browser
    static_root = static_dir or config.STATIC_DIR

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle."""
        logger.info(f"mdgraph starting, watching directory: {watch_root}")
        initialize_observability(app)

        settings = AppSettings(config.CONFIG_PATH)
        settings.load()
        palette = PaletteSource(config.WAL_PATH, settings)
        palette.load()

        engine = LinkGraphEngine(
            watch_root,
            extension=config.DOCUMENT_EXTENSION,
            debounce_seconds=delay,
            palette=palette,
            settings=settings,
            broadcaster=SnapshotBroadcaster(send_timeout=config.SEND_TIMEOUT_SECONDS),
        )
        app.state.engine = engine

        watcher = FileWatcher()
        settings_watcher = SettingsWatcher(settings, palette)
        app.state.file_watcher = watcher
        await watcher.start(engine)
        await settings_watcher.start(engine)

        if should_open:
            url = f"http://localhost:{port or config.PORT}"
            asyncio.get_running_loop().call_later(0.5, _open_browser, url)

        yield

        logger.info("mdgraph shutting down")
        await watcher.stop()
        await settings_watcher.stop()
        await engine.scheduler.close()
        shutdown_observability(app)

    app = FastAPI(
        title="mdgraph",
        description="Live link graph for a directory of markdown documents",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(graph_router)

    @app.get("/api/health")
    def health():
        """Health check endpoint."""
        engine = getattr(app.state, "engine", None)
        watcher = getattr(app.state, "file_watcher", None)
        return {
            "status": "ok",
            "watchRoot": str(watch_root),
            "watcher": "running" if watcher and watcher.is_running else "stopped",
            "documents": len(engine.watched) if engine else 0,
            "subscribers": engine.broadcaster.count() if engine else 0,
        }

    if static_root.is_dir():
        app.mount("/", StaticFiles(directory=static_root, html=True), name="static")

    return app


app = create_app()
