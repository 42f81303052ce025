"""
Main API module for Linkpulse.

Responsibilities:
    - Expose REST endpoints for shortening URLs and redirecting
    - Record clicks (as RawRequestInfo) into per-code analytics
    - Expose analytics, listings, system/memory stats, export/import and manual backup
    - Restore the latest snapshot at boot; run governor and backup timers

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - In-memory Storage, Analytics and LinkManager per app instance.
    - MemoryGovernor and BackupManager run on PeriodicTask timers started by
      the lifespan; both debounce themselves.
    - This module only translates HTTP <-> manager calls; all rules live in
      linkpulse.manager.

LLM Prompt Example:
    "Explain how to structure a FastAPI service with an application factory,
    injected dependencies, a lifespan for background timers, and a clean
    separation between API and business logic."
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from linkpulse.analytics.analytics import Analytics
from linkpulse.backup.backup import BackupManager
from linkpulse.config import ShortenerConfig, settings
from linkpulse.errors import CodeExhaustedError, InvalidUrlError, NotFoundError, PersistenceError
from linkpulse.governor.memory_governor import MemoryGovernor
from linkpulse.manager.link_manager import LinkManager
from linkpulse.models import RawRequestInfo
from linkpulse.scheduler import PeriodicTask
from linkpulse.storage.storage import Storage
from linkpulse.validation.validator import is_valid_url


class ShortenRequest(BaseModel):
    """Request payload for shortening a URL."""
    url: str


def create_app(config: Optional[ShortenerConfig] = None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        config (Optional[ShortenerConfig]): Overrides the env-driven settings.

    Returns:
        FastAPI: A fully configured application with isolated index, analytics,
                 governor and backup instances (exposed on `app.state`).
    """
    config = config or settings
    log = logging.getLogger("linkpulse")

    # basic console logging (optional)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=config.log_level)

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests)
    # ----------------------------------------------------------------
    storage = Storage()
    analytics = Analytics(
        history_limit=config.history_limit,
        ip_flag_threshold=config.ip_flag_threshold,
        agent_flag_threshold=config.agent_flag_threshold,
    )
    manager = LinkManager(storage=storage, analytics=analytics, config=config)
    backup = BackupManager(manager)
    governor = MemoryGovernor(manager, persist=backup.run_scheduled if config.backup_enabled else None)

    tasks: List[PeriodicTask] = [PeriodicTask("memory-sweep", config.sweep_interval_seconds, governor.sweep)]
    if config.backup_enabled:
        tasks.append(PeriodicTask("backup", config.backup_interval_seconds, backup.run_scheduled))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.backup_enabled:
            backup.restore_latest()
        log.info("Linkpulse serving %d short URLs", len(storage))
        for task in tasks:
            task.start()
        try:
            yield
        finally:
            for task in tasks:
                task.stop()
            if config.backup_enabled:
                try:
                    backup.create_backup(force=True)
                except PersistenceError:
                    log.exception("Final backup on shutdown failed")

    app = FastAPI(
        title="Linkpulse",
        description="URL shortener with bounded click analytics, memory governor and snapshot backups",
        docs_url="/docs",
        lifespan=lifespan,
    )
    app.state.manager = manager
    app.state.governor = governor
    app.state.backup = backup

    # ----------------------------------------------------------------
    # Utilities
    # ----------------------------------------------------------------
    def _access_info(request: Request) -> RawRequestInfo:
        peer = request.client.host if request.client else None
        return RawRequestInfo(peer_address=peer, headers=dict(request.headers))

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok", "stats": manager.get_system_stats()}

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.post("/shorten")
    def shorten(req: ShortenRequest, request: Request) -> Dict[str, Any]:
        """
        Shorten a URL.

        The manager normalizes the URL (dangerous schemes rejected, host
        case-folded) before deduping and storing it.

        Raises:
            HTTPException: 400 invalid URL, 503 code space exhausted.
        """
        try:
            result = manager.create_short_url(req.url)
        except InvalidUrlError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except CodeExhaustedError as exc:
            raise HTTPException(status_code=503, detail=str(exc))

        body = result.to_dict()
        body["short_url"] = str(request.url_for("redirect_short_url", short_code=result.short_code))
        return body

    @app.get("/s/{short_code}")
    def redirect_short_url(short_code: str, request: Request) -> Response:
        """
        Resolve a code, record the click and redirect.

        Browsers (Accept: text/html) get a 302; API clients get JSON with the
        original URL and click count.
        """
        try:
            record = manager.get_original_url(short_code)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Short URL not found")

        if not is_valid_url(record.original_url):
            log.error("Refusing redirect to invalid stored URL for %s", short_code)
            raise HTTPException(status_code=400, detail="Invalid redirect URL")

        manager.record_click(short_code, _access_info(request))

        if "text/html" in request.headers.get("accept", "").lower():
            return RedirectResponse(url=record.original_url, status_code=302)
        return JSONResponse({"original_url": record.original_url, "clicks": record.click_count})

    @app.get("/api/analytics/{short_code}")
    def get_analytics(short_code: str) -> Dict[str, Any]:
        summary = manager.get_analytics(short_code)
        if summary is None:
            raise HTTPException(status_code=404, detail="Short URL not found")
        return summary

    @app.get("/api/urls")
    def list_urls() -> List[Dict[str, Any]]:
        return manager.get_all_urls()

    @app.get("/api/stats")
    def system_stats() -> Dict[str, Any]:
        return manager.get_system_stats()

    @app.get("/api/memory-stats")
    def memory_stats() -> Dict[str, Any]:
        return {**manager.get_memory_stats(), **governor.status(), **backup.status()}

    @app.get("/api/export-data")
    def export_data() -> JSONResponse:
        data = manager.export_data()
        filename = f"linkpulse-export-{manager.now()}.json"
        return JSONResponse(data, headers={"Content-Disposition": f'attachment; filename="{filename}"'})

    @app.post("/api/import-data")
    def import_data(payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            count = manager.import_data(payload)
        except PersistenceError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return {"message": "Snapshot imported", "total_urls": count}

    @app.post("/api/backup")
    def create_backup() -> Dict[str, Any]:
        if not config.backup_enabled:
            raise HTTPException(status_code=409, detail="Backup system is disabled")
        try:
            path = backup.create_backup(force=True)
        except PersistenceError as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        return {"message": "Backup created", "filename": path.name if path else None}

    @app.get("/api/backups")
    def list_backups() -> List[Dict[str, Any]]:
        return backup.list_backups()

    return app


# Backward compatibility for uvicorn and legacy imports:
# `uvicorn main:app --reload` and `from main import app` continue to work.
app = create_app()
