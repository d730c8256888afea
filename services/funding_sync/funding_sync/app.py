"""FastAPI application exposing the update trigger and status."""

from __future__ import annotations

import hmac
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request

from .errors import PersistenceError
from .logging import get_logger
from .runtime import Runtime, build_runtime

logger = get_logger(__name__)


def get_runtime(request: Request) -> Runtime:
    runtime: Runtime = request.app.state.runtime
    return runtime


def create_app(runtime_factory: Callable[[], Runtime] = build_runtime) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        runtime = runtime_factory()
        app.state.runtime = runtime
        try:
            await runtime.scheduler.start()
            yield
        finally:
            await runtime.scheduler.stop()
            runtime.close()

    api = FastAPI(title="Funding Sync Service", version="1.0.0", lifespan=lifespan)

    @api.get("/health")
    def health(runtime: Runtime = Depends(get_runtime)) -> dict:
        return {
            "status": "healthy",
            "source": runtime.config.source_url,
            "cron": str(runtime.config.update_cron),
            "enabled": runtime.config.update_enabled,
        }

    @api.post("/update-data")
    async def update_data(
        x_api_key: Optional[str] = Header(None, alias="x-api-key"),
        api_key_param: Optional[str] = Query(None, alias="apiKey"),
        runtime: Runtime = Depends(get_runtime),
    ) -> dict:
        """Queue a pipeline run and acknowledge immediately."""
        supplied = x_api_key or api_key_param
        expected = runtime.config.update_api_key
        if not supplied or not expected or not hmac.compare_digest(supplied, expected):
            logger.warning("update_unauthorized")
            raise HTTPException(status_code=401, detail="Unauthorized - Invalid API key")

        queued = runtime.scheduler.request_run("manual")
        logger.info("manual_update_triggered", queued=queued)
        return {
            "status": "started",
            "message": "Data update started. Check logs for progress.",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @api.get("/update-status")
    def update_status(runtime: Runtime = Depends(get_runtime)) -> dict:
        try:
            status = runtime.store.read_status()
        except PersistenceError as exc:
            logger.error("update_status_failed", error=str(exc))
            raise HTTPException(status_code=500, detail="Failed to fetch update status") from exc
        if status is None:
            raise HTTPException(status_code=404, detail="Data file not found")

        scheduler = runtime.scheduler
        return {
            **status,
            "running": scheduler.running,
            "nextRun": scheduler.next_run.isoformat() if scheduler.next_run else None,
            "lastRun": scheduler.last_result.to_dict() if scheduler.last_result else None,
        }

    return api


app = create_app()
