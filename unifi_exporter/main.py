"""Exporter FastAPI Application"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response

from unifi_exporter.metrics import MetricsStore
from unifi_exporter.poller import Poller
from unifi_exporter.version import get_version

logger = logging.getLogger(__name__)

BANNER = (
    "UniFi Network Exporter\n"
    "\n"
    "Endpoints:\n"
    "  /metrics - Prometheus metrics\n"
    "  /health - Health check\n"
)


def _log_poll_task_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Polling task ended unexpectedly: {error!r}")
    else:
        logger.error("Polling task ended unexpectedly")


def create_app(store: MetricsStore, poller: Optional[Poller] = None) -> FastAPI:
    """Build the scrape/health app; the poller, if given, runs for the app's lifetime"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if poller is not None:
            task = asyncio.create_task(poller.run_forever())
            task.add_done_callback(_log_poll_task_exit)
            logger.info(f"Polling every {poller.interval}s")
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                await poller.client.close()

    app = FastAPI(
        title="UniFi Network Exporter",
        description="Prometheus exporter for UniFi Network Controller",
        version=get_version(),
        lifespan=lifespan,
    )
    app.state.store = store

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """Usage banner"""
        return BANNER

    @app.get("/health", response_class=PlainTextResponse)
    async def health_check():
        """Liveness probe"""
        return "OK"

    @app.get("/metrics")
    async def metrics():
        """Current snapshot in the Prometheus text format"""
        return Response(content=store.snapshot(), media_type=store.content_type)

    return app
