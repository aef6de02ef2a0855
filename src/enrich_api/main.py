"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from common.cli_helpers import setup_logging
from enrich_api.models import ListenerStatusResponse, ServiceInfoResponse
from enrich_api.routers import enrich, health, listener
from enrich_posts.config import EnrichConfig, get_config
from enrich_posts.helpers import build_listener
from enrich_posts.listener import EnrichmentListener

logger = logging.getLogger(__name__)

SERVICE_NAME = "Post Enrichment Service"
VERSION = "1.0.0"

ENDPOINTS = {
    "health": "/health",
    "enrich": "/enrich-posts",
    "listener_start": "/listener/start",
    "listener_stop": "/listener/stop",
    "listener_status": "/listener/status",
}


def create_app(
    enrichment_listener: EnrichmentListener | None = None,
    config: EnrichConfig | None = None,
) -> FastAPI:
    """Build the app; the listener is created (and auto-started when enabled) on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        active = enrichment_listener or build_listener(config or get_config())
        app.state.listener = active
        if active.enabled:
            logger.info("Auto-starting continuous enrichment listener")
            active.start()
        else:
            logger.info("Continuous listener disabled (set ENABLE_LISTENER=true to enable)")
        try:
            yield
        finally:
            await active.shutdown()

    app = FastAPI(
        title="Post Enrichment API",
        description="Control surface for the continuous post enrichment listener",
        version=VERSION,
        lifespan=lifespan,
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(listener.router)
    app.include_router(enrich.router)

    @app.get("/", response_model=ServiceInfoResponse)
    async def root(request: Request):
        """Service info with the listener's current state."""
        active: EnrichmentListener = request.app.state.listener
        return ServiceInfoResponse(
            service=SERVICE_NAME,
            version=VERSION,
            endpoints=ENDPOINTS,
            listener=ListenerStatusResponse.from_snapshot(active.snapshot(), active.config),
        )

    return app


app = create_app()


def main():
    """Run the API server."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "enrich_api.main:app",
        host=config.server.host,
        port=config.server.port,
    )


if __name__ == "__main__":
    main()
