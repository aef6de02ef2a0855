"""Listener control endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from enrich_api.dependencies import get_listener
from enrich_api.models import ListenerActionResponse, ListenerConfigResponse, ListenerStatusResponse
from enrich_posts.listener import EnrichmentListener

router = APIRouter(prefix="/listener", tags=["listener"])


@router.post("/start", response_model=ListenerActionResponse)
async def start_listener(listener: Annotated[EnrichmentListener, Depends(get_listener)]):
    """Start the continuous listener.

    Starting an already running or disabled listener is a no-op; the
    returned status says which case applied.
    """
    if not listener.enabled:
        return ListenerActionResponse(
            message="Listener is disabled (ENABLE_LISTENER=false)",
            status="disabled",
        )

    started = listener.start()
    return ListenerActionResponse(
        message="Listener started successfully" if started else "Listener already running",
        status="started" if started else "running",
        config=ListenerConfigResponse.from_config(listener.config),
    )


@router.post("/stop", response_model=ListenerActionResponse)
async def stop_listener(listener: Annotated[EnrichmentListener, Depends(get_listener)]):
    """Stop scheduling passes; a pass already running finishes."""
    listener.stop()
    return ListenerActionResponse(message="Listener stopped successfully", status="stopped")


@router.get("/status", response_model=ListenerStatusResponse)
async def listener_status(listener: Annotated[EnrichmentListener, Depends(get_listener)]):
    return ListenerStatusResponse.from_snapshot(listener.snapshot(), listener.config)
