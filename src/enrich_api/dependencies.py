"""Shared FastAPI dependencies."""

from fastapi import Request

from enrich_posts.listener import EnrichmentListener


def get_listener(request: Request) -> EnrichmentListener:
    """The listener owned by the running app (set up in the lifespan)."""
    return request.app.state.listener
