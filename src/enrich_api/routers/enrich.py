"""Manual enrichment runs."""

import time
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from enrich_api.dependencies import get_listener
from enrich_api.models import EnrichJobResponse, EnrichRequest
from enrich_posts.listener import EnrichmentListener

router = APIRouter(prefix="/enrich-posts", tags=["enrich"])


@router.post("", status_code=202, response_model=EnrichJobResponse)
async def enrich_posts(
    background_tasks: BackgroundTasks,
    listener: Annotated[EnrichmentListener, Depends(get_listener)],
    payload: EnrichRequest | None = None,
):
    """Queue one ungated enrichment pass, tracked in enrich_jobs.

    Shares the listener's in-flight guard, so a manual run never overlaps a
    scheduled pass.
    """
    if listener.processing:
        raise HTTPException(status_code=409, detail="Enrichment already in progress")

    payload = payload or EnrichRequest()
    job_id = payload.job_id or f"enrich_{int(time.time() * 1000)}"
    background_tasks.add_task(listener.run_job, job_id, payload.limit)

    return EnrichJobResponse(
        job_id=job_id,
        status="started",
        message="Enrichment run queued",
        limit=payload.limit,
    )
