"""Liveness probe, independent of the listener."""

import os
import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter

from enrich_api.models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health():
    process = psutil.Process(os.getpid())
    memory = process.memory_info()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        uptime=time.time() - process.create_time(),
        memory={"rss": memory.rss, "vms": memory.vms},
    )
