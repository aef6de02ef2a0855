"""Control-surface Pydantic models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from enrich_posts.config import EnrichConfig
from enrich_posts.models import ListenerSnapshot


class ListenerStatsResponse(BaseModel):
    """Run statistics, keyed the way the dashboard reads them."""

    model_config = ConfigDict(populate_by_name=True)

    total_processed: int = Field(alias="totalProcessed")
    last_run_time: datetime | None = Field(default=None, alias="lastRunTime")
    consecutive_errors: int = Field(alias="consecutiveErrors")
    status: str


class ListenerConfigResponse(BaseModel):
    interval_seconds: float
    min_posts_threshold: int
    max_posts_per_run: int
    max_in_flight: int
    inter_post_delay_seconds: float

    @classmethod
    def from_config(cls, config: EnrichConfig) -> "ListenerConfigResponse":
        settings = config.listener
        return cls(
            interval_seconds=settings.interval_seconds,
            min_posts_threshold=settings.min_posts,
            max_posts_per_run=settings.max_posts_per_run,
            max_in_flight=settings.max_in_flight,
            inter_post_delay_seconds=settings.inter_post_delay_seconds,
        )


class ListenerStatusResponse(BaseModel):
    enabled: bool
    running: bool
    processing: bool
    stats: ListenerStatsResponse
    config: ListenerConfigResponse

    @classmethod
    def from_snapshot(cls, snapshot: ListenerSnapshot, config: EnrichConfig) -> "ListenerStatusResponse":
        return cls(
            enabled=snapshot.enabled,
            running=snapshot.running,
            processing=snapshot.processing,
            stats=ListenerStatsResponse(**snapshot.stats.to_dict()),
            config=ListenerConfigResponse.from_config(config),
        )


class ListenerActionResponse(BaseModel):
    message: str
    status: str
    config: ListenerConfigResponse | None = None


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    uptime: float
    memory: dict[str, int]


class EnrichRequest(BaseModel):
    """Manual enrichment run."""

    job_id: str | None = None
    limit: int | None = Field(default=None, ge=1, le=10000)


class EnrichJobResponse(BaseModel):
    job_id: str
    status: str
    message: str
    limit: int | None = None


class ServiceInfoResponse(BaseModel):
    service: str
    version: str
    endpoints: dict[str, str]
    listener: ListenerStatusResponse
