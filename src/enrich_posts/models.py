"""Data models for the post enrichment pipeline."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from common.utils import get_value


@dataclass
class PostRecord:
    """Post awaiting enrichment, as read from the posts table."""
    id: int
    title: Optional[str]
    body: Optional[str]
    platform: str
    created_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: Any) -> "PostRecord":
        """Build a record from a DB row mapping or a plain dict."""
        return cls(
            id=int(get_value(row, "id")),
            title=get_value(row, "title"),
            body=get_value(row, "body"),
            platform=get_value(row, "platform") or "",
            created_at=get_value(row, "created_at"),
        )


@dataclass
class PostAnalysis:
    """Validated LLM analysis for one post."""
    sentiment: float
    sentiment_label: Optional[str]
    is_complaint: bool
    keywords: list[str]


@dataclass
class EnrichmentResult:
    """Derived attributes for one post, ready to persist."""
    post_id: int
    sentiment: float
    sentiment_label: str
    is_complaint: bool
    keywords: list[str]
    embedding: list[float]
    confidence: float
    used_fallback_embedding: bool = False


@dataclass
class SaveSummary:
    saved: int = 0
    skipped: int = 0
    failed: int = 0

    def add(self, other: "SaveSummary") -> None:
        self.saved += other.saved
        self.skipped += other.skipped
        self.failed += other.failed


class ListenerStatus(str, Enum):
    """Outcome of the listener's last completed run (not process liveness)."""
    STOPPED = "stopped"
    RUNNING = "running"
    ERROR = "error"


@dataclass
class ListenerStats:
    total_processed: int = 0
    last_run_time: Optional[datetime] = None
    consecutive_errors: int = 0
    status: ListenerStatus = ListenerStatus.STOPPED

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys the dashboard reads."""
        return {
            "totalProcessed": self.total_processed,
            "lastRunTime": self.last_run_time.isoformat() if self.last_run_time else None,
            "consecutiveErrors": self.consecutive_errors,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class ListenerSnapshot:
    """Read-only view of the listener state for status reporting."""
    enabled: bool
    running: bool
    processing: bool
    stats: ListenerStats

    @classmethod
    def capture(cls, enabled: bool, running: bool, processing: bool, stats: ListenerStats) -> "ListenerSnapshot":
        return cls(enabled=enabled, running=running, processing=processing, stats=replace(stats))

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "running": self.running,
            "processing": self.processing,
            "stats": self.stats.to_dict(),
        }


@dataclass
class PassReport:
    """Summary of one backlog-check-and-process cycle."""
    started_at: datetime
    duration_seconds: float = 0.0
    backlog: int = 0
    fetched: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    gated: bool = False
    error: Optional[str] = None
    fallback_embeddings: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None
