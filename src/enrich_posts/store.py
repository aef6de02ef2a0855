"""Backlog queries and enrichment writes against the posts table."""

from __future__ import annotations

import json
import logging
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.db import get_session
from common.serialization import serialize_dataclass
from enrich_posts.models import EnrichmentResult, PostRecord

logger = logging.getLogger(__name__)

MAX_FETCH = 10000

# A post is in the backlog while any derived column is still missing.
UNFINISHED_FILTER = """
    (enriched_at IS NULL
     OR sentiment IS NULL
     OR embedding IS NULL
     OR keywords IS NULL)
"""


def format_vector(values: list[float]) -> str:
    """Render a vector in pgvector's text input format."""
    return "[" + ",".join(repr(float(v)) for v in values) + "]"


class EnrichmentStore:
    """Read and write surface of the backing store used by the pipeline."""

    def __init__(self, session_factory: Callable[[], AbstractContextManager[Session]] = get_session):
        self._session_factory = session_factory

    def count_backlog(self) -> int:
        """Count posts still missing any enrichment column."""
        with self._session_factory() as session:
            count = session.execute(
                text(f"SELECT COUNT(*) FROM posts WHERE {UNFINISHED_FILTER}")
            ).scalar_one()
        return int(count or 0)

    def fetch_backlog(self, limit: int | None = None) -> list[PostRecord]:
        """Fetch unfinished posts, most recent first, capped at MAX_FETCH rows."""
        row_limit = MAX_FETCH if limit is None else max(0, min(limit, MAX_FETCH))
        with self._session_factory() as session:
            rows = session.execute(
                text(
                    f"""
                    SELECT id, title, body, platform, created_at
                    FROM posts
                    WHERE {UNFINISHED_FILTER}
                    ORDER BY created_at DESC
                    LIMIT :limit
                    """
                ),
                {"limit": row_limit},
            ).mappings().all()

        posts = [PostRecord.from_row(row) for row in rows]
        logger.info("Fetched %d unfinished posts (limit %d)", len(posts), row_limit)
        return posts

    def update_enrichment(self, result: EnrichmentResult, enriched_at: datetime) -> None:
        """Write one post's enrichment columns."""
        with self._session_factory() as session:
            session.execute(
                text(
                    """
                    UPDATE posts
                    SET sentiment = :sentiment,
                        is_complaint = :is_complaint,
                        keywords = :keywords,
                        embedding = CAST(:embedding AS vector),
                        enriched_at = :enriched_at,
                        enrich_status = 'completed'
                    WHERE id = :post_id
                    """
                ),
                {
                    "post_id": result.post_id,
                    "sentiment": result.sentiment,
                    "is_complaint": result.is_complaint,
                    "keywords": list(result.keywords),
                    "embedding": format_vector(result.embedding),
                    "enriched_at": enriched_at,
                },
            )
            session.commit()

    def update_job(
        self,
        job_id: str,
        status: str,
        parameters: dict[str, Any] | None = None,
        result: Any = None,
        error: str | None = None,
    ) -> None:
        """Upsert an enrich_jobs row. Failures are logged, never raised."""
        now = datetime.now(timezone.utc)
        if result is not None and not isinstance(result, dict):
            result = serialize_dataclass(result)
        params = {
            "id": job_id,
            "status": status,
            "parameters": json.dumps(parameters) if parameters is not None else None,
            "result": json.dumps(result, default=str) if result is not None else None,
            "error": error,
            "started_at": now if status == "running" else None,
            "completed_at": now if status in ("completed", "failed") else None,
        }
        try:
            with self._session_factory() as session:
                session.execute(
                    text(
                        """
                        INSERT INTO enrich_jobs (id, status, parameters, result, error, started_at, completed_at)
                        VALUES (:id, :status, CAST(:parameters AS jsonb), CAST(:result AS jsonb),
                                :error, :started_at, :completed_at)
                        ON CONFLICT (id) DO UPDATE SET
                            status = EXCLUDED.status,
                            parameters = COALESCE(EXCLUDED.parameters, enrich_jobs.parameters),
                            result = COALESCE(EXCLUDED.result, enrich_jobs.result),
                            error = EXCLUDED.error,
                            started_at = COALESCE(enrich_jobs.started_at, EXCLUDED.started_at),
                            completed_at = COALESCE(EXCLUDED.completed_at, enrich_jobs.completed_at)
                        """
                    ),
                    params,
                )
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Failed to update job %s: %s", job_id, exc)
