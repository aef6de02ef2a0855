"""Writes enrichment results back to the posts table."""

import logging
import re
import time
from datetime import datetime, timezone
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from enrich_posts.compute_embeddings import is_finite_vector
from enrich_posts.config import EnrichConfig
from enrich_posts.exceptions import PersistenceSkip
from enrich_posts.models import EnrichmentResult, SaveSummary

logger = logging.getLogger(__name__)

# pgvector: "vector must have at least 1 dimension", "expected 1536 dimensions, not 3"
_DIMENSION_ERROR_RE = re.compile(r"dimension", re.IGNORECASE)


class ResultWriter(Protocol):
    def update_enrichment(self, result: EnrichmentResult, enriched_at: datetime) -> None: ...


def validate_result(result: EnrichmentResult, dimensions: int) -> None:
    """Raise PersistenceSkip if the result must not be written."""
    if not result.embedding:
        raise PersistenceSkip(f"Post {result.post_id} has an empty embedding")
    if len(result.embedding) != dimensions:
        raise PersistenceSkip(
            f"Post {result.post_id} embedding has {len(result.embedding)} dimensions, expected {dimensions}"
        )
    if not is_finite_vector(result.embedding):
        raise PersistenceSkip(f"Post {result.post_id} embedding has non-numeric or non-finite values")


def is_dimension_error(exc: Exception) -> bool:
    return bool(_DIMENSION_ERROR_RE.search(str(exc)))


def save_enrichment_results(
    results: list[EnrichmentResult],
    store: ResultWriter,
    config: EnrichConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> SaveSummary:
    """
    Persist results in sub-batches, skipping invalid ones.

    Store errors never abort the remaining results: dimension constraint
    violations count as skipped, anything else as failed.

    Returns:
        SaveSummary with saved, skipped and failed counts
    """
    summary = SaveSummary()
    if not results:
        return summary

    batch_size = config.persist.batch_size
    logger.info("Saving %d enrichment results", len(results))

    for start in range(0, len(results), batch_size):
        batch = results[start:start + batch_size]
        for result in batch:
            try:
                validate_result(result, config.embedding.dimensions)
            except PersistenceSkip as exc:
                logger.warning("Skipping post %s - %s", result.post_id, exc)
                summary.skipped += 1
                continue

            try:
                store.update_enrichment(result, datetime.now(timezone.utc))
            except SQLAlchemyError as exc:
                if is_dimension_error(exc):
                    logger.warning("Skipping post %s due to embedding dimension error: %s", result.post_id, exc)
                    summary.skipped += 1
                else:
                    logger.error("Failed to update post %s: %s", result.post_id, exc)
                    summary.failed += 1
                continue

            summary.saved += 1

        if start + batch_size < len(results):
            sleep(config.persist.batch_delay_seconds)

    logger.info(
        "Saved %d enrichment results, skipped %d invalid, %d failed",
        summary.saved, summary.skipped, summary.failed,
    )
    return summary
