"""Embedding generation: chunked requests, bounded retries and mean pooling."""

import logging
import math
import time
from typing import Callable, Optional

import numpy as np
import openai

from enrich_posts.config import EmbeddingConfig
from enrich_posts.exceptions import EmbeddingPermanentError, EmbeddingTransientError
from enrich_posts.models import PostRecord
from enrich_posts.text import build_post_text, chunk_by_chars, clean_for_embedding, is_too_short

logger = logging.getLogger(__name__)


def fallback_embedding(dimensions: int, value: float = 0.001) -> list[float]:
    """Constant filler vector; never all zeros, which pgvector cannot index by cosine distance."""
    return [value] * dimensions


def is_finite_vector(values: list) -> bool:
    """True when every element is a finite int or float."""
    return all(
        isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
        for v in values
    )


def backoff_delay(attempt: int, base_seconds: float = 1.0) -> float:
    """Delay after a failed attempt: base * attempt^2 (1s, 4s, ...)."""
    return base_seconds * attempt * attempt


def mean_pool(vectors: list[list[float]]) -> list[float]:
    """Element-wise mean of chunk vectors; a single vector is returned unchanged."""
    if not vectors:
        raise ValueError("Cannot pool an empty list of vectors")
    if len(vectors) == 1:
        return vectors[0]
    return np.mean(np.asarray(vectors, dtype=np.float64), axis=0).tolist()


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


def request_embedding(text: str, client: openai.OpenAI, config: EmbeddingConfig) -> list[float]:
    """Request one embedding vector of config.dimensions floats.

    Raises:
        EmbeddingTransientError: On 429, 5xx, timeouts and connection errors
        EmbeddingPermanentError: On any other failure, malformed payloads or wrong length
    """
    try:
        response = client.embeddings.create(
            model=config.model,
            input=text,
            dimensions=config.dimensions,
            timeout=config.timeout_seconds,
        )
    except openai.APIStatusError as exc:
        message = f"Embedding request failed: {exc.status_code} - {str(exc.message)[:200]}"
        if _is_retryable_status(exc.status_code):
            raise EmbeddingTransientError(message, status_code=exc.status_code) from exc
        raise EmbeddingPermanentError(message) from exc
    except openai.APIConnectionError as exc:
        raise EmbeddingTransientError(f"Embedding request did not complete: {exc}") from exc
    except openai.OpenAIError as exc:
        raise EmbeddingPermanentError(f"Embedding request failed: {exc}") from exc

    try:
        vector = getattr(response.data[0], "embedding", None)
    except (AttributeError, IndexError, TypeError) as exc:
        raise EmbeddingPermanentError(f"Malformed embedding response: {exc}") from exc
    if not isinstance(vector, list):
        raise EmbeddingPermanentError("Embedding response has no vector")
    if len(vector) != config.dimensions:
        raise EmbeddingPermanentError(
            f"Invalid vector dimensions: expected {config.dimensions}, got {len(vector)}"
        )
    if not is_finite_vector(vector):
        raise EmbeddingPermanentError("Embedding response contains non-numeric or non-finite values")
    return vector


def embed_chunk(
    chunk: str,
    client: openai.OpenAI,
    config: EmbeddingConfig,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "",
) -> Optional[list[float]]:
    """Embed one chunk, retrying transient failures with quadratic backoff.

    Returns:
        The vector, or None when the chunk could not be embedded
    """
    for attempt in range(1, config.max_attempts + 1):
        try:
            return request_embedding(chunk, client, config)
        except EmbeddingTransientError as exc:
            delay = backoff_delay(attempt, config.backoff_base_seconds)
            logger.warning(
                "Embedding attempt %d/%d failed for %s: %s - retrying in %.1fs",
                attempt, config.max_attempts, label, exc, delay,
            )
            sleep(delay)
        except EmbeddingPermanentError as exc:
            logger.error("Embedding failed for %s: %s", label, exc)
            return None

    logger.error("All %d embedding attempts failed for %s", config.max_attempts, label)
    return None


def embed_post(
    post: PostRecord,
    client: openai.OpenAI,
    config: EmbeddingConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[list[float], bool]:
    """
    Compute one fixed-length embedding for a post.

    The text is normalized and split into chunks; each chunk is embedded
    separately and the valid vectors are mean-pooled. Posts that are too
    short, or whose chunks all fail, get the filler vector instead.

    Args:
        post: Post to embed
        client: OpenAI client
        config: Embedding settings
        sleep: Sleep function used for retry backoff

    Returns:
        Tuple of (vector, used_fallback)
    """
    full_text = build_post_text(post)
    if is_too_short(full_text, config.min_text_chars):
        logger.warning("Empty text for post %s, using default embedding", post.id)
        return fallback_embedding(config.dimensions, config.fallback_value), True

    cleaned = clean_for_embedding(full_text)
    if is_too_short(cleaned, config.min_text_chars):
        logger.warning("No embeddable text left for post %s after cleaning, using default embedding", post.id)
        return fallback_embedding(config.dimensions, config.fallback_value), True

    chunks = chunk_by_chars(cleaned, config.char_limit)
    vectors = []
    for index, chunk in enumerate(chunks, 1):
        vector = embed_chunk(chunk, client, config, sleep=sleep, label=f"post {post.id} chunk {index}/{len(chunks)}")
        if vector is not None:
            vectors.append(vector)

    if not vectors:
        logger.warning("No valid embeddings for post %s, using default", post.id)
        return fallback_embedding(config.dimensions, config.fallback_value), True

    if len(vectors) < len(chunks):
        logger.info("Pooled %d of %d chunk embeddings for post %s", len(vectors), len(chunks), post.id)
    return mean_pool(vectors), False
