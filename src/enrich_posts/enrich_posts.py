"""Per-post enrichment: LLM analysis followed by embedding."""

import logging
import time
from typing import Callable

import openai

from enrich_posts.analyze_posts import analyze_posts, sentiment_label_for
from enrich_posts.compute_embeddings import embed_post
from enrich_posts.config import EnrichConfig
from enrich_posts.exceptions import AnalysisUnavailable
from enrich_posts.models import EnrichmentResult, PostRecord

logger = logging.getLogger(__name__)


def enrich_post(
    post: PostRecord,
    client: openai.OpenAI,
    config: EnrichConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> EnrichmentResult:
    """
    Enrich a single post.

    Analysis runs first, then the embedding, one after the other to keep the
    concurrent load on the OpenAI API at one request.

    Raises:
        AnalysisUnavailable: If the post could not be analyzed. The embedding's
            filler-vector fallback does not apply here; nothing is persisted.
    """
    [analysis] = analyze_posts([post], client, config.analysis)
    if analysis is None:
        raise AnalysisUnavailable(f"Post {post.id} could not be analyzed")

    embedding, used_fallback = embed_post(post, client, config.embedding, sleep=sleep)

    return EnrichmentResult(
        post_id=post.id,
        sentiment=analysis.sentiment,
        sentiment_label=analysis.sentiment_label or sentiment_label_for(analysis.sentiment),
        is_complaint=analysis.is_complaint,
        keywords=analysis.keywords,
        embedding=embedding,
        confidence=config.analysis.default_confidence,
        used_fallback_embedding=used_fallback,
    )
