"""Wiring helpers shared by the CLI and the API."""

from __future__ import annotations

import argparse
import os
from functools import lru_cache
from typing import Callable

from openai import OpenAI

from common.cli_helpers import positive_int
from enrich_posts.config import EnrichConfig
from enrich_posts.enrich_posts import enrich_post
from enrich_posts.listener import EnrichmentListener
from enrich_posts.models import EnrichmentResult, PostRecord
from enrich_posts.store import EnrichmentStore


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    """Shared OpenAI client. SDK retries are off; the pipeline retries itself."""
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY is not set; AI enrichment is unavailable")
    return OpenAI(api_key=api_key, max_retries=0)


def build_enricher(
    config: EnrichConfig,
    client_factory: Callable[[], OpenAI] = get_openai_client,
) -> Callable[[PostRecord], EnrichmentResult]:
    """Bind enrich_post to a config; the client is created on first use."""

    def enricher(post: PostRecord) -> EnrichmentResult:
        return enrich_post(post, client_factory(), config)

    return enricher


def build_listener(config: EnrichConfig, store: EnrichmentStore | None = None) -> EnrichmentListener:
    return EnrichmentListener(
        store=store or EnrichmentStore(),
        enricher=build_enricher(config),
        config=config,
    )


def parse_enrich_posts_args() -> argparse.Namespace:
    """Parse CLI arguments for enrich_posts."""

    parser = argparse.ArgumentParser(description="Enrich posts missing sentiment, keywords or embeddings")

    # Input options
    parser.add_argument(
        "--limit",
        type=positive_int,
        default=None,
        help="Max posts to enrich (default: listener.max_posts_per_run)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Config name under enrich_posts/configs (default: $ENRICH_CONFIG or prod)",
    )

    # Output options
    parser.add_argument("--load-rds", action="store_true", help="Write results to the posts table")
    parser.add_argument("--load-local", action="store_true", help="Save results to local file")
    parser.add_argument(
        "--include-embeddings",
        action="store_true",
        help="Keep embedding vectors in the local file (default: dropped)",
    )

    return parser.parse_args()
