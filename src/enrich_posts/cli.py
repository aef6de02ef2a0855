"""CLI for a one-shot enrichment run over the current backlog."""

from __future__ import annotations

import logging
import time

from dotenv import load_dotenv

from common.cli_helpers import setup_logging
from common.local_io import save_jsonl_records_local
from enrich_posts.config import load_config, set_config
from enrich_posts.helpers import build_enricher, parse_enrich_posts_args
from enrich_posts.models import SaveSummary
from enrich_posts.save_results import save_enrichment_results
from enrich_posts.store import EnrichmentStore

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def main() -> None:
    args = parse_enrich_posts_args()

    config = load_config(args.config)
    set_config(config)

    if not args.load_rds and not args.load_local:
        logger.warning("Neither --load-rds nor --load-local given; results will only be logged")

    store = EnrichmentStore()
    limit = args.limit or config.listener.max_posts_per_run
    posts = store.fetch_backlog(limit)
    if not posts:
        logger.warning("No posts to enrich")
        return

    enricher = build_enricher(config)
    results = []
    totals = SaveSummary()

    # One post at a time, same pacing as the listener.
    for index, post in enumerate(posts, 1):
        result = enricher(post)
        results.append(result)
        logger.info(
            "  [%d/%d] post %s | %s (%.2f) | complaint=%s | keywords=%s",
            index, len(posts), post.id, result.sentiment_label, result.sentiment,
            result.is_complaint, result.keywords,
        )
        if args.load_rds:
            totals.add(save_enrichment_results([result], store, config))
        time.sleep(config.listener.inter_post_delay_seconds)

    if args.load_rds:
        logger.info("Saved %d posts (%d skipped, %d failed)", totals.saved, totals.skipped, totals.failed)

    if args.load_local:
        exclude = () if args.include_embeddings else ("embedding",)
        save_jsonl_records_local(results, "enriched_posts", exclude=exclude)


if __name__ == "__main__":
    main()
