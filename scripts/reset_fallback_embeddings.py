"""Return posts holding the filler embedding to the enrichment backlog."""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    logger = logging.getLogger(__name__)

    load_dotenv()

    parser = argparse.ArgumentParser()
    parser.add_argument("--dry-run", action="store_true", help="Only count matching posts")
    args = parser.parse_args()

    from sqlalchemy import text

    from common.db import get_session
    from enrich_posts.compute_embeddings import fallback_embedding
    from enrich_posts.config import get_config
    from enrich_posts.store import format_vector

    settings = get_config().embedding
    filler = format_vector(fallback_embedding(settings.dimensions, settings.fallback_value))

    with get_session() as session:
        if args.dry_run:
            count = session.execute(
                text("SELECT COUNT(*) FROM posts WHERE embedding = CAST(:filler AS vector)"),
                {"filler": filler},
            ).scalar_one()
            logger.info("%d posts hold the filler embedding", count)
            return

        result = session.execute(
            text(
                """
                UPDATE posts
                SET embedding = NULL,
                    enriched_at = NULL,
                    enrich_status = 'pending'
                WHERE embedding = CAST(:filler AS vector)
                """
            ),
            {"filler": filler},
        )
        session.commit()

    logger.info("Reset %d posts with filler embeddings", result.rowcount or 0)


if __name__ == "__main__":
    main()
