"""Merge duplicate films across the upcoming catalogue.

Dry run by default; pass --execute to write.

Run with:
    python -m cinecatalog.scripts.merge_duplicates [--execute]
"""

import asyncio
import logging
import sys

from cinecatalog.tasks.dedupe_job import run_dedupe_sweep

logger = logging.getLogger(__name__)


async def main(execute: bool) -> None:
    report = await run_dedupe_sweep(dry_run=not execute)

    tag = "" if execute else "[DRY RUN] "
    for plan in report.plans:
        logger.info(
            f"{tag}{plan.survivor_id} <- {', '.join(plan.loser_ids)} "
            f"({len(plan.move_screening_ids)} moved, {len(plan.drop_screening_ids)} dropped)"
        )
    for pair in report.skipped_pairs:
        logger.info(f"{tag}kept apart: {pair.film_id_a} / {pair.film_id_b} ({pair.reason})")

    logger.info(
        f"{tag}{report.clusters} clusters, {report.films_merged} films merged, "
        f"{report.screenings_migrated} screenings migrated, "
        f"{report.screenings_dropped} dropped"
    )
    if not execute and report.clusters:
        logger.info("Re-run with --execute to apply")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    asyncio.run(main(execute="--execute" in sys.argv))
