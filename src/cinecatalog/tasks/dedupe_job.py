"""Scheduled duplicate film sweep."""

import logging

from cinecatalog.database import session_scope
from cinecatalog.services.catalog_repository import SqlCatalogRepository
from cinecatalog.services.film_deduplicator import FilmDeduplicator, MergeReport

logger = logging.getLogger(__name__)


async def run_dedupe_sweep(dry_run: bool = False) -> MergeReport:
    """Merge duplicate films across the upcoming catalogue.

    Creates its own DB session so it can be called from the scheduler
    or a script without depending on a request context.
    """
    logger.info(f"Starting duplicate film sweep{' (dry run)' if dry_run else ''}")
    async with session_scope() as session:
        deduplicator = FilmDeduplicator(SqlCatalogRepository(session))
        return await deduplicator.sweep(dry_run=dry_run)
