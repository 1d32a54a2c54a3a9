"""Scheduled festival reverse-tagging."""

import logging

from cinecatalog.database import session_scope
from cinecatalog.services.catalog_repository import SqlCatalogRepository
from cinecatalog.services.reverse_tagger import ReverseTagger, TaggingResult

logger = logging.getLogger(__name__)


async def run_festival_rescan() -> list[TaggingResult]:
    """Reverse-tag screenings for every festival in its watch window."""
    logger.info("Starting festival rescan")
    async with session_scope() as session:
        tagger = ReverseTagger(SqlCatalogRepository(session))
        return await tagger.rescan()
