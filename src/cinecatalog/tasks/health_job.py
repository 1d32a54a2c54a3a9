"""Scheduled scraper health check."""

import logging

from cinecatalog.database import session_scope
from cinecatalog.services.catalog_repository import SqlCatalogRepository
from cinecatalog.services.health_alerts import SlackNotifier
from cinecatalog.services.scraper_health import ScraperHealthMonitor, VenueHealth

logger = logging.getLogger(__name__)


async def run_health_check(notifier: SlackNotifier | None = None) -> list[VenueHealth]:
    """Score every active venue, append health snapshots and send alerts."""
    logger.info("Starting scraper health check")
    async with session_scope() as session:
        monitor = ScraperHealthMonitor(SqlCatalogRepository(session))
        results = await monitor.run()

    alerts = [r for r in results if r.alert_type]
    if alerts:
        logger.warning(
            f"{len(alerts)} venues need attention: "
            + ", ".join(f"{r.name} ({r.alert_type})" for r in alerts)
        )
    await (notifier or SlackNotifier()).send_health_alerts(results, monitor.thresholds)
    return results
