"""Admin API endpoints: scraper health dashboard and manual batch operations."""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cinecatalog.database import get_db
from cinecatalog.models.health_snapshot import HealthSnapshot
from cinecatalog.schemas import (
    HealthDashboardResponse,
    HealthHistoryResponse,
    HealthSummary,
    MergedClusterResponse,
    MergeReportResponse,
    RescanResponse,
    SkippedPairResponse,
    TaggingResultResponse,
    VenueHealthResponse,
)
from cinecatalog.services.catalog_repository import CatalogRepository, SqlCatalogRepository
from cinecatalog.services.film_deduplicator import FilmDeduplicator
from cinecatalog.services.reverse_tagger import FestivalNotFoundError, ReverseTagger
from cinecatalog.services.scraper_health import (
    HealthThresholds,
    ScraperHealthMonitor,
    VenueHealth,
    dashboard_thresholds,
    sort_for_dashboard,
    summarize,
)

logger = logging.getLogger(__name__)
router = APIRouter()

_SNAPSHOT_FIELDS = [name for name in VenueHealthResponse.model_fields if name != "name"]


async def get_repository(db: AsyncSession = Depends(get_db)) -> CatalogRepository:
    """Request-scoped repository; overridden in tests."""
    return SqlCatalogRepository(db)


def _dashboard(venues: Iterable[VenueHealthResponse]) -> HealthDashboardResponse:
    ordered = sort_for_dashboard(venues)
    return HealthDashboardResponse(
        venues=ordered,
        summary=HealthSummary(**summarize(ordered)),
        thresholds=dashboard_thresholds(HealthThresholds.from_settings()),
    )


def _from_snapshot(snapshot: HealthSnapshot, name: str) -> VenueHealthResponse:
    return VenueHealthResponse(
        name=name, **{field: getattr(snapshot, field) for field in _SNAPSHOT_FIELDS}
    )


def _from_venue_health(health: VenueHealth) -> VenueHealthResponse:
    return VenueHealthResponse(
        cinema_id=health.cinema_id,
        name=health.name,
        computed_at=health.computed_at,
        total_future_screenings=health.total_future_screenings,
        next_7d_screenings=health.next_7d_screenings,
        chain_median=health.chain_median,
        history_baseline=health.history_baseline,
        last_scraped_at=health.last_scraped_at,
        hours_since_last_scrape=health.hours_since_last_scrape,
        freshness_score=health.freshness_score,
        volume_score=health.volume_score,
        overall_score=health.overall_score,
        is_anomaly=health.is_anomaly,
        anomaly_reasons=[r.value for r in health.anomaly_reasons],
        status=health.status.value,
    )


@router.get("/admin/health", response_model=HealthDashboardResponse)
async def get_scraper_health(
    repository: CatalogRepository = Depends(get_repository),
) -> HealthDashboardResponse:
    """
    Latest health snapshot per venue.

    Venues are ordered anomalous first, then by ascending score, then name.
    """
    rows = await repository.latest_health_snapshots()
    return _dashboard(_from_snapshot(snapshot, name) for snapshot, name in rows)


@router.get("/admin/health/{cinema_id}/history", response_model=HealthHistoryResponse)
async def get_scraper_health_history(
    cinema_id: str,
    days: int = Query(7, ge=1, le=90, description="How many days of snapshots"),
    repository: CatalogRepository = Depends(get_repository),
) -> HealthHistoryResponse:
    """One venue's health snapshots, newest first, for trend views."""
    cinema = await repository.get_cinema(cinema_id)
    if cinema is None:
        raise HTTPException(status_code=404, detail=f"Cinema '{cinema_id}' not found")

    since = datetime.now(timezone.utc) - timedelta(days=days)
    snapshots = await repository.list_health_snapshots(cinema_id, since)
    return HealthHistoryResponse(
        cinema_id=cinema_id,
        name=cinema.name,
        days=days,
        snapshots=[_from_snapshot(s, cinema.name) for s in snapshots],
    )


@router.post("/admin/health/run", response_model=HealthDashboardResponse)
async def run_scraper_health(
    repository: CatalogRepository = Depends(get_repository),
) -> HealthDashboardResponse:
    """Recompute health for every active venue now."""
    monitor = ScraperHealthMonitor(repository)
    results = await monitor.run()
    return _dashboard(_from_venue_health(r) for r in results)


@router.post("/admin/festivals/rescan", response_model=RescanResponse)
async def rescan_festivals(
    repository: CatalogRepository = Depends(get_repository),
) -> RescanResponse:
    """Reverse-tag every festival currently inside its watch window."""
    results = await ReverseTagger(repository).rescan()
    return RescanResponse(
        festivals=[TaggingResultResponse.model_validate(r) for r in results],
        total_tagged=sum(r.tagged for r in results),
    )


@router.post("/admin/festivals/{slug}/reverse-tag", response_model=TaggingResultResponse)
async def reverse_tag_festival(
    slug: str,
    repository: CatalogRepository = Depends(get_repository),
) -> TaggingResultResponse:
    """Tag already-scraped screenings for one festival edition."""
    try:
        result = await ReverseTagger(repository).reverse_tag_festival(slug)
    except FestivalNotFoundError:
        raise HTTPException(status_code=404, detail=f"Festival '{slug}' not found")
    return TaggingResultResponse.model_validate(result)


@router.post("/admin/films/merge-duplicates", response_model=MergeReportResponse)
async def merge_duplicate_films(
    dry_run: bool = Query(True, description="Plan merges without writing"),
    repository: CatalogRepository = Depends(get_repository),
) -> MergeReportResponse:
    """Run the duplicate film sweep."""
    report = await FilmDeduplicator(repository).sweep(dry_run=dry_run)
    logger.info(f"Admin merge requested (dry_run={dry_run}): {report.films_merged} films")
    return MergeReportResponse(
        dry_run=report.dry_run,
        clusters=report.clusters,
        films_merged=report.films_merged,
        screenings_migrated=report.screenings_migrated,
        screenings_dropped=report.screenings_dropped,
        merged=[
            MergedClusterResponse(
                survivor_id=plan.survivor_id,
                loser_ids=plan.loser_ids,
                screenings_moved=len(plan.move_screening_ids),
                screenings_dropped=len(plan.drop_screening_ids),
            )
            for plan in report.plans
        ],
        skipped_pairs=[SkippedPairResponse.model_validate(p) for p in report.skipped_pairs],
    )
