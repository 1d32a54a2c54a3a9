"""Ingestion of scraped listings into the catalogue."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from cinecatalog.database import session_scope
from cinecatalog.models.film import Film
from cinecatalog.scrapers.models import RawScreening
from cinecatalog.services.catalog_repository import CatalogRepository, SqlCatalogRepository
from cinecatalog.services.festival_detector import FestivalDetector
from cinecatalog.services.film_deduplicator import FilmDeduplicator
from cinecatalog.services.pattern_extractor import Classification, ExtractionResult
from cinecatalog.services.scraper_health import ScraperHealthMonitor
from cinecatalog.services.title_extractor import TitleExtractor
from cinecatalog.services.tmdb_client import TMDbClient
from cinecatalog.utils.text import canonical_key, slugify, split_title_year

logger = logging.getLogger(__name__)


@dataclass
class IngestSummary:
    venues: int = 0
    unknown_venues: int = 0
    screenings_upserted: int = 0
    non_film_skipped: int = 0
    failed: int = 0
    festival_tagged: int = 0
    films_created: int = 0
    films_merged: int = 0
    health_anomalies: int = 0


def generate_film_id(title: str, year: int | None) -> str:
    """Generate a film ID from title and year."""
    slug = slugify(title) or "untitled"
    if year:
        return f"{slug}-{year}"
    return slug


class IngestPipeline:
    """
    Extraction, festival tagging and persistence for scraped listings.

    Each venue is a checkpoint: its screenings are committed together, so an
    aborted run can simply be repeated.
    """

    def __init__(
        self,
        repository: CatalogRepository,
        extractor: TitleExtractor | None = None,
        detector: FestivalDetector | None = None,
        deduplicator: FilmDeduplicator | None = None,
        tmdb_client: TMDbClient | None = None,
        health_monitor: ScraperHealthMonitor | None = None,
    ) -> None:
        self.repository = repository
        self.extractor = extractor or TitleExtractor()
        self.detector = detector or FestivalDetector()
        self.deduplicator = deduplicator or FilmDeduplicator(repository)
        self.tmdb_client = tmdb_client
        self.health_monitor = health_monitor

    async def ingest(
        self,
        listings: Iterable[RawScreening],
        scraped_venue_ids: Iterable[str] = (),
        now: datetime | None = None,
    ) -> IngestSummary:
        """
        Ingest one scrape run.

        Args:
            listings: Raw screenings from the scrapers
            scraped_venue_ids: Venues scraped this run, including ones that
                returned nothing (their freshness still counts)
            now: Scrape time

        Returns:
            IngestSummary
        """
        now = now or datetime.now(timezone.utc)
        summary = IngestSummary()

        by_venue: dict[str, list[RawScreening]] = defaultdict(list)
        for venue_id in scraped_venue_ids:
            by_venue.setdefault(venue_id, [])
        for listing in listings:
            by_venue[listing.venue_id].append(listing)

        if not self.detector.is_loaded:
            await self.detector.preload(self.repository)

        descriptions = {
            listing.raw_title: listing.description
            for venue_listings in by_venue.values()
            for listing in venue_listings
            if listing.description
        }
        titles = [listing.raw_title for venue_listings in by_venue.values() for listing in venue_listings]
        extractions = await self.extractor.batch_extract(titles, descriptions)

        new_film_titles: dict[str, str] = {}

        for venue_id, venue_listings in by_venue.items():
            cinema = await self.repository.get_cinema(venue_id)
            if cinema is None:
                logger.warning(
                    f"Unknown venue '{venue_id}', skipping {len(venue_listings)} screenings"
                )
                summary.unknown_venues += 1
                continue

            for listing in venue_listings:
                try:
                    await self._ingest_one(
                        listing, extractions[listing.raw_title], now, summary, new_film_titles
                    )
                except Exception as e:
                    logger.error(
                        f"Error processing screening '{listing.raw_title}' at {venue_id}: {e}",
                        exc_info=True,
                    )
                    summary.failed += 1

            await self.repository.mark_scraped(venue_id, now)
            await self.repository.commit()
            summary.venues += 1
            logger.info(f"Ingested {len(venue_listings)} listings for {cinema.name}")

            if self.health_monitor:
                await self._check_health(venue_id, now, summary)

        for title in new_film_titles.values():
            report = await self.deduplicator.merge_duplicates_for(title, now=now)
            summary.films_merged += report.films_merged

        logger.info(
            f"Ingest complete: {summary.venues} venues, {summary.screenings_upserted} screenings, "
            f"{summary.festival_tagged} festival-tagged, {summary.non_film_skipped} non-film skipped, "
            f"{summary.failed} failed, {summary.films_created} new films, "
            f"{summary.films_merged} merged, {summary.health_anomalies} health anomalies"
        )
        return summary

    async def _ingest_one(
        self,
        listing: RawScreening,
        extraction: ExtractionResult,
        now: datetime,
        summary: IngestSummary,
        new_film_titles: dict[str, str],
    ) -> None:
        if extraction.classification is Classification.NON_FILM:
            logger.debug(f"Skipping non-film listing '{listing.raw_title}'")
            summary.non_film_skipped += 1
            return

        film, created = await self.resolve_film(extraction)
        if created:
            summary.films_created += 1
            # Shorts programmes are never merged
            if extraction.classification is not Classification.COMPILATION:
                new_film_titles[film.id] = film.title

        tag = self.detector.detect(
            listing.venue_id, listing.raw_title, listing.start_time, listing.booking_url
        )
        if tag:
            summary.festival_tagged += 1

        await self.repository.upsert_screening(
            {
                "cinema_id": listing.venue_id,
                "film_id": film.id,
                "start_time": listing.start_time,
                "booking_url": listing.booking_url,
                "source_id": listing.source_id,
                "raw_title": listing.raw_title,
                "display_title": extraction.extracted_title,
                "canonical_title": extraction.canonical_title,
                "version": extraction.version,
                "classification": extraction.classification.value,
                "extraction_confidence": extraction.confidence,
                "extraction_method": extraction.method,
                "festival_slug": tag.festival_slug if tag else None,
                "festival_section": tag.festival_section if tag else None,
                "scraped_at": now,
            }
        )
        summary.screenings_upserted += 1

    async def _check_health(self, venue_id: str, now: datetime, summary: IngestSummary) -> None:
        try:
            health = await self.health_monitor.check_venue(venue_id, now)
        except Exception as e:
            logger.error(f"Health check failed for {venue_id}: {e}", exc_info=True)
            await self.repository.rollback()
            return
        if health and health.is_anomaly:
            summary.health_anomalies += 1

    async def resolve_film(self, extraction: ExtractionResult) -> tuple[Film, bool]:
        """
        Find or create the film for an extraction.

        Returns:
            (film, created)
        """
        title, year = split_title_year(extraction.canonical_title)
        key = canonical_key(title, year)

        film = await self.repository.find_film_by_canonical_key(key)
        if film:
            return film, False

        match = None
        if self.tmdb_client and extraction.classification is Classification.NORMAL:
            match = await self.tmdb_client.find_match(title, year)
            if match:
                existing = await self.repository.find_film_by_tmdb_id(match.tmdb_id)
                if existing:
                    return existing, False

        film = Film(
            id=generate_film_id(title, year),
            title=title,
            year=year or (match.year if match else None),
            canonical_key=key,
            tmdb_id=match.tmdb_id if match else None,
            poster_url=match.poster_url if match else None,
            synopsis=match.synopsis if match else None,
        )
        stored = await self.repository.add_film(film)
        return stored, stored is film


async def run_ingest(
    listings: Iterable[RawScreening], scraped_venue_ids: Iterable[str] = ()
) -> IngestSummary:
    """Ingest a scrape run with its own session, for callers outside a request."""
    async with session_scope() as session:
        repository = SqlCatalogRepository(session)
        pipeline = IngestPipeline(
            repository,
            tmdb_client=TMDbClient(),
            health_monitor=ScraperHealthMonitor(repository),
        )
        return await pipeline.ingest(listings, scraped_venue_ids)
