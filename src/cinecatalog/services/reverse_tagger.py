"""
Festival reverse-tagger.

Tags screenings that are already in the catalogue as belonging to a festival,
for editions announced after their screenings were scraped. Runs daily after
ingestion and on demand from the admin API; never re-scrapes anything.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo

from cinecatalog.config import settings
from cinecatalog.models.festival import Festival
from cinecatalog.models.screening import Screening
from cinecatalog.services.festival_config import get_festival_config
from cinecatalog.services.festival_detector import FestivalWindow
from cinecatalog.services.pattern_extractor import Classification

logger = logging.getLogger(__name__)

WATCH_DAYS_BEFORE = 14
WATCH_DAYS_AFTER = 7


class FestivalNotFoundError(LookupError):
    """No festival edition with the requested slug."""


class TaggingRepository(Protocol):
    async def get_festival_by_slug(self, slug: str) -> Festival | None: ...

    async def list_active_festivals(self) -> list[Festival]: ...

    async def list_screenings_between(
        self, cinema_ids: list[str], start: datetime, end: datetime
    ) -> list[Screening]: ...

    async def set_festival_tag(
        self, screening: Screening, festival_slug: str, festival_section: str | None
    ) -> None: ...

    async def commit(self) -> None: ...


@dataclass
class TaggingResult:
    festival_slug: str
    checked: int = 0
    tagged: int = 0
    already_tagged: int = 0
    conflicts: int = 0  # Tagged for a different festival, left alone


def in_watch_window(festival: Festival, today: date) -> bool:
    """True while a festival is worth rescanning: 14 days before to 7 days after."""
    watch_start = festival.start_date - timedelta(days=WATCH_DAYS_BEFORE)
    watch_end = festival.end_date + timedelta(days=WATCH_DAYS_AFTER)
    return watch_start <= today <= watch_end


class ReverseTagger:
    """Applies festival tagging rules to persisted screenings."""

    def __init__(
        self,
        repository: TaggingRepository,
        timezone_name: str | None = None,
        grace_days: int | None = None,
    ) -> None:
        self.repository = repository
        self.tz = ZoneInfo(timezone_name or settings.timezone)
        self.grace_days = settings.festival_grace_days if grace_days is None else grace_days

    async def reverse_tag_festival(self, slug: str) -> TaggingResult:
        """
        Tag existing screenings for one festival edition.

        Raises:
            FestivalNotFoundError: Unknown slug
        """
        festival = await self.repository.get_festival_by_slug(slug)
        if festival is None:
            raise FestivalNotFoundError(slug)

        result = await self._tag(festival)
        await self.repository.commit()
        return result

    async def rescan(self, now: datetime | None = None) -> list[TaggingResult]:
        """Reverse-tag every active festival whose watch window contains `now`."""
        now = now or datetime.now(timezone.utc)
        today = now.astimezone(self.tz).date()

        festivals = await self.repository.list_active_festivals()
        logger.info(f"Found {len(festivals)} active festivals")

        results = []
        for festival in festivals:
            if not in_watch_window(festival, today):
                continue
            logger.info(f"Processing {festival.name} ({festival.slug})")
            results.append(await self._tag(festival))
            await self.repository.commit()

        total = sum(r.tagged for r in results)
        logger.info(f"Reverse tagging complete: {total} screenings across {len(results)} festivals")
        return results

    async def _tag(self, festival: Festival) -> TaggingResult:
        result = TaggingResult(festival_slug=festival.slug)

        config = get_festival_config(festival.slug)
        if config is None:
            logger.warning(f"No tagging config for festival: {festival.slug}")
            return result

        window = FestivalWindow.from_festival(festival, config)
        if not window.venues:
            logger.warning(f"No venues for festival: {festival.slug}")
            return result

        start = self._local_midnight(window.start_date - timedelta(days=self.grace_days))
        end = self._local_midnight(window.end_date + timedelta(days=1))
        screenings = await self.repository.list_screenings_between(
            list(window.venues), start, end
        )
        result.checked = len(screenings)

        for screening in screenings:
            if screening.classification == Classification.NON_FILM.value:
                continue
            if screening.festival_slug == festival.slug:
                result.already_tagged += 1
                continue
            if screening.festival_slug:
                result.conflicts += 1
                continue

            local_date = screening.start_time.astimezone(self.tz).date()
            tag = window.match(
                screening.cinema_id,
                screening.raw_title,
                local_date,
                self.grace_days,
                screening.booking_url,
            )
            if tag is None:
                continue

            await self.repository.set_festival_tag(
                screening, tag.festival_slug, tag.festival_section
            )
            result.tagged += 1

        logger.info(
            f"{festival.slug}: checked {result.checked}, tagged {result.tagged}, "
            f"already tagged {result.already_tagged}, conflicts {result.conflicts}"
        )
        return result

    def _local_midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)
