"""
Festival detection for incoming screenings.

Usage:
    detector = FestivalDetector()
    await detector.preload(repository)   # once per run
    tag = detector.detect("prince-charles", "The Thing", start_time)
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from itertools import combinations
from typing import Protocol
from zoneinfo import ZoneInfo

from cinecatalog.config import settings
from cinecatalog.models.festival import Festival
from cinecatalog.services.festival_config import (
    FestivalStrategy,
    FestivalTaggingConfig,
    get_festival_config,
    match_section,
    matches_title_signals,
    slug_base_of,
)

logger = logging.getLogger(__name__)


class FestivalSource(Protocol):
    async def list_active_festivals(self) -> list[Festival]: ...


@dataclass(frozen=True)
class FestivalTag:
    festival_slug: str
    festival_section: str | None = None


@dataclass(frozen=True)
class FestivalWindow:
    """One festival edition joined with its tagging config."""

    slug: str
    name: str
    venues: tuple[str, ...]
    start_date: date
    end_date: date
    config: FestivalTaggingConfig

    @property
    def slug_base(self) -> str:
        return self.config.slug_base

    @property
    def strategy(self) -> FestivalStrategy:
        return self.config.strategy

    @classmethod
    def from_festival(cls, festival: Festival, config: FestivalTaggingConfig) -> "FestivalWindow":
        return cls(
            slug=festival.slug,
            name=festival.name,
            venues=tuple(festival.venues or config.venues),
            start_date=festival.start_date,
            end_date=festival.end_date,
            config=config,
        )

    def covers(self, venue_id: str, local_date: date, grace_days: int) -> bool:
        """Venue hosts this edition and the date is in [start - grace, end]."""
        if venue_id not in self.venues:
            return False
        return self.start_date - timedelta(days=grace_days) <= local_date <= self.end_date

    def match(
        self,
        venue_id: str,
        title: str,
        local_date: date,
        grace_days: int,
        booking_url: str | None = None,
    ) -> FestivalTag | None:
        if not self.covers(venue_id, local_date, grace_days):
            return None
        if self.strategy is FestivalStrategy.TITLE and not matches_title_signals(
            self.config, title, booking_url
        ):
            return None
        return FestivalTag(self.slug, match_section(self.config, title, booking_url))


def build_windows(festivals: Iterable[Festival]) -> list[FestivalWindow]:
    """Join festival rows with their configs, skipping unconfigured ones."""
    windows = []
    for festival in festivals:
        config = get_festival_config(festival.slug)
        if config is None:
            logger.warning(
                f"No tagging config for festival {festival.slug} "
                f"(slug base {slug_base_of(festival.slug)})"
            )
            continue
        windows.append(FestivalWindow.from_festival(festival, config))
    return windows


def find_overlapping_windows(
    windows: Iterable[FestivalWindow], grace_days: int = 0
) -> list[tuple[FestivalWindow, FestivalWindow, tuple[str, ...]]]:
    """
    Pairs of windows that could both claim the same screening.

    Returns:
        (first, second, shared venues) for each overlapping pair
    """
    overlaps = []
    for a, b in combinations(windows, 2):
        shared = tuple(sorted(set(a.venues) & set(b.venues)))
        if not shared:
            continue
        a_start = a.start_date - timedelta(days=grace_days)
        b_start = b.start_date - timedelta(days=grace_days)
        if a_start <= b.end_date and b_start <= a.end_date:
            overlaps.append((a, b, shared))
    return overlaps


class FestivalDetector:
    """
    Config-driven festival detector.

    Detection signals:
    1. Venue + date window (AUTO strategy), e.g. FrightFest at the Prince Charles
    2. Title keywords, e.g. "LFF:", "Flare:" prefixes
    3. Booking URL patterns, e.g. BFI URLs containing /flare/ or /lff/
    """

    def __init__(self, timezone: str | None = None, grace_days: int | None = None) -> None:
        self.tz = ZoneInfo(timezone or settings.timezone)
        self.grace_days = settings.festival_grace_days if grace_days is None else grace_days
        self._windows: list[FestivalWindow] | None = None

    @property
    def is_loaded(self) -> bool:
        return self._windows is not None

    @property
    def windows(self) -> tuple[FestivalWindow, ...]:
        return tuple(self._windows or ())

    async def preload(self, source: FestivalSource) -> int:
        """
        Load active festival windows.

        Returns:
            Number of windows loaded
        """
        festivals = await source.list_active_festivals()
        self.load(build_windows(festivals))
        return len(self.windows)

    def load(self, windows: Iterable[FestivalWindow]) -> None:
        # First match wins, so the order has to be deterministic
        self._windows = sorted(windows, key=lambda w: (w.start_date, w.slug))

        for a, b, shared in find_overlapping_windows(self._windows, self.grace_days):
            logger.warning(
                f"Festival windows {a.slug} and {b.slug} overlap at {', '.join(shared)}; "
                f"{a.slug} takes precedence"
            )
        logger.info(f"Loaded {len(self._windows)} festival windows")

    def clear_cache(self) -> None:
        self._windows = None

    def local_date(self, start_time: datetime) -> date:
        if start_time.tzinfo is None:
            return start_time.replace(tzinfo=self.tz).date()
        return start_time.astimezone(self.tz).date()

    def detect(
        self,
        venue_id: str,
        title: str,
        start_time: datetime,
        booking_url: str | None = None,
    ) -> FestivalTag | None:
        """
        Decide whether a screening belongs to a festival edition.

        Args:
            venue_id: Cinema slug, e.g. "prince-charles"
            title: Title as scraped
            start_time: Screening start
            booking_url: Optional booking URL for pattern matching

        Returns:
            FestivalTag or None. Always None before preload().
        """
        if not self._windows:
            return None

        local_date = self.local_date(start_time)
        for window in self._windows:
            tag = window.match(venue_id, title, local_date, self.grace_days, booking_url)
            if tag:
                return tag
        return None
