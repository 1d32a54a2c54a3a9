"""
Scraper health monitoring.

Scores each venue's scraper on two axes:
- Freshness: how long since the venue was last scraped
- Volume: how many future screenings it has, against its own recent history
  and the median of other venues in the same chain

Scoring is pure: the same inputs and the same `now` always give the same
scores. The monitor only reads the catalogue and appends HealthSnapshot rows.
"""

import logging
import statistics
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from cinecatalog.config import settings
from cinecatalog.models.cinema import Cinema
from cinecatalog.models.health_snapshot import HealthSnapshot

logger = logging.getLogger(__name__)


class AnomalyReason(str, Enum):
    CRITICAL_STALE = "CRITICAL_STALE"
    WARNING_STALE = "WARNING_STALE"
    ZERO_SCREENINGS = "ZERO_SCREENINGS"
    LOW_VOLUME = "LOW_VOLUME"
    SUDDEN_DROP = "SUDDEN_DROP"
    PARSE_ERROR_SUSPECTED = "PARSE_ERROR_SUSPECTED"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class HealthThresholds:
    healthy_max_hours: int = 24
    warning_stale_hours: int = 36
    critical_stale_hours: int = 72
    healthy_score: int = 80
    warning_score: int = 60
    low_volume_percent: float = 60.0
    sudden_drop_percent: float = 50.0
    sudden_drop_min_baseline: float = 10.0
    parse_error_min_screenings: int = 10
    parse_error_early_ratio: float = 0.3
    early_hour_cutoff: int = 10  # Starts before 10:00 local count as early
    history_days: int = 7

    @classmethod
    def from_settings(cls) -> "HealthThresholds":
        return cls(
            healthy_max_hours=settings.health_healthy_max_hours,
            warning_stale_hours=settings.health_warning_stale_hours,
            critical_stale_hours=settings.health_critical_stale_hours,
            history_days=settings.health_history_days,
        )


DEFAULT_THRESHOLDS = HealthThresholds()


def dashboard_thresholds(thresholds: HealthThresholds) -> dict[str, float]:
    """Thresholds rendered verbatim by the dashboard."""
    return {
        "healthy_score": thresholds.healthy_score,
        "warning_score": thresholds.warning_score,
        "critical_stale_hours": thresholds.critical_stale_hours,
        "low_chain_volume_percent": thresholds.low_volume_percent,
    }


# (minimum percent of baseline, score)
RELATIVE_VOLUME_BANDS: tuple[tuple[float, int], ...] = (
    (100, 100),
    (80, 90),
    (60, 70),
    (40, 50),
    (20, 30),
)
RELATIVE_VOLUME_FLOOR = 20

# (minimum screenings, score) for venues with nothing to compare against
ABSOLUTE_VOLUME_BANDS: tuple[tuple[int, int], ...] = (
    (50, 100),
    (30, 90),
    (15, 70),
    (5, 50),
)
ABSOLUTE_VOLUME_FLOOR = 30


@dataclass(frozen=True)
class VenueHealthInput:
    """Everything needed to score one venue, read from the catalogue."""

    cinema_id: str
    name: str
    chain: str | None
    last_scraped_at: datetime | None
    future_start_times: tuple[datetime, ...] = ()
    history_totals: tuple[int, ...] = ()  # Recent snapshot totals for this venue
    chain_peer_totals: tuple[int, ...] = ()  # Other active venues in the chain


@dataclass(frozen=True)
class VenueHealth:
    cinema_id: str
    name: str
    chain: str | None
    computed_at: datetime
    total_future_screenings: int
    next_7d_screenings: int
    chain_median: float | None
    history_baseline: float | None
    last_scraped_at: datetime | None
    hours_since_last_scrape: int | None
    freshness_score: int
    volume_score: int
    overall_score: int
    status: HealthStatus
    anomaly_reasons: tuple[AnomalyReason, ...] = field(default=())

    @property
    def is_anomaly(self) -> bool:
        return bool(self.anomaly_reasons)

    @property
    def alert_type(self) -> str | None:
        """Most urgent alert, for notification channels."""
        reasons = set(self.anomaly_reasons)
        if AnomalyReason.CRITICAL_STALE in reasons:
            return "critical_stale"
        if AnomalyReason.ZERO_SCREENINGS in reasons:
            return "critical_volume"
        if AnomalyReason.WARNING_STALE in reasons:
            return "warning_stale"
        if reasons & {AnomalyReason.LOW_VOLUME, AnomalyReason.SUDDEN_DROP}:
            return "warning_volume"
        if reasons:
            return "anomaly"
        return None

    def to_snapshot(self) -> HealthSnapshot:
        return HealthSnapshot(
            cinema_id=self.cinema_id,
            computed_at=self.computed_at,
            total_future_screenings=self.total_future_screenings,
            next_7d_screenings=self.next_7d_screenings,
            chain_median=self.chain_median,
            history_baseline=self.history_baseline,
            last_scraped_at=self.last_scraped_at,
            hours_since_last_scrape=self.hours_since_last_scrape,
            freshness_score=self.freshness_score,
            volume_score=self.volume_score,
            overall_score=self.overall_score,
            is_anomaly=self.is_anomaly,
            anomaly_reasons=[r.value for r in self.anomaly_reasons],
            status=self.status.value,
        )


def hours_since(last_scraped_at: datetime | None, now: datetime) -> int | None:
    """Whole hours elapsed, rounded down."""
    if last_scraped_at is None:
        return None
    return max(0, int((now - last_scraped_at).total_seconds() // 3600))


def freshness_score(hours: int | None, thresholds: HealthThresholds = DEFAULT_THRESHOLDS) -> int:
    """
    Score recency of the last scrape.

    100 -> 80 up to the healthy limit, 80 -> 60 up to the warning threshold,
    60 -> 30 up to the critical threshold, 0 beyond it or if never scraped.
    """
    if hours is None:
        return 0

    healthy = thresholds.healthy_max_hours
    warning = thresholds.warning_stale_hours
    critical = thresholds.critical_stale_hours

    if hours <= healthy:
        score = 100 - 20 * hours / healthy
    elif hours <= warning:
        score = 80 - 20 * (hours - healthy) / (warning - healthy)
    elif hours <= critical:
        score = 60 - 30 * (hours - warning) / (critical - warning)
    else:
        score = 0
    return round(score)


def _relative_band(percent: float) -> int:
    for minimum, score in RELATIVE_VOLUME_BANDS:
        if percent >= minimum:
            return score
    return RELATIVE_VOLUME_FLOOR


def _absolute_band(total: int) -> int:
    for minimum, score in ABSOLUTE_VOLUME_BANDS:
        if total >= minimum:
            return score
    return ABSOLUTE_VOLUME_FLOOR


def percent_of(total: int, baseline: float | None) -> float | None:
    if baseline is None:
        return None
    if baseline <= 0:
        return 100.0 if total > 0 else 0.0
    return total / baseline * 100


def volume_score(
    total: int,
    chain_median: float | None = None,
    history_baseline: float | None = None,
) -> int:
    """
    Score future-screening volume against the available baselines.

    The lower of the chain and history bands wins. Venues with neither fall
    back to absolute bands. Zero screenings always scores 0.
    """
    if total <= 0:
        return 0

    scores = [
        _relative_band(percent)
        for percent in (percent_of(total, chain_median), percent_of(total, history_baseline))
        if percent is not None
    ]
    if not scores:
        return _absolute_band(total)
    return min(scores)


def overall_score(freshness: int, volume: int) -> int:
    return round(freshness * 0.6 + volume * 0.4)


def status_for(score: int, thresholds: HealthThresholds = DEFAULT_THRESHOLDS) -> HealthStatus:
    if score >= thresholds.healthy_score:
        return HealthStatus.HEALTHY
    if score >= thresholds.warning_score:
        return HealthStatus.WARNING
    return HealthStatus.CRITICAL


def early_start_ratio(start_times: Sequence[datetime], tz: ZoneInfo, cutoff_hour: int) -> float:
    """Share of screenings starting between midnight and `cutoff_hour` local."""
    if not start_times:
        return 0.0
    early = sum(1 for t in start_times if t.astimezone(tz).hour < cutoff_hour)
    return early / len(start_times)


def detect_anomalies(
    total: int,
    hours: int | None,
    chain_median: float | None,
    history_baseline: float | None,
    start_times: Sequence[datetime],
    tz: ZoneInfo,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> tuple[AnomalyReason, ...]:
    reasons: list[AnomalyReason] = []

    if hours is None or hours >= thresholds.critical_stale_hours:
        reasons.append(AnomalyReason.CRITICAL_STALE)
    elif hours >= thresholds.warning_stale_hours:
        reasons.append(AnomalyReason.WARNING_STALE)

    chain_percent = percent_of(total, chain_median)
    if total == 0:
        reasons.append(AnomalyReason.ZERO_SCREENINGS)
    elif chain_percent is not None and chain_percent < thresholds.low_volume_percent:
        reasons.append(AnomalyReason.LOW_VOLUME)

    if (
        history_baseline is not None
        and history_baseline >= thresholds.sudden_drop_min_baseline
        and total <= history_baseline * thresholds.sudden_drop_percent / 100
    ):
        reasons.append(AnomalyReason.SUDDEN_DROP)

    if (
        total >= thresholds.parse_error_min_screenings
        and early_start_ratio(start_times, tz, thresholds.early_hour_cutoff)
        > thresholds.parse_error_early_ratio
    ):
        reasons.append(AnomalyReason.PARSE_ERROR_SUSPECTED)

    return tuple(reasons)


def score_venue(
    data: VenueHealthInput,
    now: datetime,
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
    tz: ZoneInfo | None = None,
) -> VenueHealth:
    """
    Score one venue.

    Args:
        data: Catalogue-derived inputs
        now: Reference time; identical inputs and `now` give identical output
        thresholds: Scoring thresholds
        tz: Local timezone for the early-start rule

    Returns:
        VenueHealth
    """
    tz = tz or ZoneInfo(settings.timezone)
    upcoming = [t for t in data.future_start_times if t >= now]
    total = len(upcoming)
    next_7d = sum(1 for t in upcoming if t < now + timedelta(days=7))

    chain_median = float(statistics.median(data.chain_peer_totals)) if data.chain_peer_totals else None
    history_baseline = float(statistics.median(data.history_totals)) if data.history_totals else None

    hours = hours_since(data.last_scraped_at, now)
    freshness = freshness_score(hours, thresholds)
    volume = volume_score(total, chain_median, history_baseline)
    overall = overall_score(freshness, volume)

    return VenueHealth(
        cinema_id=data.cinema_id,
        name=data.name,
        chain=data.chain,
        computed_at=now,
        total_future_screenings=total,
        next_7d_screenings=next_7d,
        chain_median=chain_median,
        history_baseline=history_baseline,
        last_scraped_at=data.last_scraped_at,
        hours_since_last_scrape=hours,
        freshness_score=freshness,
        volume_score=volume,
        overall_score=overall,
        status=status_for(overall, thresholds),
        anomaly_reasons=detect_anomalies(
            total, hours, chain_median, history_baseline, upcoming, tz, thresholds
        ),
    )


def sort_for_dashboard(items: Iterable[Any]) -> list[Any]:
    """Anomalous venues first, then lowest score, then name."""
    return sorted(items, key=lambda h: (not h.is_anomaly, h.overall_score, h.name))


def summarize(items: Iterable[Any]) -> dict[str, int]:
    """Counts per status, plus anomalies, for the dashboard header."""
    counts = {"total": 0, "healthy": 0, "warning": 0, "critical": 0, "anomalies": 0}
    for item in items:
        counts["total"] += 1
        counts[HealthStatus(item.status).value] += 1
        if item.is_anomaly:
            counts["anomalies"] += 1
    return counts


class HealthRepository(Protocol):
    async def list_active_cinemas(self) -> list[Cinema]: ...

    async def list_future_start_times(self, now: datetime) -> dict[str, list[datetime]]: ...

    async def last_screening_scrape_times(self) -> dict[str, datetime]: ...

    async def list_snapshot_totals(self, since: datetime) -> dict[str, list[int]]: ...

    async def add_health_snapshot(self, snapshot: HealthSnapshot) -> None: ...

    async def commit(self) -> None: ...


class ScraperHealthMonitor:
    """Runs the health check over every active venue."""

    def __init__(
        self,
        repository: HealthRepository,
        thresholds: HealthThresholds | None = None,
        timezone_name: str | None = None,
    ) -> None:
        self.repository = repository
        self.thresholds = thresholds or HealthThresholds.from_settings()
        self.tz = ZoneInfo(timezone_name or settings.timezone)

    async def gather_inputs(self, now: datetime) -> list[VenueHealthInput]:
        """Read everything the scoring needs in a handful of queries."""
        cinemas = await self.repository.list_active_cinemas()
        start_times = await self.repository.list_future_start_times(now)
        screening_scrapes = await self.repository.last_screening_scrape_times()
        history = await self.repository.list_snapshot_totals(
            now - timedelta(days=self.thresholds.history_days)
        )

        totals = {c.id: len(start_times.get(c.id, [])) for c in cinemas}
        chains: dict[str, list[str]] = defaultdict(list)
        for cinema in cinemas:
            if cinema.chain:
                chains[cinema.chain].append(cinema.id)

        inputs = []
        for cinema in cinemas:
            peers = [p for p in chains.get(cinema.chain or "", []) if p != cinema.id]
            inputs.append(
                VenueHealthInput(
                    cinema_id=cinema.id,
                    name=cinema.name,
                    chain=cinema.chain,
                    last_scraped_at=cinema.last_scraped_at or screening_scrapes.get(cinema.id),
                    future_start_times=tuple(start_times.get(cinema.id, [])),
                    history_totals=tuple(history.get(cinema.id, [])),
                    chain_peer_totals=tuple(totals[p] for p in peers),
                )
            )
        return inputs

    async def run(self, now: datetime | None = None) -> list[VenueHealth]:
        """
        Score every active venue and append one snapshot per venue.

        Returns:
            Results in dashboard order
        """
        now = now or datetime.now(timezone.utc)
        results = []

        for data in await self.gather_inputs(now):
            results.append(await self._record(score_venue(data, now, self.thresholds, self.tz)))

        summary = summarize(results)
        logger.info(
            f"Health check: {summary['total']} venues, {summary['healthy']} healthy, "
            f"{summary['warning']} warning, {summary['critical']} critical"
        )
        return sort_for_dashboard(results)

    async def check_venue(self, cinema_id: str, now: datetime | None = None) -> VenueHealth | None:
        """
        Score one venue straight after its scrape and append its snapshot.

        Chain medians still come from every active venue.

        Returns:
            VenueHealth, or None if the venue is unknown or inactive
        """
        now = now or datetime.now(timezone.utc)
        for data in await self.gather_inputs(now):
            if data.cinema_id == cinema_id:
                return await self._record(score_venue(data, now, self.thresholds, self.tz))

        logger.warning(f"No active venue '{cinema_id}' to health-check")
        return None

    async def _record(self, health: VenueHealth) -> VenueHealth:
        await self.repository.add_health_snapshot(health.to_snapshot())
        await self.repository.commit()
        if health.is_anomaly:
            logger.warning(
                f"{health.name}: score {health.overall_score} ({health.status.value}), "
                f"{', '.join(r.value for r in health.anomaly_reasons)}"
            )
        return health
