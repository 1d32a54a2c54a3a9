"""Tests for scraper health scoring."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from cinecatalog.models.health_snapshot import HealthSnapshot
from cinecatalog.services.scraper_health import (
    AnomalyReason,
    HealthStatus,
    HealthThresholds,
    ScraperHealthMonitor,
    VenueHealthInput,
    dashboard_thresholds,
    detect_anomalies,
    freshness_score,
    hours_since,
    overall_score,
    score_venue,
    sort_for_dashboard,
    status_for,
    summarize,
    volume_score,
)
from fakes import FakeCatalogRepository, make_cinema, make_screening

LONDON_TZ = ZoneInfo("Europe/London")
NOW = datetime(2026, 10, 19, 7, 0, tzinfo=timezone.utc)


def evening_slots(count: int) -> tuple[datetime, ...]:
    """`count` future screenings at 19:00 local, one per day."""
    first = datetime(2026, 10, 20, 19, 0, tzinfo=LONDON_TZ)
    return tuple(first + timedelta(days=i) for i in range(count))


def make_input(
    hours_ago: float | None = 2,
    screenings: int = 50,
    history: tuple[int, ...] = (),
    peers: tuple[int, ...] = (),
    start_times: tuple[datetime, ...] | None = None,
    name: str = "Venue",
) -> VenueHealthInput:
    return VenueHealthInput(
        cinema_id=name.lower(),
        name=name,
        chain="curzon" if peers else None,
        last_scraped_at=None if hours_ago is None else NOW - timedelta(hours=hours_ago),
        future_start_times=start_times if start_times is not None else evening_slots(screenings),
        history_totals=history,
        chain_peer_totals=peers,
    )


# ---------------------------------------------------------------------------
# Scoring functions
# ---------------------------------------------------------------------------


class TestFreshnessScore:
    @pytest.mark.parametrize(
        "hours,expected",
        [(0, 100), (24, 80), (36, 60), (40, 57), (72, 30), (73, 0), (None, 0)],
    )
    def test_breakpoints(self, hours: int | None, expected: int) -> None:
        assert freshness_score(hours) == expected

    def test_monotonic_non_increasing(self) -> None:
        scores = [freshness_score(h) for h in range(0, 200)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_hours_since_rounds_down(self) -> None:
        assert hours_since(NOW - timedelta(hours=5, minutes=59), NOW) == 5
        assert hours_since(None, NOW) is None


class TestVolumeScore:
    def test_zero_is_zero(self) -> None:
        assert volume_score(0, chain_median=50, history_baseline=50) == 0

    @pytest.mark.parametrize(
        "total,expected",
        [(50, 100), (40, 90), (30, 70), (20, 50), (10, 30), (2, 20)],
    )
    def test_relative_bands(self, total: int, expected: int) -> None:
        assert volume_score(total, chain_median=50) == expected

    def test_lower_baseline_band_wins(self) -> None:
        assert volume_score(40, chain_median=40, history_baseline=100) == 50

    @pytest.mark.parametrize(
        "total,expected",
        [(60, 100), (30, 90), (15, 70), (5, 50), (1, 30)],
    )
    def test_absolute_bands_without_baselines(self, total: int, expected: int) -> None:
        assert volume_score(total) == expected


class TestStatus:
    def test_overall_weights(self) -> None:
        assert overall_score(100, 0) == 60
        assert overall_score(0, 100) == 40

    @pytest.mark.parametrize(
        "score,status",
        [(80, HealthStatus.HEALTHY), (79, HealthStatus.WARNING), (60, HealthStatus.WARNING), (59, HealthStatus.CRITICAL)],
    )
    def test_status_cutoffs(self, score: int, status: HealthStatus) -> None:
        assert status_for(score) is status


class TestDetectAnomalies:
    def test_healthy_venue_has_none(self) -> None:
        assert detect_anomalies(50, 2, 50.0, 50.0, evening_slots(50), LONDON_TZ) == ()

    def test_never_scraped_is_critical_stale(self) -> None:
        reasons = detect_anomalies(50, None, None, None, evening_slots(50), LONDON_TZ)
        assert reasons == (AnomalyReason.CRITICAL_STALE,)

    def test_zero_screenings_without_history(self) -> None:
        reasons = detect_anomalies(0, 2, None, None, (), LONDON_TZ)
        assert reasons == (AnomalyReason.ZERO_SCREENINGS,)

    def test_sudden_drop_needs_meaningful_baseline(self) -> None:
        assert AnomalyReason.SUDDEN_DROP not in detect_anomalies(
            2, 2, None, 8.0, evening_slots(2), LONDON_TZ
        )
        assert AnomalyReason.SUDDEN_DROP in detect_anomalies(
            5, 2, None, 10.0, evening_slots(5), LONDON_TZ
        )

    def test_early_morning_clustering_suspects_parse_error(self) -> None:
        early = tuple(
            datetime(2026, 10, 20, 0, 0, tzinfo=LONDON_TZ) + timedelta(days=i) for i in range(6)
        )
        start_times = early + evening_slots(6)
        reasons = detect_anomalies(12, 2, None, None, start_times, LONDON_TZ)
        assert reasons == (AnomalyReason.PARSE_ERROR_SUSPECTED,)

    def test_few_screenings_never_suspect_parse_error(self) -> None:
        early = (datetime(2026, 10, 20, 1, 0, tzinfo=LONDON_TZ),)
        assert detect_anomalies(1, 2, None, None, early, LONDON_TZ) == ()


# ---------------------------------------------------------------------------
# score_venue
# ---------------------------------------------------------------------------


class TestScoreVenue:
    def test_stale_venue_with_collapsed_volume_is_critical(self) -> None:
        data = make_input(hours_ago=40, screenings=2, history=(50, 50, 50), peers=(40, 50, 60))
        health = score_venue(data, NOW, HealthThresholds(), LONDON_TZ)

        assert health.hours_since_last_scrape == 40
        assert health.freshness_score == 57
        assert health.volume_score == 20
        assert health.overall_score == 42
        assert health.status is HealthStatus.CRITICAL
        assert health.anomaly_reasons == (
            AnomalyReason.WARNING_STALE,
            AnomalyReason.LOW_VOLUME,
            AnomalyReason.SUDDEN_DROP,
        )
        assert health.alert_type == "warning_stale"

    def test_zero_history_is_maximally_anomalous(self) -> None:
        health = score_venue(make_input(screenings=0), NOW, HealthThresholds(), LONDON_TZ)
        assert health.volume_score == 0
        assert AnomalyReason.ZERO_SCREENINGS in health.anomaly_reasons
        assert health.alert_type == "critical_volume"

    def test_recompute_is_identical(self) -> None:
        data = make_input(hours_ago=30, screenings=12, history=(20, 25), peers=(15, 18))
        first = score_venue(data, NOW, HealthThresholds(), LONDON_TZ)
        second = score_venue(data, NOW, HealthThresholds(), LONDON_TZ)
        assert first == second
        assert repr(first.to_snapshot().anomaly_reasons) == repr(second.to_snapshot().anomaly_reasons)

    def test_more_staleness_never_scores_higher(self) -> None:
        scores = [
            score_venue(make_input(hours_ago=h, screenings=30), NOW, HealthThresholds(), LONDON_TZ).overall_score
            for h in range(0, 100, 3)
        ]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_past_screenings_are_ignored(self) -> None:
        past = (NOW - timedelta(hours=1),)
        data = make_input(start_times=past + evening_slots(3))
        assert score_venue(data, NOW, HealthThresholds(), LONDON_TZ).total_future_screenings == 3

    def test_next_7d_window(self) -> None:
        health = score_venue(make_input(screenings=10), NOW, HealthThresholds(), LONDON_TZ)
        assert health.total_future_screenings == 10
        # Daily 19:00 slots from the 20th; the 26th falls after now + 7 days
        assert health.next_7d_screenings == 6

    def test_snapshot_carries_scores(self) -> None:
        health = score_venue(make_input(screenings=0), NOW, HealthThresholds(), LONDON_TZ)
        snapshot = health.to_snapshot()
        assert isinstance(snapshot, HealthSnapshot)
        assert snapshot.anomaly_reasons == ["ZERO_SCREENINGS"]
        assert snapshot.is_anomaly
        assert snapshot.status == health.status.value


class TestDashboardOrdering:
    def test_anomalies_first_then_score_then_name(self) -> None:
        thresholds = HealthThresholds()
        results = [
            score_venue(make_input(name="Calm", screenings=60), NOW, thresholds, LONDON_TZ),
            score_venue(make_input(name="Bravo", screenings=60), NOW, thresholds, LONDON_TZ),
            score_venue(make_input(name="Stale", hours_ago=50, screenings=60), NOW, thresholds, LONDON_TZ),
            score_venue(make_input(name="Empty", screenings=0), NOW, thresholds, LONDON_TZ),
        ]
        ordered = [h.name for h in sort_for_dashboard(results)]
        assert ordered == ["Empty", "Stale", "Bravo", "Calm"]

    def test_summary_counts(self) -> None:
        thresholds = HealthThresholds()
        results = [
            score_venue(make_input(name="Calm", screenings=60), NOW, thresholds, LONDON_TZ),
            score_venue(make_input(name="Empty", hours_ago=None, screenings=0), NOW, thresholds, LONDON_TZ),
        ]
        assert summarize(results) == {
            "total": 2,
            "healthy": 1,
            "warning": 0,
            "critical": 1,
            "anomalies": 1,
        }


# ---------------------------------------------------------------------------
# ScraperHealthMonitor
# ---------------------------------------------------------------------------


class TestScraperHealthMonitor:
    async def test_run_appends_snapshot_per_venue(self) -> None:
        repository = FakeCatalogRepository(
            cinemas=[
                make_cinema("curzon-soho", "Curzon Soho", "curzon", NOW - timedelta(hours=40)),
                make_cinema("curzon-mayfair", "Curzon Mayfair", "curzon", NOW - timedelta(hours=1)),
                make_cinema("curzon-aldgate", "Curzon Aldgate", "curzon", NOW - timedelta(hours=1)),
                make_cinema("closed", "Closed Cinema", is_active=False),
            ],
            screenings=[
                *(make_screening(None, "f", t, "curzon-soho") for t in evening_slots(2)),
                *(make_screening(None, "f", t, "curzon-mayfair") for t in evening_slots(40)),
                *(make_screening(None, "f", t, "curzon-aldgate") for t in evening_slots(60)),
            ],
            snapshots=[
                HealthSnapshot(
                    cinema_id="curzon-soho",
                    computed_at=NOW - timedelta(days=d),
                    total_future_screenings=50,
                )
                for d in (1, 2, 3)
            ],
        )
        monitor = ScraperHealthMonitor(repository, HealthThresholds(), "Europe/London")

        results = await monitor.run(NOW)

        assert [r.cinema_id for r in results][0] == "curzon-soho"
        soho = results[0]
        assert soho.chain_median == 50.0
        assert soho.history_baseline == 50.0
        assert soho.status is HealthStatus.CRITICAL
        assert {AnomalyReason.WARNING_STALE, AnomalyReason.SUDDEN_DROP} <= set(soho.anomaly_reasons)
        assert len(repository.snapshots) == 3 + 3
        assert repository.commits == 3

    async def test_falls_back_to_screening_scrape_time(self) -> None:
        repository = FakeCatalogRepository(
            cinemas=[make_cinema("nickel", "The Nickel")],
            screenings=[
                make_screening(None, "f", t, "nickel", scraped_at=NOW - timedelta(hours=5))
                for t in evening_slots(20)
            ],
        )
        (health,) = await ScraperHealthMonitor(repository, HealthThresholds(), "Europe/London").run(NOW)
        assert health.hours_since_last_scrape == 5

    async def test_check_venue_scores_one_venue(self) -> None:
        repository = FakeCatalogRepository(
            cinemas=[
                make_cinema("curzon-soho", "Curzon Soho", "curzon", NOW - timedelta(hours=1)),
                make_cinema("curzon-mayfair", "Curzon Mayfair", "curzon", NOW - timedelta(hours=1)),
            ],
            screenings=[
                *(make_screening(None, "f", t, "curzon-soho") for t in evening_slots(10)),
                *(make_screening(None, "f", t, "curzon-mayfair") for t in evening_slots(40)),
            ],
        )
        monitor = ScraperHealthMonitor(repository, HealthThresholds(), "Europe/London")

        health = await monitor.check_venue("curzon-soho", NOW)

        assert health is not None
        assert health.chain_median == 40.0
        assert AnomalyReason.LOW_VOLUME in health.anomaly_reasons
        assert [s.cinema_id for s in repository.snapshots] == ["curzon-soho"]
        assert repository.commits == 1

    async def test_check_unknown_venue(self) -> None:
        repository = FakeCatalogRepository(cinemas=[make_cinema("closed", "Closed", is_active=False)])
        monitor = ScraperHealthMonitor(repository, HealthThresholds(), "Europe/London")

        assert await monitor.check_venue("closed", NOW) is None
        assert await monitor.check_venue("nowhere", NOW) is None
        assert repository.snapshots == []


class TestDashboardThresholds:
    def test_reflects_configured_thresholds(self) -> None:
        thresholds = HealthThresholds(critical_stale_hours=96)
        assert dashboard_thresholds(thresholds) == {
            "healthy_score": 80,
            "warning_score": 60,
            "critical_stale_hours": 96,
            "low_chain_volume_percent": 60.0,
        }
