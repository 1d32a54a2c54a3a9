"""Tests for the admin endpoints."""

from collections.abc import AsyncIterator
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from cinecatalog.api.routes import admin
from cinecatalog.config import settings
from cinecatalog.models.health_snapshot import HealthSnapshot
from cinecatalog.services.scraper_health import HealthThresholds, dashboard_thresholds
from fakes import (
    FakeCatalogRepository,
    make_cinema,
    make_festival,
    make_film,
    make_screening,
)

LONDON_TZ = ZoneInfo("Europe/London")


def make_snapshot(
    cinema_id: str,
    overall_score: int,
    status: str,
    computed_at: datetime,
    reasons: list[str] | None = None,
) -> HealthSnapshot:
    return HealthSnapshot(
        cinema_id=cinema_id,
        computed_at=computed_at,
        total_future_screenings=40,
        next_7d_screenings=12,
        chain_median=None,
        history_baseline=45.0,
        last_scraped_at=computed_at - timedelta(hours=3),
        hours_since_last_scrape=3,
        freshness_score=overall_score,
        volume_score=overall_score,
        overall_score=overall_score,
        is_anomaly=bool(reasons),
        anomaly_reasons=reasons or [],
        status=status,
    )


@pytest.fixture
async def client(test_app: FastAPI, repository: FakeCatalogRepository) -> AsyncIterator[AsyncClient]:
    test_app.dependency_overrides[admin.get_repository] = lambda: repository
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as c:
        yield c
    test_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Health dashboard
# ---------------------------------------------------------------------------


class TestHealthDashboard:
    async def test_latest_snapshot_per_venue_in_dashboard_order(
        self, client: AsyncClient, repository: FakeCatalogRepository
    ) -> None:
        earlier = datetime(2026, 10, 18, 6, 0, tzinfo=timezone.utc)
        later = earlier + timedelta(days=1)
        repository.cinemas = {
            c.id: c
            for c in (
                make_cinema("prince-charles", "Prince Charles Cinema"),
                make_cinema("genesis", "Genesis Cinema"),
                make_cinema("rio-dalston", "Rio Cinema"),
            )
        }
        repository.snapshots = [
            make_snapshot("prince-charles", 20, "critical", earlier, ["SUDDEN_DROP"]),
            make_snapshot("prince-charles", 95, "healthy", later),
            make_snapshot("rio-dalston", 65, "warning", later),
            make_snapshot("genesis", 30, "critical", later, ["CRITICAL_STALE"]),
        ]

        response = await client.get("/api/admin/health")

        assert response.status_code == 200
        data = response.json()
        assert [v["cinema_id"] for v in data["venues"]] == ["genesis", "rio-dalston", "prince-charles"]
        assert data["venues"][0]["name"] == "Genesis Cinema"
        assert data["venues"][2]["overall_score"] == 95
        assert data["summary"] == {
            "total": 3,
            "healthy": 1,
            "warning": 1,
            "critical": 1,
            "anomalies": 1,
        }
        assert data["thresholds"] == dashboard_thresholds(HealthThresholds.from_settings())

    async def test_empty_dashboard(self, client: AsyncClient) -> None:
        response = await client.get("/api/admin/health")

        assert response.status_code == 200
        assert response.json()["venues"] == []
        assert response.json()["summary"]["total"] == 0

    async def test_thresholds_follow_settings(
        self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "health_critical_stale_hours", 96)

        response = await client.get("/api/admin/health")

        assert response.json()["thresholds"]["critical_stale_hours"] == 96

    async def test_history_newest_first_within_window(
        self, client: AsyncClient, repository: FakeCatalogRepository
    ) -> None:
        now = datetime.now(timezone.utc)
        repository.cinemas = {
            c.id: c
            for c in (
                make_cinema("genesis", "Genesis Cinema"),
                make_cinema("rio-dalston", "Rio Cinema"),
            )
        }
        repository.snapshots = [
            make_snapshot("genesis", 90, "healthy", now - timedelta(days=3)),
            make_snapshot("genesis", 30, "critical", now - timedelta(hours=2), ["CRITICAL_STALE"]),
            make_snapshot("genesis", 95, "healthy", now - timedelta(days=10)),
            make_snapshot("rio-dalston", 65, "warning", now - timedelta(hours=1)),
        ]

        response = await client.get("/api/admin/health/genesis/history")

        assert response.status_code == 200
        data = response.json()
        assert data["cinema_id"] == "genesis"
        assert data["name"] == "Genesis Cinema"
        assert data["days"] == 7
        assert [s["overall_score"] for s in data["snapshots"]] == [30, 90]
        assert data["snapshots"][0]["anomaly_reasons"] == ["CRITICAL_STALE"]

        response = await client.get("/api/admin/health/genesis/history", params={"days": 14})
        assert [s["overall_score"] for s in response.json()["snapshots"]] == [30, 90, 95]

    async def test_history_unknown_cinema(self, client: AsyncClient) -> None:
        response = await client.get("/api/admin/health/nope/history")

        assert response.status_code == 404
        assert response.json()["detail"] == "Cinema 'nope' not found"

    async def test_history_days_bounded(self, client: AsyncClient) -> None:
        response = await client.get("/api/admin/health/genesis/history", params={"days": 0})

        assert response.status_code == 422

    async def test_run_scores_every_active_venue(
        self, client: AsyncClient, repository: FakeCatalogRepository
    ) -> None:
        scraped = datetime.now(timezone.utc) - timedelta(hours=1)
        repository.cinemas = {
            c.id: c
            for c in (
                make_cinema("prince-charles", "Prince Charles Cinema", last_scraped_at=scraped),
                make_cinema("genesis", "Genesis Cinema", last_scraped_at=scraped),
                make_cinema("closed", "Closed Cinema", is_active=False),
            )
        }

        response = await client.post("/api/admin/health/run")

        assert response.status_code == 200
        data = response.json()
        assert {v["cinema_id"] for v in data["venues"]} == {"prince-charles", "genesis"}
        assert data["summary"]["total"] == 2
        assert len(repository.snapshots) == 2


# ---------------------------------------------------------------------------
# Festival tagging
# ---------------------------------------------------------------------------


class TestFestivalTagging:
    async def test_reverse_tag_unknown_festival(self, client: AsyncClient) -> None:
        response = await client.post("/api/admin/festivals/nope-2026/reverse-tag")

        assert response.status_code == 404
        assert "nope-2026" in response.json()["detail"]

    async def test_reverse_tag_festival(
        self, client: AsyncClient, repository: FakeCatalogRepository
    ) -> None:
        repository.festivals = [
            make_festival("frightfest-2026", date(2026, 8, 27), date(2026, 8, 31), ["prince-charles"])
        ]
        repository._store(
            make_screening(None, "the-thing", datetime(2026, 8, 28, 19, 0, tzinfo=LONDON_TZ))
        )
        repository._store(
            make_screening(None, "heat", datetime(2026, 9, 20, 19, 0, tzinfo=LONDON_TZ))
        )

        response = await client.post("/api/admin/festivals/frightfest-2026/reverse-tag")

        assert response.status_code == 200
        data = response.json()
        assert data["festival_slug"] == "frightfest-2026"
        assert data["tagged"] == 1
        assert repository.screenings[0].festival_slug == "frightfest-2026"
        assert repository.screenings[1].festival_slug is None

    async def test_rescan_only_watched_festivals(
        self, client: AsyncClient, repository: FakeCatalogRepository
    ) -> None:
        today = datetime.now(LONDON_TZ).date()
        start = today + timedelta(days=5)
        repository.festivals = [
            make_festival(f"bfi-lff-{start.year}", start, start + timedelta(days=10), ["bfi-southbank"]),
            make_festival(
                f"frightfest-{start.year}",
                today + timedelta(days=120),
                today + timedelta(days=124),
                ["prince-charles"],
            ),
        ]
        showtime = datetime.combine(start + timedelta(days=1), time(19, 0), tzinfo=LONDON_TZ)
        repository._store(
            make_screening(None, "hamnet", showtime, "bfi-southbank", raw_title="LFF Gala: Hamnet")
        )

        response = await client.post("/api/admin/festivals/rescan")

        assert response.status_code == 200
        data = response.json()
        assert [f["festival_slug"] for f in data["festivals"]] == [f"bfi-lff-{start.year}"]
        assert data["total_tagged"] == 1
        assert repository.screenings[0].festival_section == "Gala"


# ---------------------------------------------------------------------------
# Duplicate merge
# ---------------------------------------------------------------------------


class TestMergeDuplicates:
    @pytest.fixture
    def duplicates(self, repository: FakeCatalogRepository) -> FakeCatalogRepository:
        tomorrow = datetime.now(timezone.utc) + timedelta(days=1)
        repository.films = {
            f.id: f
            for f in (
                make_film("heat-1995", "Heat", 1995, tmdb_id=949),
                make_film("heat", "Heat"),
            )
        }
        repository._store(make_screening(None, "heat-1995", tomorrow, "genesis"))
        repository._store(make_screening(None, "heat", tomorrow, "genesis"))
        repository._store(make_screening(None, "heat", tomorrow + timedelta(days=1), "genesis"))
        return repository

    async def test_defaults_to_dry_run(
        self, client: AsyncClient, duplicates: FakeCatalogRepository
    ) -> None:
        response = await client.post("/api/admin/films/merge-duplicates")

        assert response.status_code == 200
        data = response.json()
        assert data["dry_run"] is True
        assert data["films_merged"] == 1
        assert data["merged"] == [
            {
                "survivor_id": "heat-1995",
                "loser_ids": ["heat"],
                "screenings_moved": 1,
                "screenings_dropped": 1,
            }
        ]
        assert set(duplicates.films) == {"heat-1995", "heat"}
        assert duplicates.applied_plans == []

    async def test_applies_merge(self, client: AsyncClient, duplicates: FakeCatalogRepository) -> None:
        response = await client.post("/api/admin/films/merge-duplicates", params={"dry_run": "false"})

        assert response.status_code == 200
        data = response.json()
        assert data["dry_run"] is False
        assert data["screenings_migrated"] == 1
        assert data["screenings_dropped"] == 1
        assert set(duplicates.films) == {"heat-1995"}
        assert len(duplicates.screenings) == 2
        assert {s.film_id for s in duplicates.screenings} == {"heat-1995"}
