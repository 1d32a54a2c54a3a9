"""In-memory catalogue repository and model factories for tests."""

from datetime import date, datetime, timezone
from typing import Any

from cinecatalog.models.cinema import Cinema
from cinecatalog.models.festival import Festival
from cinecatalog.models.film import Film
from cinecatalog.models.film_merge_block import FilmMergeBlock
from cinecatalog.models.health_snapshot import HealthSnapshot
from cinecatalog.models.screening import Screening
from cinecatalog.services.film_deduplicator import MergePlan
from cinecatalog.utils.text import canonical_key

# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_cinema(
    id: str = "prince-charles",
    name: str = "Prince Charles Cinema",
    chain: str | None = None,
    last_scraped_at: datetime | None = None,
    is_active: bool = True,
) -> Cinema:
    return Cinema(
        id=id,
        name=name,
        chain=chain,
        website=None,
        is_active=is_active,
        last_scraped_at=last_scraped_at,
    )


def make_film(
    id: str,
    title: str | None = None,
    year: int | None = None,
    tmdb_id: int | None = None,
    poster_url: str | None = None,
    synopsis: str | None = None,
    created_at: datetime | None = None,
) -> Film:
    title = title or id.replace("-", " ").title()
    return Film(
        id=id,
        title=title,
        year=year,
        canonical_key=canonical_key(title, year),
        tmdb_id=tmdb_id,
        poster_url=poster_url,
        synopsis=synopsis,
        created_at=created_at or datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def make_screening(
    id: int | None,
    film_id: str,
    start_time: datetime,
    cinema_id: str = "prince-charles",
    raw_title: str | None = None,
    booking_url: str | None = None,
    classification: str = "normal",
    festival_slug: str | None = None,
    scraped_at: datetime | None = None,
) -> Screening:
    raw_title = raw_title or film_id
    return Screening(
        id=id,
        cinema_id=cinema_id,
        film_id=film_id,
        start_time=start_time,
        booking_url=booking_url,
        raw_title=raw_title,
        display_title=raw_title,
        canonical_title=raw_title,
        classification=classification,
        extraction_confidence=1.0,
        festival_slug=festival_slug,
        scraped_at=scraped_at,
    )


def make_festival(
    slug: str,
    start_date: date,
    end_date: date,
    venues: list[str] | None = None,
    name: str | None = None,
    is_active: bool = True,
) -> Festival:
    return Festival(
        id=slug,
        slug=slug,
        name=name or slug,
        year=start_date.year,
        start_date=start_date,
        end_date=end_date,
        venues=venues,
        is_active=is_active,
    )


def make_block(film_id_a: str, film_id_b: str) -> FilmMergeBlock:
    a, b = sorted((film_id_a, film_id_b))
    return FilmMergeBlock(film_id_a=a, film_id_b=b, reason="different films")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class FakeCatalogRepository:
    """Implements CatalogRepository over plain lists and dicts."""

    def __init__(
        self,
        cinemas: list[Cinema] = (),
        films: list[Film] = (),
        screenings: list[Screening] = (),
        festivals: list[Festival] = (),
        blocks: list[FilmMergeBlock] = (),
        snapshots: list[HealthSnapshot] = (),
    ) -> None:
        self.cinemas = {c.id: c for c in cinemas}
        self.films = {f.id: f for f in films}
        self.screenings: list[Screening] = []
        self.festivals = list(festivals)
        self.blocks = list(blocks)
        self.snapshots = list(snapshots)
        self.applied_plans: list[MergePlan] = []
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 1
        for screening in screenings:
            self._store(screening)

    def _store(self, screening: Screening) -> Screening:
        if screening.id is None:
            screening.id = self._next_id
        self._next_id = max(self._next_id, screening.id) + 1
        self.screenings.append(screening)
        return screening

    # Venues

    async def get_cinema(self, cinema_id: str) -> Cinema | None:
        return self.cinemas.get(cinema_id)

    async def list_active_cinemas(self) -> list[Cinema]:
        return sorted(
            (c for c in self.cinemas.values() if c.is_active is not False), key=lambda c: c.id
        )

    async def mark_scraped(self, cinema_id: str, scraped_at: datetime) -> None:
        if cinema_id in self.cinemas:
            self.cinemas[cinema_id].last_scraped_at = scraped_at

    # Films

    async def find_film_by_canonical_key(self, key: str) -> Film | None:
        matches = sorted((f for f in self.films.values() if f.canonical_key == key), key=lambda f: f.id)
        return matches[0] if matches else None

    async def find_film_by_tmdb_id(self, tmdb_id: int) -> Film | None:
        matches = sorted((f for f in self.films.values() if f.tmdb_id == tmdb_id), key=lambda f: f.id)
        return matches[0] if matches else None

    async def add_film(self, film: Film) -> Film:
        if film.id in self.films:
            return self.films[film.id]
        self.films[film.id] = film
        return film

    # Screenings

    async def upsert_screening(self, values: dict[str, Any]) -> Screening:
        for screening in self.screenings:
            if (
                screening.cinema_id == values["cinema_id"]
                and screening.start_time == values["start_time"]
                and screening.canonical_title == values["canonical_title"]
            ):
                for key, value in values.items():
                    if key in ("festival_slug", "festival_section") and value is None:
                        continue
                    setattr(screening, key, value)
                return screening
        return self._store(Screening(**values))

    async def list_screenings_between(
        self, cinema_ids: list[str], start: datetime, end: datetime
    ) -> list[Screening]:
        return sorted(
            (
                s
                for s in self.screenings
                if s.cinema_id in cinema_ids and start <= s.start_time < end
            ),
            key=lambda s: (s.start_time, s.id),
        )

    async def set_festival_tag(
        self, screening: Screening, festival_slug: str, festival_section: str | None
    ) -> None:
        screening.festival_slug = festival_slug
        screening.festival_section = festival_section

    # Duplicates

    async def list_films_with_upcoming_screenings(self, now: datetime) -> list[Film]:
        ids = {
            s.film_id
            for s in self.screenings
            if s.start_time >= now and s.classification != "compilation"
        }
        return [self.films[i] for i in sorted(ids) if i in self.films]

    async def list_screenings_for_films(self, film_ids: list[str]) -> list[Screening]:
        return sorted(
            (s for s in self.screenings if s.film_id in film_ids),
            key=lambda s: (s.start_time, s.id),
        )

    async def list_merge_blocks(self) -> list[FilmMergeBlock]:
        return list(self.blocks)

    async def apply_merge(self, plan: MergePlan) -> None:
        dropped = set(plan.drop_screening_ids)
        moved = set(plan.move_screening_ids)
        self.screenings = [s for s in self.screenings if s.id not in dropped]
        for screening in self.screenings:
            if screening.id in moved:
                screening.film_id = plan.survivor_id
        survivor = self.films[plan.survivor_id]
        for key, value in plan.survivor_updates.items():
            setattr(survivor, key, value)
        for loser_id in plan.loser_ids:
            self.films.pop(loser_id, None)
        self.applied_plans.append(plan)
        self.commits += 1

    # Festivals

    async def list_active_festivals(self) -> list[Festival]:
        return sorted(
            (f for f in self.festivals if f.is_active is not False),
            key=lambda f: (f.start_date, f.slug),
        )

    async def get_festival_by_slug(self, slug: str) -> Festival | None:
        return next((f for f in self.festivals if f.slug == slug), None)

    # Health

    async def list_future_start_times(self, now: datetime) -> dict[str, list[datetime]]:
        start_times: dict[str, list[datetime]] = {}
        for screening in self.screenings:
            if screening.start_time >= now:
                start_times.setdefault(screening.cinema_id, []).append(screening.start_time)
        return start_times

    async def last_screening_scrape_times(self) -> dict[str, datetime]:
        latest: dict[str, datetime] = {}
        for screening in self.screenings:
            if screening.scraped_at and (
                screening.cinema_id not in latest or screening.scraped_at > latest[screening.cinema_id]
            ):
                latest[screening.cinema_id] = screening.scraped_at
        return latest

    async def list_snapshot_totals(self, since: datetime) -> dict[str, list[int]]:
        totals: dict[str, list[int]] = {}
        for snapshot in sorted(self.snapshots, key=lambda s: s.computed_at):
            if snapshot.computed_at >= since:
                totals.setdefault(snapshot.cinema_id, []).append(snapshot.total_future_screenings)
        return totals

    async def add_health_snapshot(self, snapshot: HealthSnapshot) -> None:
        self.snapshots.append(snapshot)

    async def latest_health_snapshots(self) -> list[tuple[HealthSnapshot, str]]:
        latest: dict[str, HealthSnapshot] = {}
        for snapshot in self.snapshots:
            current = latest.get(snapshot.cinema_id)
            if current is None or snapshot.computed_at > current.computed_at:
                latest[snapshot.cinema_id] = snapshot
        return [
            (snapshot, self.cinemas[cinema_id].name)
            for cinema_id, snapshot in latest.items()
            if cinema_id in self.cinemas
        ]

    async def list_health_snapshots(
        self, cinema_id: str, since: datetime
    ) -> list[HealthSnapshot]:
        return sorted(
            (s for s in self.snapshots if s.cinema_id == cinema_id and s.computed_at >= since),
            key=lambda s: s.computed_at,
            reverse=True,
        )

    # Transactions

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1
