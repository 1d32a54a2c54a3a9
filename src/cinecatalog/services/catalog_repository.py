"""
Repository boundary between the pipeline services and the database.

Services depend on the `CatalogRepository` protocol only; the API and the
scheduled jobs hand them a `SqlCatalogRepository` wrapping an AsyncSession.
"""

import logging
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cinecatalog.models.cinema import Cinema
from cinecatalog.models.festival import Festival
from cinecatalog.models.film import Film
from cinecatalog.models.film_merge_block import FilmMergeBlock
from cinecatalog.models.health_snapshot import HealthSnapshot
from cinecatalog.models.screening import Screening
from cinecatalog.services.film_deduplicator import MergePlan

logger = logging.getLogger(__name__)


class CatalogRepository(Protocol):
    # Venues
    async def get_cinema(self, cinema_id: str) -> Cinema | None: ...

    async def list_active_cinemas(self) -> list[Cinema]: ...

    async def mark_scraped(self, cinema_id: str, scraped_at: datetime) -> None: ...

    # Films
    async def find_film_by_canonical_key(self, key: str) -> Film | None: ...

    async def find_film_by_tmdb_id(self, tmdb_id: int) -> Film | None: ...

    async def add_film(self, film: Film) -> Film: ...

    # Screenings
    async def upsert_screening(self, values: dict[str, Any]) -> Screening: ...

    async def list_screenings_between(
        self, cinema_ids: list[str], start: datetime, end: datetime
    ) -> list[Screening]: ...

    async def set_festival_tag(
        self, screening: Screening, festival_slug: str, festival_section: str | None
    ) -> None: ...

    # Duplicates
    async def list_films_with_upcoming_screenings(self, now: datetime) -> list[Film]: ...

    async def list_screenings_for_films(self, film_ids: list[str]) -> list[Screening]: ...

    async def list_merge_blocks(self) -> list[FilmMergeBlock]: ...

    async def apply_merge(self, plan: MergePlan) -> None: ...

    # Festivals
    async def list_active_festivals(self) -> list[Festival]: ...

    async def get_festival_by_slug(self, slug: str) -> Festival | None: ...

    # Health
    async def list_future_start_times(self, now: datetime) -> dict[str, list[datetime]]: ...

    async def last_screening_scrape_times(self) -> dict[str, datetime]: ...

    async def list_snapshot_totals(self, since: datetime) -> dict[str, list[int]]: ...

    async def add_health_snapshot(self, snapshot: HealthSnapshot) -> None: ...

    async def latest_health_snapshots(self) -> list[tuple[HealthSnapshot, str]]: ...

    async def list_health_snapshots(
        self, cinema_id: str, since: datetime
    ) -> list[HealthSnapshot]: ...

    # Transactions
    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class SqlCatalogRepository:
    """CatalogRepository over a SQLAlchemy AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_cinema(self, cinema_id: str) -> Cinema | None:
        return await self.session.get(Cinema, cinema_id)

    async def list_active_cinemas(self) -> list[Cinema]:
        result = await self.session.execute(
            select(Cinema).where(Cinema.is_active.is_(True)).order_by(Cinema.id)
        )
        return list(result.scalars().all())

    async def mark_scraped(self, cinema_id: str, scraped_at: datetime) -> None:
        await self.session.execute(
            update(Cinema).where(Cinema.id == cinema_id).values(last_scraped_at=scraped_at)
        )

    async def find_film_by_canonical_key(self, key: str) -> Film | None:
        result = await self.session.execute(
            select(Film).where(Film.canonical_key == key).order_by(Film.created_at, Film.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def find_film_by_tmdb_id(self, tmdb_id: int) -> Film | None:
        result = await self.session.execute(
            select(Film).where(Film.tmdb_id == tmdb_id).order_by(Film.created_at, Film.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def add_film(self, film: Film) -> Film:
        """Insert a film; if another writer got there first, return theirs."""
        try:
            async with self.session.begin_nested():
                self.session.add(film)
        except IntegrityError:
            existing = await self.session.get(Film, film.id)
            if existing:
                logger.debug(f"Film {film.id!r} already exists, reusing.")
                return existing
            raise
        return film

    async def upsert_screening(self, values: dict[str, Any]) -> Screening:
        """Insert or update on (cinema_id, start_time, canonical_title)."""
        result = await self.session.execute(
            select(Screening).where(
                Screening.cinema_id == values["cinema_id"],
                Screening.start_time == values["start_time"],
                Screening.canonical_title == values["canonical_title"],
            )
        )
        screening = result.scalar_one_or_none()

        if screening is None:
            screening = Screening(**values)
            self.session.add(screening)
        else:
            for key, value in values.items():
                # A reverse-tagged festival survives a re-scrape that didn't detect it
                if key in ("festival_slug", "festival_section") and value is None:
                    continue
                setattr(screening, key, value)

        await self.session.flush()
        return screening

    async def list_screenings_between(
        self, cinema_ids: list[str], start: datetime, end: datetime
    ) -> list[Screening]:
        """Screenings at the given cinemas with start <= start_time < end."""
        result = await self.session.execute(
            select(Screening)
            .where(
                Screening.cinema_id.in_(cinema_ids),
                Screening.start_time >= start,
                Screening.start_time < end,
            )
            .order_by(Screening.start_time, Screening.id)
        )
        return list(result.scalars().all())

    async def set_festival_tag(
        self, screening: Screening, festival_slug: str, festival_section: str | None
    ) -> None:
        screening.festival_slug = festival_slug
        screening.festival_section = festival_section
        await self.session.flush()

    async def list_films_with_upcoming_screenings(self, now: datetime) -> list[Film]:
        upcoming = (
            select(Screening.film_id)
            .where(Screening.start_time >= now, Screening.classification != "compilation")
            .distinct()
        )
        result = await self.session.execute(
            select(Film).where(Film.id.in_(upcoming)).order_by(Film.id)
        )
        return list(result.scalars().all())

    async def list_screenings_for_films(self, film_ids: list[str]) -> list[Screening]:
        result = await self.session.execute(
            select(Screening)
            .where(Screening.film_id.in_(film_ids))
            .order_by(Screening.start_time, Screening.id)
        )
        return list(result.scalars().all())

    async def list_merge_blocks(self) -> list[FilmMergeBlock]:
        result = await self.session.execute(select(FilmMergeBlock))
        return list(result.scalars().all())

    async def apply_merge(self, plan: MergePlan) -> None:
        """
        Execute one cluster merge as a single transaction.

        Screenings are moved and dropped before the losing films are deleted,
        so a failure part-way leaves nothing pointing at a missing film.
        """
        try:
            if plan.move_screening_ids:
                await self.session.execute(
                    update(Screening)
                    .where(Screening.id.in_(plan.move_screening_ids))
                    .values(film_id=plan.survivor_id)
                    .execution_options(synchronize_session=False)
                )
            if plan.drop_screening_ids:
                await self.session.execute(
                    delete(Screening)
                    .where(Screening.id.in_(plan.drop_screening_ids))
                    .execution_options(synchronize_session=False)
                )
            if plan.survivor_updates:
                await self.session.execute(
                    update(Film)
                    .where(Film.id == plan.survivor_id)
                    .values(**plan.survivor_updates)
                    .execution_options(synchronize_session=False)
                )
            if plan.loser_ids:
                await self.session.execute(
                    delete(Film)
                    .where(Film.id.in_(plan.loser_ids))
                    .execution_options(synchronize_session=False)
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        self.session.expire_all()

    async def list_active_festivals(self) -> list[Festival]:
        result = await self.session.execute(
            select(Festival)
            .where(Festival.is_active.is_(True))
            .order_by(Festival.start_date, Festival.slug)
        )
        return list(result.scalars().all())

    async def get_festival_by_slug(self, slug: str) -> Festival | None:
        result = await self.session.execute(select(Festival).where(Festival.slug == slug))
        return result.scalar_one_or_none()

    async def list_future_start_times(self, now: datetime) -> dict[str, list[datetime]]:
        result = await self.session.execute(
            select(Screening.cinema_id, Screening.start_time).where(Screening.start_time >= now)
        )
        start_times: dict[str, list[datetime]] = {}
        for cinema_id, start_time in result.all():
            start_times.setdefault(cinema_id, []).append(start_time)
        return start_times

    async def last_screening_scrape_times(self) -> dict[str, datetime]:
        result = await self.session.execute(
            select(Screening.cinema_id, func.max(Screening.scraped_at)).group_by(
                Screening.cinema_id
            )
        )
        return {cinema_id: scraped for cinema_id, scraped in result.all() if scraped}

    async def list_snapshot_totals(self, since: datetime) -> dict[str, list[int]]:
        result = await self.session.execute(
            select(HealthSnapshot.cinema_id, HealthSnapshot.total_future_screenings)
            .where(HealthSnapshot.computed_at >= since)
            .order_by(HealthSnapshot.computed_at)
        )
        totals: dict[str, list[int]] = {}
        for cinema_id, total in result.all():
            totals.setdefault(cinema_id, []).append(total)
        return totals

    async def add_health_snapshot(self, snapshot: HealthSnapshot) -> None:
        self.session.add(snapshot)
        await self.session.flush()

    async def latest_health_snapshots(self) -> list[tuple[HealthSnapshot, str]]:
        """Most recent snapshot per venue, with the venue name."""
        latest = (
            select(
                HealthSnapshot.cinema_id,
                func.max(HealthSnapshot.computed_at).label("computed_at"),
            )
            .group_by(HealthSnapshot.cinema_id)
            .subquery()
        )
        result = await self.session.execute(
            select(HealthSnapshot, Cinema.name)
            .join(
                latest,
                (HealthSnapshot.cinema_id == latest.c.cinema_id)
                & (HealthSnapshot.computed_at == latest.c.computed_at),
            )
            .join(Cinema, Cinema.id == HealthSnapshot.cinema_id)
        )
        return [(snapshot, name) for snapshot, name in result.all()]

    async def list_health_snapshots(
        self, cinema_id: str, since: datetime
    ) -> list[HealthSnapshot]:
        """One venue's snapshots since `since`, newest first."""
        result = await self.session.execute(
            select(HealthSnapshot)
            .where(
                HealthSnapshot.cinema_id == cinema_id,
                HealthSnapshot.computed_at >= since,
            )
            .order_by(HealthSnapshot.computed_at.desc())
        )
        return list(result.scalars().all())

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
