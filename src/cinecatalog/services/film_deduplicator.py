"""
Duplicate film clustering and merge.

Films describing the same underlying film ("Nosferatu" scraped from two
venues before either matched TMDb) are grouped into clusters, one survivor is
chosen per cluster, and the others' screenings are re-pointed at it. Only
films with upcoming screenings are considered.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import combinations
from typing import Protocol

from rapidfuzz import fuzz, process

from cinecatalog.config import settings
from cinecatalog.models.film import Film
from cinecatalog.models.film_merge_block import FilmMergeBlock
from cinecatalog.models.screening import Screening
from cinecatalog.utils.text import normalize_for_matching

logger = logging.getLogger(__name__)

EDGE_TMDB = "tmdb_id"
EDGE_TITLE = "normalized_title"
EDGE_FUZZY = "similar_title"

SKIP_BLOCKLISTED = "blocklisted"
SKIP_CONFLICTING_TMDB = "conflicting_tmdb_ids"
SKIP_CONFLICTING_YEARS = "conflicting_years"


class MergeRepository(Protocol):
    async def list_films_with_upcoming_screenings(self, now: datetime) -> list[Film]: ...

    async def list_merge_blocks(self) -> list[FilmMergeBlock]: ...

    async def list_screenings_for_films(self, film_ids: list[str]) -> list[Screening]: ...

    async def apply_merge(self, plan: "MergePlan") -> None: ...


@dataclass(frozen=True)
class Edge:
    """Evidence that two films are the same film."""

    film_id_a: str
    film_id_b: str
    reason: str


@dataclass(frozen=True)
class SkippedPair:
    film_id_a: str
    film_id_b: str
    reason: str


@dataclass
class DuplicateCluster:
    members: list[Film]
    survivor: Film

    @property
    def losers(self) -> list[Film]:
        return [f for f in self.members if f.id != self.survivor.id]

    @property
    def member_ids(self) -> list[str]:
        return [f.id for f in self.members]


@dataclass
class MergePlan:
    """Everything one cluster merge will do, computed before any write."""

    survivor_id: str
    loser_ids: list[str]
    move_screening_ids: list[int] = field(default_factory=list)
    drop_screening_ids: list[int] = field(default_factory=list)
    # Metadata the survivor lacks but a loser has
    survivor_updates: dict[str, str] = field(default_factory=dict)


@dataclass
class MergeReport:
    dry_run: bool = False
    clusters: int = 0
    films_merged: int = 0
    screenings_migrated: int = 0
    screenings_dropped: int = 0
    skipped_pairs: list[SkippedPair] = field(default_factory=list)
    plans: list[MergePlan] = field(default_factory=list)

    def add(self, plan: MergePlan) -> None:
        self.plans.append(plan)
        self.clusters += 1
        self.films_merged += len(plan.loser_ids)
        self.screenings_migrated += len(plan.move_screening_ids)
        self.screenings_dropped += len(plan.drop_screening_ids)


def years_compatible(a: int | None, b: int | None) -> bool:
    """Equal, or at least one unknown."""
    return a is None or b is None or a == b


def tmdb_conflict(a: Film, b: Film) -> bool:
    return a.tmdb_id is not None and b.tmdb_id is not None and a.tmdb_id != b.tmdb_id


def find_edges(
    films: list[Film],
    include_similar: bool = False,
    similarity_threshold: float = 92.0,
) -> list[Edge]:
    """
    Candidate duplicate pairs in priority order.

    1. Same TMDb ID
    2. Same normalised title, compatible years, no conflicting TMDb IDs
    3. (sweep only) normalised titles with fuzz.ratio >= threshold,
       compatible years, no conflicting TMDb IDs
    """
    edges: list[Edge] = []
    ordered = sorted(films, key=lambda f: f.id)

    by_tmdb: dict[int, list[Film]] = defaultdict(list)
    for film in ordered:
        if film.tmdb_id is not None:
            by_tmdb[film.tmdb_id].append(film)
    for group in by_tmdb.values():
        for a, b in zip(group, group[1:]):
            edges.append(Edge(a.id, b.id, EDGE_TMDB))

    normalized = {film.id: normalize_for_matching(film.title) for film in ordered}
    by_title: dict[str, list[Film]] = defaultdict(list)
    for film in ordered:
        by_title[normalized[film.id]].append(film)
    for group in by_title.values():
        for a, b in combinations(group, 2):
            if years_compatible(a.year, b.year) and not tmdb_conflict(a, b):
                edges.append(Edge(a.id, b.id, EDGE_TITLE))

    if include_similar:
        titles = sorted(t for t in by_title if t)
        for index, title in enumerate(titles):
            others = titles[index + 1 :]
            if not others:
                break
            matches = process.extract(
                title,
                others,
                scorer=fuzz.ratio,
                score_cutoff=similarity_threshold,
                limit=None,
            )
            for other, score, _ in matches:
                for a in by_title[title]:
                    for b in by_title[other]:
                        if years_compatible(a.year, b.year) and not tmdb_conflict(a, b):
                            logger.debug(f"Similar titles ({score:.1f}): '{a.title}' ~ '{b.title}'")
                            edges.append(Edge(a.id, b.id, EDGE_FUZZY))

    return edges


class _Components:
    """Union-find that refuses joins across a block or conflicting identities."""

    def __init__(self, films: Iterable[Film], blocks: set[frozenset[str]]) -> None:
        self.parent: dict[str, str] = {}
        self.members: dict[str, set[str]] = {}
        self.tmdb_ids: dict[str, set[int]] = {}
        self.years: dict[str, set[int]] = {}
        self.blocks = blocks
        for film in films:
            self.parent[film.id] = film.id
            self.members[film.id] = {film.id}
            self.tmdb_ids[film.id] = {film.tmdb_id} if film.tmdb_id is not None else set()
            self.years[film.id] = {film.year} if film.year is not None else set()

    def find(self, film_id: str) -> str:
        root = film_id
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[film_id] != root:
            self.parent[film_id], film_id = root, self.parent[film_id]
        return root

    def union(self, a: str, b: str) -> str | None:
        """Join the components of a and b; returns a skip reason if refused."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return None

        ids_a, ids_b = self.tmdb_ids[root_a], self.tmdb_ids[root_b]
        if ids_a and ids_b and ids_a != ids_b:
            return SKIP_CONFLICTING_TMDB

        # A yearless film may bridge two editions of a title; each component keeps one year
        years_a, years_b = self.years[root_a], self.years[root_b]
        if years_a and years_b and years_a != years_b:
            return SKIP_CONFLICTING_YEARS

        members_a, members_b = self.members[root_a], self.members[root_b]
        for pair in self.blocks:
            x, y = tuple(pair)
            if (x in members_a and y in members_b) or (y in members_a and x in members_b):
                return SKIP_BLOCKLISTED

        if len(members_a) < len(members_b):
            root_a, root_b = root_b, root_a
        self.parent[root_b] = root_a
        self.members[root_a] |= self.members.pop(root_b)
        self.tmdb_ids[root_a] |= self.tmdb_ids.pop(root_b)
        self.years[root_a] |= self.years.pop(root_b)
        return None

    def groups(self) -> list[set[str]]:
        return [members for members in self.members.values() if len(members) > 1]


def survivor_sort_key(film: Film) -> tuple:
    """Has TMDb ID, has poster, has synopsis, oldest, lowest id."""
    created = film.created_at
    return (
        film.tmdb_id is None,
        not film.poster_url,
        not film.synopsis,
        created is None,
        created.timestamp() if created else 0.0,
        film.id,
    )


def choose_survivor(members: Iterable[Film]) -> Film:
    return min(members, key=survivor_sort_key)


def build_clusters(
    films: list[Film],
    blocks: set[frozenset[str]],
    include_similar: bool = False,
    similarity_threshold: float = 92.0,
) -> tuple[list[DuplicateCluster], list[SkippedPair]]:
    """
    Group films into duplicate clusters.

    Clusters are transitive (A~B and B~C gives one cluster), but an edge is
    skipped if taking it would join a blocked pair, or mix TMDb IDs or known
    years within one cluster.
    """
    by_id = {film.id: film for film in films}
    components = _Components(films, blocks)
    skipped: list[SkippedPair] = []

    for edge in find_edges(films, include_similar, similarity_threshold):
        reason = components.union(edge.film_id_a, edge.film_id_b)
        if reason:
            skipped.append(SkippedPair(edge.film_id_a, edge.film_id_b, reason))

    clusters = []
    for member_ids in components.groups():
        members = sorted((by_id[i] for i in member_ids), key=lambda f: f.id)
        clusters.append(DuplicateCluster(members=members, survivor=choose_survivor(members)))
    clusters.sort(key=lambda c: c.survivor.id)
    return clusters, skipped


def plan_merge(cluster: DuplicateCluster, screenings: Iterable[Screening]) -> MergePlan:
    """
    Work out which loser screenings move and which are dropped.

    A loser screening is dropped when the survivor already has, or has just
    been given, a screening at the same cinema and start time.
    """
    survivor = cluster.survivor
    loser_ids = [f.id for f in cluster.losers]
    plan = MergePlan(survivor_id=survivor.id, loser_ids=loser_ids)

    screenings = list(screenings)
    occupied = {(s.cinema_id, s.start_time) for s in screenings if s.film_id == survivor.id}

    losers = set(loser_ids)
    for screening in sorted(
        (s for s in screenings if s.film_id in losers),
        key=lambda s: (s.film_id, s.start_time, s.id),
    ):
        slot = (screening.cinema_id, screening.start_time)
        if slot in occupied:
            plan.drop_screening_ids.append(screening.id)
        else:
            plan.move_screening_ids.append(screening.id)
            occupied.add(slot)

    for loser in cluster.losers:
        if not survivor.poster_url and loser.poster_url:
            plan.survivor_updates.setdefault("poster_url", loser.poster_url)
        if not survivor.synopsis and loser.synopsis:
            plan.survivor_updates.setdefault("synopsis", loser.synopsis)

    return plan


class FilmDeduplicator:
    """Finds and merges duplicate films."""

    def __init__(
        self,
        repository: MergeRepository,
        similarity_threshold: float | None = None,
    ) -> None:
        self.repository = repository
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else settings.dedupe_similarity_threshold
        )

    async def merge_duplicates_for(
        self, title: str, dry_run: bool = False, now: datetime | None = None
    ) -> MergeReport:
        """
        Merge exact duplicates of one title, after a film write.

        Args:
            title: Canonical title of the film just written
            dry_run: Plan only, write nothing
            now: Reference time for "upcoming"

        Returns:
            MergeReport
        """
        now = now or datetime.now(timezone.utc)
        key = normalize_for_matching(title)
        films = [
            film
            for film in await self.repository.list_films_with_upcoming_screenings(now)
            if normalize_for_matching(film.title) == key
        ]
        if len(films) < 2:
            return MergeReport(dry_run=dry_run)
        return await self._run(films, include_similar=False, dry_run=dry_run)

    async def sweep(self, dry_run: bool = False, now: datetime | None = None) -> MergeReport:
        """
        Merge duplicates across every film with upcoming screenings.

        Includes the near-duplicate similarity pass.
        """
        now = now or datetime.now(timezone.utc)
        films = await self.repository.list_films_with_upcoming_screenings(now)
        logger.info(f"Duplicate sweep over {len(films)} films with upcoming screenings")
        return await self._run(films, include_similar=True, dry_run=dry_run)

    async def _run(self, films: list[Film], include_similar: bool, dry_run: bool) -> MergeReport:
        blocks = {block.pair for block in await self.repository.list_merge_blocks()}
        clusters, skipped = build_clusters(
            films, blocks, include_similar, self.similarity_threshold
        )

        report = MergeReport(dry_run=dry_run, skipped_pairs=skipped)
        for pair in skipped:
            logger.info(f"Not merging {pair.film_id_a} and {pair.film_id_b}: {pair.reason}")

        for cluster in clusters:
            screenings = await self.repository.list_screenings_for_films(cluster.member_ids)
            plan = plan_merge(cluster, screenings)
            if not dry_run:
                await self.repository.apply_merge(plan)
            report.add(plan)

            logger.info(
                f"{'Would merge' if dry_run else 'Merged'} {', '.join(plan.loser_ids)} "
                f"into {plan.survivor_id}: {len(plan.move_screening_ids)} screenings moved, "
                f"{len(plan.drop_screening_ids)} dropped"
            )

        logger.info(
            f"Duplicate merge{' (dry run)' if dry_run else ''}: {report.clusters} clusters, "
            f"{report.films_merged} films merged, {report.screenings_migrated} screenings "
            f"migrated, {report.screenings_dropped} dropped, "
            f"{len(report.skipped_pairs)} pairs skipped"
        )
        return report
