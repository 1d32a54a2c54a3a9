"""Pydantic schemas for admin operations."""

from pydantic import BaseModel, ConfigDict


class TaggingResultResponse(BaseModel):
    """Reverse-tagging outcome for one festival."""

    model_config = ConfigDict(from_attributes=True)

    festival_slug: str
    checked: int
    tagged: int
    already_tagged: int
    conflicts: int


class RescanResponse(BaseModel):
    festivals: list[TaggingResultResponse]
    total_tagged: int


class SkippedPairResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    film_id_a: str
    film_id_b: str
    reason: str


class MergedClusterResponse(BaseModel):
    survivor_id: str
    loser_ids: list[str]
    screenings_moved: int
    screenings_dropped: int


class MergeReportResponse(BaseModel):
    """Duplicate merge outcome."""

    dry_run: bool
    clusters: int
    films_merged: int
    screenings_migrated: int
    screenings_dropped: int
    merged: list[MergedClusterResponse]
    skipped_pairs: list[SkippedPairResponse]
