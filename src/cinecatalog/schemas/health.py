"""Pydantic schemas for the scraper health dashboard."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class VenueHealthResponse(BaseModel):
    """Latest health snapshot for one venue."""

    model_config = ConfigDict(from_attributes=True)

    cinema_id: str
    name: str
    computed_at: datetime
    total_future_screenings: int
    next_7d_screenings: int
    chain_median: float | None = None
    history_baseline: float | None = None
    last_scraped_at: datetime | None = None
    hours_since_last_scrape: int | None = None
    freshness_score: int
    volume_score: int
    overall_score: int
    is_anomaly: bool
    anomaly_reasons: list[str]
    status: str


class HealthSummary(BaseModel):
    total: int
    healthy: int
    warning: int
    critical: int
    anomalies: int


class HealthDashboardResponse(BaseModel):
    """Dashboard payload: venues in display order plus configured thresholds."""

    venues: list[VenueHealthResponse]
    summary: HealthSummary
    thresholds: dict[str, float]


class HealthHistoryResponse(BaseModel):
    """One venue's snapshots over the last `days` days, newest first."""

    cinema_id: str
    name: str
    days: int
    snapshots: list[VenueHealthResponse]
