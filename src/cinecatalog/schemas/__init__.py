"""Pydantic schemas for API requests and responses."""

from cinecatalog.schemas.admin import (
    MergedClusterResponse,
    MergeReportResponse,
    RescanResponse,
    SkippedPairResponse,
    TaggingResultResponse,
)
from cinecatalog.schemas.health import (
    HealthDashboardResponse,
    HealthHistoryResponse,
    HealthSummary,
    VenueHealthResponse,
)

__all__ = [
    "HealthDashboardResponse",
    "HealthHistoryResponse",
    "HealthSummary",
    "MergedClusterResponse",
    "MergeReportResponse",
    "RescanResponse",
    "SkippedPairResponse",
    "TaggingResultResponse",
    "VenueHealthResponse",
]
