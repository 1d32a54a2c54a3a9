"""Data models for scraper output."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RawScreening:
    """
    Raw screening data from a cinema scraper.

    This is the only thing the pipeline receives from the scraping layer.
    The title is exactly as it appears on the cinema website; extraction,
    tagging and film resolution all happen downstream.
    """

    venue_id: str  # Cinema slug, e.g. "prince-charles"
    raw_title: str  # Event title as listed
    start_time: datetime  # Screening time (timezone-aware)
    booking_url: str | None = None
    source_id: str | None = None  # Scraper-side identifier for the listing
    description: str | None = None  # Listing blurb, passed to the fallback extractor

    def __post_init__(self) -> None:
        """Validate that start_time is timezone-aware."""
        if self.start_time.tzinfo is None:
            raise ValueError("start_time must be timezone-aware")
