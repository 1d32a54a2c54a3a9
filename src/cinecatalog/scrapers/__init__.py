"""Interface boundary with the external scraping layer."""

from cinecatalog.scrapers.models import RawScreening

__all__ = ["RawScreening"]
