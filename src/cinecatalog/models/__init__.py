"""SQLAlchemy ORM models."""

from cinecatalog.models.base import Base
from cinecatalog.models.cinema import Cinema
from cinecatalog.models.festival import Festival
from cinecatalog.models.film import Film
from cinecatalog.models.film_merge_block import FilmMergeBlock
from cinecatalog.models.health_snapshot import HealthSnapshot
from cinecatalog.models.screening import Screening

__all__ = [
    "Base",
    "Cinema",
    "Festival",
    "Film",
    "FilmMergeBlock",
    "HealthSnapshot",
    "Screening",
]
