"""Film model: one row per underlying film in the catalogue."""

from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinecatalog.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from cinecatalog.models.screening import Screening


class Film(Base, TimestampMixin):
    """
    Film record.

    `canonical_key` is derived from the version-stripped, normalised title
    plus year (see `utils.text.canonical_key`) and drives duplicate
    clustering. `tmdb_id` is the external catalogue ID.
    """

    __tablename__ = "films"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    canonical_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # External catalogue metadata
    tmdb_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    poster_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    synopsis: Mapped[str | None] = mapped_column(Text, nullable=True)

    screenings: Mapped[list["Screening"]] = relationship(back_populates="film")

    def __repr__(self) -> str:
        return f"<Film(id={self.id!r}, title={self.title!r}, year={self.year})>"
