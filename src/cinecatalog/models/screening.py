"""Screening model: one film at one venue at one time."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinecatalog.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from cinecatalog.models.cinema import Cinema
    from cinecatalog.models.film import Film


class Screening(Base, TimestampMixin):
    """
    Persisted screening.

    Extraction output and the festival tag are computed once at ingestion and
    stored here. Re-ingesting the same listing hits the
    (cinema_id, start_time, canonical_title) constraint and updates in place.
    """

    __tablename__ = "screenings"
    __table_args__ = (
        UniqueConstraint(
            "cinema_id",
            "start_time",
            "canonical_title",
            name="uq_screening_cinema_time_title",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    cinema_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("cinemas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # RESTRICT: a film can only be deleted once its screenings have moved
    film_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("films.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    booking_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    source_id: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Title as scraped, and what extraction made of it
    raw_title: Mapped[str] = mapped_column(Text, nullable=False)
    display_title: Mapped[str] = mapped_column(String(500), nullable=False)
    canonical_title: Mapped[str] = mapped_column(String(500), nullable=False)
    version: Mapped[str | None] = mapped_column(String(100), nullable=True)
    classification: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    extraction_confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    extraction_method: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # At most one festival per screening
    festival_slug: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    festival_section: Mapped[str | None] = mapped_column(String(100), nullable=True)

    scraped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    cinema: Mapped["Cinema"] = relationship(back_populates="screenings")
    film: Mapped["Film"] = relationship(back_populates="screenings")

    def __repr__(self) -> str:
        return (
            f"<Screening(cinema_id={self.cinema_id!r}, "
            f"film_id={self.film_id!r}, "
            f"start_time={self.start_time})>"
        )
