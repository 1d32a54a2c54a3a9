"""Cinema model: the venue registry that scrapers report against."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinecatalog.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from cinecatalog.models.health_snapshot import HealthSnapshot
    from cinecatalog.models.screening import Screening


class Cinema(Base, TimestampMixin):
    """
    Cinema venue.

    `chain` groups venues run by the same operator so the health monitor can
    compare a venue's volume against its peers. `last_scraped_at` is bumped on
    every scrape run, including runs that returned nothing.
    """

    __tablename__ = "cinemas"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    chain: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_scraped_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    screenings: Mapped[list["Screening"]] = relationship(
        back_populates="cinema",
        cascade="all, delete-orphan",
    )
    health_snapshots: Mapped[list["HealthSnapshot"]] = relationship(
        back_populates="cinema",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Cinema(id={self.id!r}, name={self.name!r}, chain={self.chain!r})>"
