"""Health snapshot model: append-only history of scraper health per venue."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinecatalog.models.base import Base

if TYPE_CHECKING:
    from cinecatalog.models.cinema import Cinema


class HealthSnapshot(Base):
    """
    One scoring of one venue at `computed_at`.

    Rows are never updated; a newer row supersedes an older one. The inputs
    behind the scores (counts, baselines) are stored so history queries and
    the sudden-drop rule can read them back.
    """

    __tablename__ = "health_snapshots"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    cinema_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("cinemas.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    # Volume
    total_future_screenings: Mapped[int] = mapped_column(Integer, nullable=False)
    next_7d_screenings: Mapped[int] = mapped_column(Integer, nullable=False)
    chain_median: Mapped[float | None] = mapped_column(Float, nullable=True)
    history_baseline: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Freshness
    last_scraped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    hours_since_last_scrape: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Scores (0-100)
    freshness_score: Mapped[int] = mapped_column(Integer, nullable=False)
    volume_score: Mapped[int] = mapped_column(Integer, nullable=False)
    overall_score: Mapped[int] = mapped_column(Integer, nullable=False)

    is_anomaly: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    anomaly_reasons: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    cinema: Mapped["Cinema"] = relationship(back_populates="health_snapshots")

    def __repr__(self) -> str:
        return (
            f"<HealthSnapshot(cinema_id={self.cinema_id!r}, "
            f"overall={self.overall_score}, at={self.computed_at})>"
        )
