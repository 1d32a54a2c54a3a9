"""Festival model: one row per festival edition."""

from datetime import date

from sqlalchemy import Boolean, Date, Integer, String
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from cinecatalog.models.base import Base, TimestampMixin


class Festival(Base, TimestampMixin):
    """
    Festival edition, e.g. slug "bfi-lff-2026".

    Tagging rules live in `services.festival_config`, keyed by the slug with
    the year removed. `venues` overrides the config's venue list when set.
    """

    __tablename__ = "festivals"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    short_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    venues: Mapped[list[str] | None] = mapped_column(ARRAY(String), nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Festival(slug={self.slug!r}, {self.start_date}..{self.end_date})>"
