"""Manual block-list of film pairs that must never be merged automatically."""

from sqlalchemy import CheckConstraint, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cinecatalog.models.base import Base, TimestampMixin


class FilmMergeBlock(Base, TimestampMixin):
    """
    A known false-positive pair, e.g. "Alien" vs "Aliens".

    Stored with film_id_a < film_id_b so each pair has a single row.
    """

    __tablename__ = "film_merge_blocks"
    __table_args__ = (
        UniqueConstraint("film_id_a", "film_id_b", name="uq_film_merge_block_pair"),
        CheckConstraint("film_id_a < film_id_b", name="ck_film_merge_block_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    film_id_a: Mapped[str] = mapped_column(
        String(100), ForeignKey("films.id", ondelete="CASCADE"), nullable=False
    )
    film_id_b: Mapped[str] = mapped_column(
        String(100), ForeignKey("films.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def pair(self) -> frozenset[str]:
        return frozenset((self.film_id_a, self.film_id_b))

    def __repr__(self) -> str:
        return f"<FilmMergeBlock({self.film_id_a!r} != {self.film_id_b!r})>"
