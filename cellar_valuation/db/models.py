"""SQLAlchemy ORM models for valuations, critic scores and the catalog they read."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# Catalog tables. Owned by the inventory application; read-only here.
# ---------------------------------------------------------------------------


class UserDB(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class ProducerDB(Base):
    __tablename__ = "producers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class WineDB(Base):
    __tablename__ = "wines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    producer_id: Mapped[int] = mapped_column(ForeignKey("producers.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)  # red/white/rose/...


class InventoryLotDB(Base):
    __tablename__ = "inventory_lots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    wine_id: Mapped[int] = mapped_column(ForeignKey("wines.id"), nullable=False, index=True)
    vintage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    purchase_price_per_bottle: Mapped[float | None] = mapped_column(Float, nullable=True)


# ---------------------------------------------------------------------------
# Reconciliation tables
# ---------------------------------------------------------------------------


class ValuationDB(Base):
    """
    Database model for external valuations.

    One row per (wine, vintage). A NULL vintage is a non-vintage wine; NULLs
    never collide in a unique constraint, so a partial index covers them.
    """

    __tablename__ = "wine_valuations"
    __table_args__ = (
        UniqueConstraint("wine_id", "vintage", name="uq_wine_valuations_wine_vintage"),
        Index(
            "uq_wine_valuations_wine_nv",
            "wine_id",
            unique=True,
            sqlite_where=text("vintage IS NULL"),
            postgresql_where=text("vintage IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    wine_id: Mapped[int] = mapped_column(ForeignKey("wines.id"), nullable=False, index=True)
    vintage: Mapped[int | None] = mapped_column(Integer, nullable=True)

    price_estimate: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_low: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_high: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Provenance
    source: Mapped[str] = mapped_column(String(50), default="")  # vivino/wine-searcher/manual
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_wine_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source_name: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    fetched_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def __repr__(self) -> str:
        return f"<ValuationDB(wine_id={self.wine_id}, vintage={self.vintage}, status={self.status})>"


class CriticScoreDB(Base):
    """Database model for critic scores, one row per (wine, vintage, critic)."""

    __tablename__ = "wine_critic_scores"
    __table_args__ = (
        UniqueConstraint("wine_id", "vintage", "critic", name="uq_wine_critic_scores_wine_vintage_critic"),
        Index(
            "uq_wine_critic_scores_wine_nv_critic",
            "wine_id",
            "critic",
            unique=True,
            sqlite_where=text("vintage IS NULL"),
            postgresql_where=text("vintage IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)
    wine_id: Mapped[int] = mapped_column(ForeignKey("wines.id"), nullable=False, index=True)
    vintage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    critic: Mapped[str] = mapped_column(String(50), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(50), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)

    def __repr__(self) -> str:
        return f"<CriticScoreDB(wine_id={self.wine_id}, vintage={self.vintage}, critic={self.critic}, score={self.score})>"
