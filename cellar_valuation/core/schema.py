"""Pydantic v2 models for valuations and critic scores."""

from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from cellar_valuation.core.enums import Critic, CriticScoreOutcome, ValuationStatus


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


VintageYear = Annotated[int, Field(ge=1900, le=2100)]


class WineIdentity(BaseModel):
    """Catalog wine as seen by the matcher."""

    wine_id: int
    name: str
    producer_name: str

    @property
    def search_query(self) -> str:
        """Free-text query sent to external sources."""
        return f"{self.producer_name} {self.name}".strip()


class WinePair(BaseModel):
    """A (wine, vintage) key held in a user's inventory."""

    wine_id: int
    vintage: int | None = None
    wine_name: str = ""
    producer_name: str = ""

    @property
    def key(self) -> tuple[int, int | None]:
        return (self.wine_id, self.vintage)


class InventoryLot(BaseModel):
    """Inventory lot figures needed for the valuation summary."""

    wine_id: int
    vintage: int | None = None
    quantity: int = 0
    purchase_price_per_bottle: float | None = None


class ValuationRecord(BaseModel):
    """Persisted valuation for one (wine, vintage)."""

    id: UUID = Field(default_factory=uuid4)
    wine_id: int
    vintage: int | None = None

    price_estimate: float | None = None
    price_low: float | None = None
    price_high: float | None = None

    source: str = ""
    source_url: str | None = None
    source_wine_id: str | None = None
    source_name: str | None = None

    status: ValuationStatus = ValuationStatus.PENDING
    confidence: Annotated[float, Field(ge=0.0, le=1.0)] | None = None

    fetched_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    # Joined for display, not persisted on the row
    wine_name: str | None = None
    producer_name: str | None = None


class CriticScoreRecord(BaseModel):
    """Persisted critic score for one (wine, vintage, critic)."""

    id: UUID = Field(default_factory=uuid4)
    wine_id: int
    vintage: int | None = None
    critic: Critic
    score: Annotated[int, Field(ge=0, le=100)]
    note: str | None = None
    source_url: str | None = None
    source: str = ""
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    wine_name: str | None = None
    producer_name: str | None = None


class ValuationFetchRequest(BaseModel):
    """Body of a single valuation fetch."""

    wine_id: Annotated[int, Field(gt=0)]
    vintage: VintageYear | None = None


class CriticScoreFetchRequest(BaseModel):
    """Body of a single critic score fetch."""

    wine_id: Annotated[int, Field(gt=0)]
    vintage: VintageYear | None = None


class ManualValuationInput(BaseModel):
    """User-entered prices that replace whatever the pipeline found."""

    price_estimate: Annotated[float, Field(gt=0)]
    price_low: Annotated[float, Field(gt=0)] | None = None
    price_high: Annotated[float, Field(gt=0)] | None = None

    @model_validator(mode="after")
    def check_range(self) -> "ManualValuationInput":
        if (
            self.price_low is not None
            and self.price_high is not None
            and self.price_low > self.price_high
        ):
            raise ValueError("price_low cannot exceed price_high")
        return self


class ManualValuationCreate(ManualValuationInput):
    """Manual entry keyed by (wine, vintage) rather than by record id."""

    wine_id: Annotated[int, Field(gt=0)]
    vintage: VintageYear | None = None


class CriticScoreCreate(BaseModel):
    """User-entered critic score."""

    critic: Critic
    score: Annotated[int, Field(ge=0, le=100)]
    vintage: VintageYear | None = None
    note: Annotated[str, Field(max_length=2000)] | None = None
    source_url: Annotated[str, Field(max_length=2048)] | None = None


class ValuationFetchResult(BaseModel):
    """Outcome of one automatic valuation fetch."""

    success: bool
    valuation: ValuationRecord | None = None
    error: str | None = None


class CriticScoreFetchResult(BaseModel):
    """Outcome of one critic score fetch."""

    success: bool
    outcome: CriticScoreOutcome
    scores: list[CriticScoreRecord] = Field(default_factory=list)
    error: str | None = None


class ValuationSummary(BaseModel):
    """Cellar-wide value figures for one user."""

    total_bottles: int = 0
    total_cost: float = 0.0
    total_value: float = 0.0
    gain_loss: float = 0.0
    gain_loss_percent: float = 0.0
    wines_with_valuation: int = 0
    wines_needing_review: int = 0
    wines_no_match: int = 0
