"""Core domain models for Cellar Valuation."""

from cellar_valuation.core.enums import Critic, CriticScoreOutcome, ValuationStatus
from cellar_valuation.core.errors import (
    CellarValuationError,
    DuplicateCriticScoreError,
    RecordNotFoundError,
    WineNotFoundError,
)
from cellar_valuation.core.schema import (
    CriticScoreCreate,
    CriticScoreFetchResult,
    CriticScoreRecord,
    ManualValuationInput,
    ValuationFetchResult,
    ValuationRecord,
    ValuationSummary,
    WineIdentity,
    WinePair,
)

__all__ = [
    # Enums
    "Critic",
    "CriticScoreOutcome",
    "ValuationStatus",
    # Errors
    "CellarValuationError",
    "DuplicateCriticScoreError",
    "RecordNotFoundError",
    "WineNotFoundError",
    # Models
    "CriticScoreCreate",
    "CriticScoreFetchResult",
    "CriticScoreRecord",
    "ManualValuationInput",
    "ValuationFetchResult",
    "ValuationRecord",
    "ValuationSummary",
    "WineIdentity",
    "WinePair",
]
