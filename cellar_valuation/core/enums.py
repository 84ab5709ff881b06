"""Enums for valuation and critic score fields."""

from enum import Enum


class ValuationStatus(str, Enum):
    """Lifecycle status of a (wine, vintage) valuation record."""

    PENDING = "pending"
    MATCHED = "matched"
    NEEDS_REVIEW = "needs_review"
    CONFIRMED = "confirmed"
    NO_MATCH = "no_match"
    MANUAL = "manual"


class Critic(str, Enum):
    """Closed set of recognized wine critics."""

    ROBERT_PARKER = "robert_parker"
    WINE_SPECTATOR = "wine_spectator"
    JAMES_SUCKLING = "james_suckling"
    DECANTER = "decanter"
    JANCIS_ROBINSON = "jancis_robinson"
    WINE_ENTHUSIAST = "wine_enthusiast"
    VINOUS = "vinous"
    JEB_DUNNUCK = "jeb_dunnuck"
    OTHER = "other"


class CriticScoreOutcome(str, Enum):
    """Outcome of a critic score fetch for one (wine, vintage)."""

    FETCHED = "fetched"
    NO_DATA = "no_data"  # adapter returned nothing
    LOW_CONFIDENCE = "low_confidence"  # page did not match the wine
    NO_SCORES = "no_scores"  # confident match, zero score entries
