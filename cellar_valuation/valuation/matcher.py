"""
Confidence Matcher Module
=========================

Scores external source candidates against a catalog wine and picks the
best one. Confidence blends name, producer and vintage agreement:

    confidence = 0.50 * name + 0.35 * producer + 0.15 * vintage

and is rounded to two decimals.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cellar_valuation.core.enums import ValuationStatus
from cellar_valuation.valuation.similarity import normalize_text, similarity

if TYPE_CHECKING:
    from cellar_valuation.core.schema import WineIdentity
    from cellar_valuation.valuation.config import MatchingConfig


CONFIDENCE_THRESHOLD = 0.85
REVIEW_THRESHOLD = 0.60

NAME_WEIGHT = 0.50
PRODUCER_WEIGHT = 0.35
VINTAGE_WEIGHT = 0.15

_YEAR_TOKEN = re.compile(r"\b(19\d{2}|20\d{2}|2100)\b")


@dataclass
class MatchCandidate:
    """One search result from an external source."""

    source_id: str
    source_name: str
    source_winery: str
    source_vintage: int | None = None
    price: float | None = None
    price_low: float | None = None
    price_high: float | None = None
    source_url: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.source_winery} {self.source_name}".strip()


@dataclass
class MatchResult:
    """Best candidate and its confidence."""

    candidate: MatchCandidate
    confidence: float


def _split_vintage(source_name: str, wine_name: str) -> tuple[str, int | None]:
    """
    Pull a vintage year out of a candidate name.

    Sources often append the year to the label ("Chateau X 2015"). The
    year is removed from the name unless the catalog wine name carries the
    same token itself (e.g. "Cuvee 1855").
    """
    match = _YEAR_TOKEN.search(source_name)
    if match is None:
        return source_name, None
    if match.group(1) in normalize_text(wine_name).split():
        return source_name, None
    stripped = (source_name[: match.start()] + source_name[match.end():]).strip()
    return stripped, int(match.group(1))


def _vintage_similarity(vintage: int | None, source_vintage: int | None) -> float:
    if vintage is None:
        # Non-vintage wine, nothing to compare
        return 1.0
    if source_vintage is None:
        return 0.5
    return 1.0 if vintage == source_vintage else 0.0


def calculate_match_confidence(
    wine: WineIdentity,
    vintage: int | None,
    candidate: MatchCandidate,
) -> float:
    """
    Calculate the confidence that a candidate is the catalog wine.

    Args:
        wine: Catalog wine (name and producer name)
        vintage: Catalog vintage, None for non-vintage wines
        candidate: External candidate

    Returns:
        Confidence between 0.0 and 1.0, rounded to 2 decimals
    """
    source_name, name_year = _split_vintage(candidate.source_name, wine.name)
    source_vintage = candidate.source_vintage
    if source_vintage is None:
        source_vintage = name_year

    name_sim = similarity(wine.name, source_name)
    producer_sim = similarity(wine.producer_name, candidate.source_winery)
    vintage_sim = _vintage_similarity(vintage, source_vintage)

    confidence = (
        name_sim * NAME_WEIGHT
        + producer_sim * PRODUCER_WEIGHT
        + vintage_sim * VINTAGE_WEIGHT
    )
    return round(min(1.0, max(0.0, confidence)), 2)


def find_best_match(
    wine: WineIdentity,
    vintage: int | None,
    candidates: list[MatchCandidate],
) -> MatchResult | None:
    """
    Pick the highest-confidence candidate.

    Ties keep the earlier candidate, so source ranking is preserved.

    Returns:
        Best match, or None if there are no candidates
    """
    best: MatchResult | None = None
    for candidate in candidates:
        confidence = calculate_match_confidence(wine, vintage, candidate)
        if best is None or confidence > best.confidence:
            best = MatchResult(candidate=candidate, confidence=confidence)
    return best


class ConfidenceMatcher:
    """
    Applies the calibrated thresholds to matcher output.

    - confidence >= confidence_threshold: auto-accept as ``matched``
    - review_threshold <= confidence < confidence_threshold: ``needs_review``
    - below review_threshold: treated as no match at all
    """

    def __init__(
        self,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
        review_threshold: float = REVIEW_THRESHOLD,
    ) -> None:
        if review_threshold > confidence_threshold:
            raise ValueError("review_threshold cannot exceed confidence_threshold")
        self.confidence_threshold = confidence_threshold
        self.review_threshold = review_threshold

    @classmethod
    def from_config(cls, config: MatchingConfig) -> ConfidenceMatcher:
        """Create matcher from configuration."""
        return cls(
            confidence_threshold=config.confidence_threshold,
            review_threshold=config.review_threshold,
        )

    def best_match(
        self,
        wine: WineIdentity,
        vintage: int | None,
        candidates: list[MatchCandidate],
    ) -> MatchResult | None:
        """Best candidate regardless of thresholds."""
        return find_best_match(wine, vintage, candidates)

    def classify(self, confidence: float) -> ValuationStatus | None:
        """
        Map a confidence onto a valuation status.

        Returns:
            MATCHED or NEEDS_REVIEW, or None when below the review threshold
        """
        if confidence >= self.confidence_threshold:
            return ValuationStatus.MATCHED
        if confidence >= self.review_threshold:
            return ValuationStatus.NEEDS_REVIEW
        return None
