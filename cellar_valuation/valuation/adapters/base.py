"""
Adapter Base Module
===================

Defines the abstract base classes for external source adapters.

Valuation adapters share one capability, ``try_resolve``: given a catalog
wine and vintage, return an acceptable outcome or None. The orchestrator
walks an ordered list of them and stops at the first outcome.

Adapters never raise past their boundary. Network failures, non-2xx
responses and unparsable content are logged and reported as None (or an
empty list), which callers treat exactly like "no data".
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from cellar_valuation.core.enums import ValuationStatus
from cellar_valuation.valuation.config import MatchingConfig
from cellar_valuation.valuation.matcher import ConfidenceMatcher, MatchCandidate

if TYPE_CHECKING:
    from cellar_valuation.core.schema import WineIdentity
    from cellar_valuation.valuation.crawler import Crawler

logger = logging.getLogger(__name__)


@dataclass
class SourceOutcome:
    """An acceptable valuation found by one source."""

    source: str
    status: ValuationStatus
    confidence: float
    price_estimate: float | None = None
    price_low: float | None = None
    price_high: float | None = None
    source_url: str | None = None
    source_wine_id: str | None = None
    source_name: str | None = None


@dataclass
class SingleResult:
    """The one result a single-result source returns for a query."""

    name: str
    price: float
    url: str


@dataclass
class ScrapedCriticScore:
    """One critic score block extracted from a results page."""

    critic_name: str
    score: int  # normalized to 0-100
    max_score: int
    source_url: str
    note: str | None = None


@dataclass
class CriticScorePage:
    """Critic scores extracted from a single results page."""

    wine_name: str
    url: str
    scores: list[ScrapedCriticScore] = field(default_factory=list)


class BaseSourceAdapter(ABC):
    """
    Abstract base class for all source adapters.

    Subclasses talk to one external site through the shared Crawler.
    """

    # Adapter identification (override in subclasses)
    ADAPTER_NAME: str = "base"
    ADAPTER_VERSION: str = "1.0.0"
    DEFAULT_BASE_URL: str = ""

    def __init__(
        self,
        crawler: Crawler,
        config: dict[str, Any] | None = None,
        base_url: str | None = None,
        matching: MatchingConfig | None = None,
        name: str | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            crawler: HTTP client used for all requests
            config: Optional custom configuration from valuation.yaml
            base_url: Override for the site root (tests, mirrors)
            matching: Matching thresholds
            name: Source name recorded on persisted rows
        """
        self.crawler = crawler
        self.config = config or {}
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.matching = matching or MatchingConfig()
        self.name = name or self.ADAPTER_NAME

    @property
    def source_name(self) -> str:
        """Identifier stored in the ``source`` column of persisted records."""
        return self.name

    def get_info(self) -> dict[str, str]:
        """Get adapter information."""
        return {
            "name": self.ADAPTER_NAME,
            "version": self.ADAPTER_VERSION,
            "class": self.__class__.__name__,
        }


class ValuationAdapter(BaseSourceAdapter):
    """A source that can price a catalog wine."""

    @abstractmethod
    async def try_resolve(
        self,
        wine: WineIdentity,
        vintage: int | None,
    ) -> SourceOutcome | None:
        """
        Look the wine up and decide whether the result is acceptable.

        Returns:
            SourceOutcome, or None when the source has nothing usable
        """


class CandidateSourceAdapter(ValuationAdapter):
    """
    A source returning several ranked candidates.

    Candidates are scored by the ConfidenceMatcher; only the best one is
    kept and it must clear the review threshold.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.matcher = ConfidenceMatcher.from_config(self.matching)

    @abstractmethod
    async def _fetch_candidates(
        self,
        query: str,
        vintage: int | None,
    ) -> list[MatchCandidate] | None:
        """Fetch and extract candidates. May raise."""

    async def fetch_candidates(
        self,
        query: str,
        vintage: int | None = None,
    ) -> list[MatchCandidate] | None:
        """
        Search the source.

        Args:
            query: "<producer> <wine>" search text
            vintage: Optional vintage hint

        Returns:
            Candidates in source ranking order, or None on failure
        """
        try:
            return await self._fetch_candidates(query, vintage)
        except Exception as e:
            logger.warning(f"{self.ADAPTER_NAME} search failed for '{query}': {e}")
            return None

    async def try_resolve(
        self,
        wine: WineIdentity,
        vintage: int | None,
    ) -> SourceOutcome | None:
        candidates = await self.fetch_candidates(wine.search_query, vintage)
        if not candidates:
            logger.info(f"{self.ADAPTER_NAME}: no candidates for '{wine.search_query}'")
            return None

        match = self.matcher.best_match(wine, vintage, candidates)
        if match is None:
            return None

        status = self.matcher.classify(match.confidence)
        if status is None:
            logger.info(
                f"{self.ADAPTER_NAME}: best candidate '{match.candidate.display_name}' "
                f"below review threshold ({match.confidence:.2f})"
            )
            return None

        candidate = match.candidate
        return SourceOutcome(
            source=self.source_name,
            status=status,
            confidence=match.confidence,
            price_estimate=candidate.price,
            price_low=candidate.price_low,
            price_high=candidate.price_high,
            source_url=candidate.source_url,
            source_wine_id=candidate.source_id,
            source_name=candidate.display_name,
        )


class SingleResultSourceAdapter(ValuationAdapter):
    """
    A source returning one authoritative result per query.

    There is nothing to rank, so a fixed confidence is applied whenever a
    price could be extracted.
    """

    @abstractmethod
    async def _fetch_single_result(
        self,
        query: str,
        vintage: int | None,
    ) -> SingleResult | None:
        """Fetch and extract the result. May raise."""

    async def fetch_single_result(
        self,
        query: str,
        vintage: int | None = None,
    ) -> SingleResult | None:
        """
        Search the source.

        Returns:
            The extracted result, or None on failure or missing price
        """
        try:
            return await self._fetch_single_result(query, vintage)
        except Exception as e:
            logger.warning(f"{self.ADAPTER_NAME} search failed for '{query}': {e}")
            return None

    async def try_resolve(
        self,
        wine: WineIdentity,
        vintage: int | None,
    ) -> SourceOutcome | None:
        result = await self.fetch_single_result(wine.search_query, vintage)
        if result is None or result.price <= 0:
            logger.info(f"{self.ADAPTER_NAME}: no price for '{wine.search_query}'")
            return None

        return SourceOutcome(
            source=self.source_name,
            status=ValuationStatus.MATCHED,
            confidence=self.matching.single_result_confidence,
            price_estimate=result.price,
            source_url=result.url,
            source_name=result.name,
        )


class CriticScoreAdapter(BaseSourceAdapter):
    """A source of published critic scores."""

    @abstractmethod
    async def _fetch_critic_scores(
        self,
        query: str,
        vintage: int | None,
    ) -> CriticScorePage | None:
        """Fetch and extract critic scores. May raise."""

    async def fetch_critic_scores(
        self,
        query: str,
        vintage: int | None = None,
    ) -> CriticScorePage | None:
        """
        Fetch critic scores for a wine.

        Returns:
            Extracted page, or None on failure
        """
        try:
            return await self._fetch_critic_scores(query, vintage)
        except Exception as e:
            logger.warning(f"{self.ADAPTER_NAME} critic score search failed for '{query}': {e}")
            return None
