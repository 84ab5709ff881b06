"""
Reconciliation Orchestrator
===========================

Per-pair pipelines that resolve a (wine, vintage) against external
sources and persist the outcome.

Valuations walk the configured sources in priority order and stop at the
first acceptable outcome; when none is found a ``pending`` record is
written so the pair is not retried until it goes stale. Critic scores come
from a single source and are deduplicated per critic, highest score wins.

User actions (manual entry, confirm, manual critic scores) are plain
single-row writes and never go through the source pipeline.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from cellar_valuation.core.enums import Critic, CriticScoreOutcome, ValuationStatus
from cellar_valuation.core.errors import RecordNotFoundError, WineNotFoundError
from cellar_valuation.core.schema import (
    CriticScoreCreate,
    CriticScoreFetchResult,
    CriticScoreRecord,
    ManualValuationCreate,
    ManualValuationInput,
    ValuationFetchResult,
    ValuationRecord,
    ValuationSummary,
    WineIdentity,
    WinePair,
)
from cellar_valuation.db.catalog import CatalogGateway, SqlCatalogGateway
from cellar_valuation.db.repositories import CriticScoreRepository, ValuationRepository
from cellar_valuation.valuation.adapters import get_adapter
from cellar_valuation.valuation.adapters.base import (
    CriticScoreAdapter,
    CriticScorePage,
    ScrapedCriticScore,
    SourceOutcome,
    ValuationAdapter,
)
from cellar_valuation.valuation.config import SourceConfig, ValuationConfig, get_default_config
from cellar_valuation.valuation.critics import map_critic_name
from cellar_valuation.valuation.crawler import Crawler
from cellar_valuation.valuation.matcher import MatchCandidate, calculate_match_confidence
from cellar_valuation.valuation.similarity import normalize_text
from cellar_valuation.valuation.staleness import (
    list_pairs_needing_critic_scores,
    list_pairs_needing_valuation,
)

logger = logging.getLogger(__name__)

MANUAL_SOURCE = "manual"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def build_valuation_adapters(
    config: ValuationConfig,
    crawler: Crawler,
) -> list[ValuationAdapter]:
    """Instantiate the enabled valuation sources in priority order."""
    adapters: list[ValuationAdapter] = []
    for source in config.list_enabled_valuation_sources():
        adapter = _build_adapter(source, config, crawler)
        if not isinstance(adapter, ValuationAdapter):
            logger.warning(f"Source '{source.name}' is not a valuation adapter, skipping")
            continue
        adapters.append(adapter)
    return adapters


def build_critic_score_adapter(
    config: ValuationConfig,
    crawler: Crawler,
) -> CriticScoreAdapter | None:
    source = config.critic_score_source
    if not source.enabled:
        return None
    adapter = _build_adapter(source, config, crawler)
    if not isinstance(adapter, CriticScoreAdapter):
        logger.warning(f"Source '{source.name}' is not a critic score adapter")
        return None
    return adapter


def _build_adapter(source: SourceConfig, config: ValuationConfig, crawler: Crawler):
    adapter = get_adapter(
        source.adapter,
        crawler,
        config=source.custom_config,
        base_url=source.base_url,
        matching=config.matching,
        name=source.name,
    )
    if adapter is None:
        logger.warning(f"Unknown adapter type '{source.adapter}' for source '{source.name}'")
    return adapter


def select_best_scores(scores: list[ScrapedCriticScore]) -> dict[Critic, ScrapedCriticScore]:
    """
    Keep the highest score per mapped critic.

    Ties keep the entry seen first.
    """
    best: dict[Critic, ScrapedCriticScore] = {}
    for scraped in scores:
        critic = map_critic_name(scraped.critic_name)
        current = best.get(critic)
        if current is None or scraped.score > current.score:
            best[critic] = scraped
    return best


def critic_page_candidate(
    wine: WineIdentity,
    page: CriticScorePage,
    vintage: int | None,
) -> MatchCandidate:
    """
    Build a match candidate from a critic score page.

    Page titles read "<producer> <wine>"; when the title starts with the
    catalog producer it is split into winery and wine name, otherwise the
    whole title is used for both.
    """
    title = page.wine_name or wine.search_query
    winery, name = title, title

    normalized_title = normalize_text(title)
    producer = normalize_text(wine.producer_name)
    if producer and normalized_title.startswith(producer + " "):
        winery = producer
        name = normalized_title[len(producer) + 1:]

    return MatchCandidate(
        source_id=page.url,
        source_name=name,
        source_winery=winery,
        source_vintage=vintage,
        source_url=page.url,
    )


class ValuationService:
    """Valuation and critic score operations for one database session."""

    def __init__(
        self,
        session: Session,
        catalog: CatalogGateway | None = None,
        config: ValuationConfig | None = None,
        crawler: Crawler | None = None,
        valuation_adapters: list[ValuationAdapter] | None = None,
        critic_score_adapter: CriticScoreAdapter | None = None,
    ):
        """
        Initialize the service.

        Args:
            session: SQLAlchemy session; the service commits its own writes
            catalog: Catalog lookups (defaults to the SQL catalog on the same session)
            config: Reconciliation settings (defaults to valuation.yaml)
            crawler: HTTP client shared by the adapters
            valuation_adapters: Ordered valuation sources, built from config if omitted
            critic_score_adapter: Critic score source, built from config if omitted
        """
        self.session = session
        self.config = config or get_default_config()
        self.catalog = catalog or SqlCatalogGateway(session)
        self.crawler = crawler or Crawler.from_config(self.config.global_config)
        self.valuation_adapters = (
            valuation_adapters
            if valuation_adapters is not None
            else build_valuation_adapters(self.config, self.crawler)
        )
        self.critic_score_adapter = (
            critic_score_adapter
            if critic_score_adapter is not None
            else build_critic_score_adapter(self.config, self.crawler)
        )
        self.valuations = ValuationRepository(session)
        self.critic_scores = CriticScoreRepository(session)

    def _require_wine(self, wine_id: int, user_id: int) -> WineIdentity:
        wine = self.catalog.get_wine(wine_id, user_id)
        if wine is None:
            raise WineNotFoundError(wine_id, user_id)
        return wine

    # =========================================================================
    # Valuation pipeline
    # =========================================================================

    async def fetch_valuation(
        self,
        wine_id: int,
        vintage: int | None,
        user_id: int,
    ) -> ValuationFetchResult:
        """
        Resolve a (wine, vintage) against the valuation sources and persist it.

        Args:
            wine_id: Catalog wine id
            vintage: Vintage year, None for non-vintage wines
            user_id: Owner of the wine

        Returns:
            ValuationFetchResult whose record status reflects the outcome

        Raises:
            WineNotFoundError: If the user does not own the wine
        """
        wine = self._require_wine(wine_id, user_id)

        existing = self.valuations.get_by_key(wine_id, vintage)
        if existing is not None and existing.status in self.config.protected_statuses:
            logger.info(
                f"Valuation for wine {wine_id} ({vintage or 'NV'}) is {existing.status.value}, "
                "leaving it untouched"
            )
            return ValuationFetchResult(success=True, valuation=existing)

        outcome = await self._resolve(wine, vintage)
        now = _utc_now()
        if outcome is None:
            record = ValuationRecord(
                wine_id=wine_id,
                vintage=vintage,
                status=ValuationStatus.PENDING,
                fetched_at=now,
            )
        else:
            record = ValuationRecord(
                wine_id=wine_id,
                vintage=vintage,
                price_estimate=outcome.price_estimate,
                price_low=outcome.price_low,
                price_high=outcome.price_high,
                source=outcome.source,
                source_url=outcome.source_url,
                source_wine_id=outcome.source_wine_id,
                source_name=outcome.source_name,
                status=outcome.status,
                confidence=outcome.confidence,
                fetched_at=now,
            )

        saved = self.valuations.upsert(record)
        self.session.commit()

        logger.info(
            f"Valuation for '{wine.search_query}' ({vintage or 'NV'}): {saved.status.value}"
            + (f" via {saved.source} ({saved.confidence:.2f})" if outcome else "")
        )
        return ValuationFetchResult(success=True, valuation=saved)

    async def _resolve(self, wine: WineIdentity, vintage: int | None) -> SourceOutcome | None:
        for adapter in self.valuation_adapters:
            outcome = await adapter.try_resolve(wine, vintage)
            if outcome is not None:
                return outcome
        return None

    # =========================================================================
    # Critic score pipeline
    # =========================================================================

    async def fetch_critic_scores(
        self,
        wine_id: int,
        vintage: int | None,
        user_id: int,
    ) -> CriticScoreFetchResult:
        """
        Fetch critic scores for a (wine, vintage) and upsert one row per critic.

        Raises:
            WineNotFoundError: If the user does not own the wine
        """
        wine = self._require_wine(wine_id, user_id)

        if self.critic_score_adapter is None:
            return CriticScoreFetchResult(
                success=False,
                outcome=CriticScoreOutcome.NO_DATA,
                error="No critic score source configured",
            )

        query = wine.search_query
        page = await self.critic_score_adapter.fetch_critic_scores(query, vintage)
        if page is None:
            return CriticScoreFetchResult(
                success=False,
                outcome=CriticScoreOutcome.NO_DATA,
                error="No critic scores found",
            )

        # The page describes one wine; score it like a single candidate
        candidate = critic_page_candidate(wine, page, vintage)
        confidence = calculate_match_confidence(wine, vintage, candidate)
        if confidence < self.config.matching.review_threshold:
            logger.info(
                f"Critic score page '{page.wine_name}' did not match '{query}' ({confidence:.2f})"
            )
            return CriticScoreFetchResult(
                success=False,
                outcome=CriticScoreOutcome.LOW_CONFIDENCE,
                error="Critic score page did not match wine confidently",
            )

        best = select_best_scores(page.scores)
        if not best:
            return CriticScoreFetchResult(
                success=False,
                outcome=CriticScoreOutcome.NO_SCORES,
                error="No critic scores found",
            )

        saved = [
            self.critic_scores.upsert(
                CriticScoreRecord(
                    wine_id=wine_id,
                    vintage=vintage,
                    critic=critic,
                    score=scraped.score,
                    note=scraped.note,
                    source_url=scraped.source_url or None,
                    source=self.critic_score_adapter.source_name,
                )
            )
            for critic, scraped in best.items()
        ]
        self.session.commit()

        logger.info(f"Saved {len(saved)} critic scores for '{query}' ({vintage or 'NV'})")
        return CriticScoreFetchResult(
            success=True,
            outcome=CriticScoreOutcome.FETCHED,
            scores=saved,
        )

    # =========================================================================
    # Staleness
    # =========================================================================

    def list_pairs_needing_valuation(
        self,
        user_id: int,
        now: datetime | None = None,
    ) -> list[WinePair]:
        return list_pairs_needing_valuation(
            self.catalog,
            self.valuations,
            user_id,
            window_days=self.config.staleness.valuation_days,
            protected_statuses=self.config.protected_statuses,
            now=now,
        )

    def list_pairs_needing_critic_scores(
        self,
        user_id: int,
        now: datetime | None = None,
    ) -> list[WinePair]:
        return list_pairs_needing_critic_scores(
            self.catalog,
            self.critic_scores,
            user_id,
            window_days=self.config.staleness.critic_score_days,
            now=now,
        )

    # =========================================================================
    # User-driven valuation changes
    # =========================================================================

    def create_manual_valuation(
        self,
        user_id: int,
        payload: ManualValuationCreate,
    ) -> ValuationRecord:
        """
        Record a user-entered valuation for a (wine, vintage).

        Raises:
            WineNotFoundError: If the user does not own the wine
        """
        self._require_wine(payload.wine_id, user_id)

        saved = self.valuations.upsert(
            ValuationRecord(
                wine_id=payload.wine_id,
                vintage=payload.vintage,
                price_estimate=payload.price_estimate,
                price_low=payload.price_low,
                price_high=payload.price_high,
                source=MANUAL_SOURCE,
                status=ValuationStatus.MANUAL,
                confidence=None,
                fetched_at=_utc_now(),
            )
        )
        self.session.commit()
        return saved

    def set_manual_valuation(
        self,
        user_id: int,
        valuation_id: UUID | str,
        payload: ManualValuationInput,
    ) -> ValuationRecord:
        """
        Replace an existing valuation's prices with user-entered ones.

        Raises:
            RecordNotFoundError: If the valuation is missing or not the user's
        """
        updated = self.valuations.set_manual(
            valuation_id,
            user_id,
            price_estimate=payload.price_estimate,
            price_low=payload.price_low,
            price_high=payload.price_high,
        )
        if updated is None:
            raise RecordNotFoundError("valuation", str(valuation_id))
        self.session.commit()
        return updated

    def confirm_valuation(self, user_id: int, valuation_id: UUID | str) -> ValuationRecord:
        """
        Accept a valuation as correct.

        Raises:
            RecordNotFoundError: If the valuation is missing or not the user's
        """
        confirmed = self.valuations.confirm(valuation_id, user_id)
        if confirmed is None:
            raise RecordNotFoundError("valuation", str(valuation_id))
        self.session.commit()
        return confirmed

    def list_valuations(self, user_id: int) -> list[ValuationRecord]:
        return self.valuations.list_for_user(user_id)

    def valuation_summary(self, user_id: int) -> ValuationSummary:
        """
        Aggregate cost and value of the user's inventory.

        Lots are joined to the valuation of their exact (wine, vintage).
        """
        lots = self.catalog.list_inventory_lots(user_id)
        records = {
            (r.wine_id, r.vintage): r
            for r in self.valuations.list_for_wines(sorted({lot.wine_id for lot in lots}))
        }

        total_bottles = 0
        total_cost = 0.0
        total_value = 0.0
        with_valuation: set[int] = set()
        needing_review: set[int] = set()
        no_match: set[int] = set()

        for lot in lots:
            total_bottles += lot.quantity
            if lot.purchase_price_per_bottle is not None:
                total_cost += lot.quantity * lot.purchase_price_per_bottle

            record = records.get((lot.wine_id, lot.vintage))
            if record is None:
                continue
            if record.price_estimate is not None:
                total_value += lot.quantity * record.price_estimate
                with_valuation.add(lot.wine_id)
            if record.status == ValuationStatus.NEEDS_REVIEW:
                needing_review.add(lot.wine_id)
            elif record.status == ValuationStatus.NO_MATCH:
                no_match.add(lot.wine_id)

        gain_loss = total_value - total_cost
        return ValuationSummary(
            total_bottles=total_bottles,
            total_cost=round(total_cost, 2),
            total_value=round(total_value, 2),
            gain_loss=round(gain_loss, 2),
            gain_loss_percent=round(gain_loss / total_cost * 100, 1) if total_cost > 0 else 0.0,
            wines_with_valuation=len(with_valuation),
            wines_needing_review=len(needing_review),
            wines_no_match=len(no_match),
        )

    # =========================================================================
    # User-driven critic score changes
    # =========================================================================

    def list_critic_scores(self, user_id: int) -> list[CriticScoreRecord]:
        return self.critic_scores.list_for_user(user_id)

    def list_wine_critic_scores(
        self,
        user_id: int,
        wine_id: int,
        vintage: int | None = None,
        non_vintage: bool = False,
    ) -> list[CriticScoreRecord]:
        """
        Scores for one wine, highest first.

        ``vintage`` narrows to one year; ``non_vintage`` to the NV scores only.

        Raises:
            WineNotFoundError: If the user does not own the wine
        """
        self._require_wine(wine_id, user_id)
        return self.critic_scores.list_for_wine(wine_id, vintage, non_vintage=non_vintage)

    def create_critic_score(
        self,
        user_id: int,
        wine_id: int,
        payload: CriticScoreCreate,
    ) -> CriticScoreRecord:
        """
        Add a user-entered critic score.

        Raises:
            WineNotFoundError: If the user does not own the wine
            DuplicateCriticScoreError: If the critic already scored this wine/vintage
        """
        self._require_wine(wine_id, user_id)
        created = self.critic_scores.create(
            CriticScoreRecord(
                wine_id=wine_id,
                vintage=payload.vintage,
                critic=payload.critic,
                score=payload.score,
                note=payload.note,
                source_url=payload.source_url,
                source=MANUAL_SOURCE,
            )
        )
        self.session.commit()
        return created

    def delete_critic_score(self, user_id: int, score_id: UUID | str) -> None:
        """
        Delete a critic score.

        Raises:
            RecordNotFoundError: If the score is missing or not the user's
        """
        if not self.critic_scores.delete(score_id, user_id):
            raise RecordNotFoundError("critic score", str(score_id))
        self.session.commit()
