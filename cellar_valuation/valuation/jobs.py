"""
Background Jobs Module
======================

Batch runner and scheduled arq tasks for refreshing valuations and
critic scores.

Batches run strictly sequentially with a fixed delay between items so the
external sources are never hit concurrently. One item failing is logged
and counted; the rest of the batch still runs.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from cellar_valuation.core.enums import ValuationStatus
from cellar_valuation.core.schema import WinePair
from cellar_valuation.db.engine import get_session
from cellar_valuation.valuation.orchestrator import ValuationService

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[Any]]


@dataclass
class ValuationBatchResult:
    """Counters for one valuation batch."""

    total: int = 0
    processed: int = 0
    matched: int = 0
    needs_review: int = 0
    pending: int = 0
    no_match: int = 0
    errors: int = 0

    def add(self, other: ValuationBatchResult) -> None:
        for key, value in asdict(other).items():
            setattr(self, key, getattr(self, key) + value)

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for serialization."""
        return asdict(self)


@dataclass
class CriticScoreBatchResult:
    """Counters for one critic score batch."""

    total: int = 0
    processed: int = 0
    fetched: int = 0
    failed: int = 0
    errors: int = 0

    def add(self, other: CriticScoreBatchResult) -> None:
        for key, value in asdict(other).items():
            setattr(self, key, getattr(self, key) + value)

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for serialization."""
        return asdict(self)


def _pair_label(pair: WinePair) -> str:
    return f"wine {pair.wine_id} ({pair.vintage or 'NV'})"


async def run_valuation_batch(
    service: ValuationService,
    user_id: int,
    pairs: list[WinePair],
    delay_seconds: float,
    sleep: Sleeper = asyncio.sleep,
    pace_first: bool = False,
) -> ValuationBatchResult:
    """
    Fetch valuations for a list of pairs, one at a time.

    Args:
        service: Valuation service bound to a session
        user_id: Owner of the pairs
        pairs: Pairs to process, in order
        delay_seconds: Pause between consecutive items (0 disables it)
        sleep: Awaitable sleep, replaceable in tests
        pace_first: Also wait before the first pair, for a run that continues
            an earlier batch

    Returns:
        ValuationBatchResult; ``processed`` counts every attempted pair
    """
    result = ValuationBatchResult(total=len(pairs))

    for index, pair in enumerate(pairs):
        if delay_seconds > 0 and (index > 0 or pace_first):
            await sleep(delay_seconds)

        result.processed += 1
        try:
            fetched = await service.fetch_valuation(pair.wine_id, pair.vintage, user_id)
            status = fetched.valuation.status if fetched.valuation else None
            if status == ValuationStatus.MATCHED:
                result.matched += 1
            elif status == ValuationStatus.NEEDS_REVIEW:
                result.needs_review += 1
            elif status == ValuationStatus.NO_MATCH:
                result.no_match += 1
            elif status == ValuationStatus.PENDING:
                result.pending += 1
        except Exception:
            logger.exception(f"Failed to fetch valuation for {_pair_label(pair)}")
            service.session.rollback()
            result.errors += 1
    return result


async def run_critic_score_batch(
    service: ValuationService,
    user_id: int,
    pairs: list[WinePair],
    delay_seconds: float,
    sleep: Sleeper = asyncio.sleep,
    pace_first: bool = False,
) -> CriticScoreBatchResult:
    """
    Fetch critic scores for a list of pairs, one at a time.

    A fetch that completes without scores counts as ``failed``; an
    exception counts as an error.
    """
    result = CriticScoreBatchResult(total=len(pairs))

    for index, pair in enumerate(pairs):
        if delay_seconds > 0 and (index > 0 or pace_first):
            await sleep(delay_seconds)

        result.processed += 1
        try:
            fetched = await service.fetch_critic_scores(pair.wine_id, pair.vintage, user_id)
            if fetched.success:
                result.fetched += 1
            else:
                result.failed += 1
        except Exception:
            logger.exception(f"Failed to fetch critic scores for {_pair_label(pair)}")
            service.session.rollback()
            result.errors += 1
    return result


async def fetch_all_valuations(
    service: ValuationService,
    user_id: int,
    delay_seconds: float | None = None,
    sleep: Sleeper = asyncio.sleep,
    pace_first: bool = False,
) -> ValuationBatchResult:
    """Refresh every stale valuation for one user."""
    if delay_seconds is None:
        delay_seconds = service.config.batch.api_delay_seconds
    pairs = service.list_pairs_needing_valuation(user_id)
    logger.info(f"Fetching valuations for user {user_id}: {len(pairs)} pairs")
    return await run_valuation_batch(service, user_id, pairs, delay_seconds, sleep, pace_first)


async def fetch_all_critic_scores(
    service: ValuationService,
    user_id: int,
    delay_seconds: float | None = None,
    sleep: Sleeper = asyncio.sleep,
    pace_first: bool = False,
) -> CriticScoreBatchResult:
    """Refresh every stale critic score set for one user."""
    if delay_seconds is None:
        delay_seconds = service.config.batch.api_delay_seconds
    pairs = service.list_pairs_needing_critic_scores(user_id)
    logger.info(f"Fetching critic scores for user {user_id}: {len(pairs)} pairs")
    return await run_critic_score_batch(service, user_id, pairs, delay_seconds, sleep, pace_first)


async def refresh_all_valuations(
    service: ValuationService,
    delay_seconds: float | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> ValuationBatchResult:
    """
    Run the valuation batch for every user in the catalog.

    The delay applies between consecutive fetches across user boundaries too.
    """
    if delay_seconds is None:
        delay_seconds = service.config.batch.delay_seconds

    totals = ValuationBatchResult()
    for user_id in service.catalog.list_user_ids():
        batch = await fetch_all_valuations(service, user_id, delay_seconds, sleep, pace_first=totals.total > 0)
        totals.add(batch)

    logger.info(
        f"Valuation update complete: {totals.processed} processed, {totals.matched} matched, "
        f"{totals.needs_review} need review, {totals.errors} errors"
    )
    return totals


async def refresh_all_critic_scores(
    service: ValuationService,
    delay_seconds: float | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> CriticScoreBatchResult:
    """Run the critic score batch for every user, paced like refresh_all_valuations."""
    if delay_seconds is None:
        delay_seconds = service.config.batch.delay_seconds

    totals = CriticScoreBatchResult()
    for user_id in service.catalog.list_user_ids():
        batch = await fetch_all_critic_scores(service, user_id, delay_seconds, sleep, pace_first=totals.total > 0)
        totals.add(batch)

    logger.info(
        f"Critic score update complete: {totals.processed} processed, {totals.fetched} fetched, "
        f"{totals.failed} without scores, {totals.errors} errors"
    )
    return totals


# =============================================================================
# arq tasks
# =============================================================================


def get_redis_settings() -> RedisSettings:
    """Get Redis connection settings from environment."""
    return RedisSettings(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", "6379")),
        database=int(os.environ.get("REDIS_DB", "0")),
    )


async def update_valuations(ctx: dict[str, Any]) -> dict[str, int]:
    """
    Weekly task: refresh stale valuations for all users.

    Args:
        ctx: arq context

    Returns:
        Batch totals as dictionary
    """
    with get_session() as session:
        service = ValuationService(session)
        totals = await refresh_all_valuations(service)
    return totals.to_dict()


async def update_critic_scores(ctx: dict[str, Any]) -> dict[str, int]:
    """
    Weekly task: refresh stale critic scores for all users.

    Args:
        ctx: arq context

    Returns:
        Batch totals as dictionary
    """
    with get_session() as session:
        service = ValuationService(session)
        totals = await refresh_all_critic_scores(service)
    return totals.to_dict()


class WorkerSettings:
    """arq worker settings."""

    functions = [update_valuations, update_critic_scores]
    cron_jobs = [
        cron(update_valuations, weekday="mon", hour=3, minute=0),
        cron(update_critic_scores, weekday="mon", hour=4, minute=0),
    ]
    redis_settings = get_redis_settings()
    max_jobs = 1
    job_timeout = 6 * 3600
    keep_result = 86400  # 24 hours
