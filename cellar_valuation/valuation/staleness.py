"""
Staleness Scanner
=================

Computes which (wine, vintage) pairs in a user's inventory are due for an
automatic refresh. A pair qualifies when it has no record yet or its
record is at least ``window_days`` old.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from cellar_valuation.core.enums import ValuationStatus
from cellar_valuation.core.schema import WinePair
from cellar_valuation.db.catalog import CatalogGateway
from cellar_valuation.db.repositories import CriticScoreRepository, ValuationRepository


def is_stale(timestamp: datetime | None, window_days: int, now: datetime | None = None) -> bool:
    """
    Check whether a record timestamp falls outside the staleness window.

    A record exactly ``window_days`` old is stale. A missing timestamp is
    always stale.
    """
    if timestamp is None:
        return True
    now = now or datetime.now(UTC)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return timestamp <= now - timedelta(days=window_days)


def list_pairs_needing_valuation(
    catalog: CatalogGateway,
    valuations: ValuationRepository,
    user_id: int,
    window_days: int = 7,
    protected_statuses: Iterable[ValuationStatus] = (),
    now: datetime | None = None,
) -> list[WinePair]:
    """
    Inventory pairs whose valuation is missing or stale.

    Records in a protected status are never refreshed automatically and
    are left out.

    Args:
        catalog: Source of the user's inventory pairs
        valuations: Valuation records
        user_id: Owner of the inventory
        window_days: Staleness window
        protected_statuses: Statuses that automatic fetches must not touch
        now: Reference time (defaults to the current UTC time)

    Returns:
        Pairs in inventory order
    """
    pairs = catalog.list_inventory_pairs(user_id)
    protected = set(protected_statuses)
    records = {
        (r.wine_id, r.vintage): r
        for r in valuations.list_for_wines(sorted({p.wine_id for p in pairs}))
    }

    stale: list[WinePair] = []
    for pair in pairs:
        record = records.get(pair.key)
        if record is None:
            stale.append(pair)
        elif record.status in protected:
            continue
        elif is_stale(record.fetched_at, window_days, now):
            stale.append(pair)
    return stale


def list_pairs_needing_critic_scores(
    catalog: CatalogGateway,
    critic_scores: CriticScoreRepository,
    user_id: int,
    window_days: int = 30,
    now: datetime | None = None,
) -> list[WinePair]:
    """
    Inventory pairs with no critic scores, or whose newest score is stale.

    Returns:
        Pairs in inventory order
    """
    pairs = catalog.list_inventory_pairs(user_id)
    latest = critic_scores.latest_updates(sorted({p.wine_id for p in pairs}))
    return [pair for pair in pairs if is_stale(latest.get(pair.key), window_days, now)]
