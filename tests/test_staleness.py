"""Tests for the staleness scanner."""

from datetime import UTC, datetime, timedelta

from cellar_valuation.core.enums import Critic, ValuationStatus
from cellar_valuation.core.schema import CriticScoreRecord, ValuationRecord
from cellar_valuation.db.catalog import SqlCatalogGateway
from cellar_valuation.db.models import CriticScoreDB
from cellar_valuation.db.repositories import CriticScoreRepository, ValuationRepository
from cellar_valuation.valuation.staleness import (
    is_stale,
    list_pairs_needing_critic_scores,
    list_pairs_needing_valuation,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class TestIsStale:
    """Tests for is_stale."""

    def test_missing_timestamp_is_stale(self) -> None:
        assert is_stale(None, 7, NOW) is True

    def test_exactly_window_old_is_stale(self) -> None:
        assert is_stale(NOW - timedelta(days=7), 7, NOW) is True

    def test_inside_window_is_fresh(self) -> None:
        assert is_stale(NOW - timedelta(days=6), 7, NOW) is False
        assert is_stale(NOW - timedelta(days=7) + timedelta(seconds=1), 7, NOW) is False

    def test_naive_timestamp_treated_as_utc(self) -> None:
        naive = (NOW - timedelta(days=8)).replace(tzinfo=None)
        assert is_stale(naive, 7, NOW) is True


class TestListPairsNeedingValuation:
    """Tests for list_pairs_needing_valuation."""

    def _store(self, session, wine_id, vintage, fetched_at, status=ValuationStatus.MATCHED) -> None:
        ValuationRepository(session).upsert(
            ValuationRecord(wine_id=wine_id, vintage=vintage, status=status, fetched_at=fetched_at)
        )
        session.commit()

    def _keys(self, session, user_id, **kwargs) -> set:
        pairs = list_pairs_needing_valuation(
            SqlCatalogGateway(session),
            ValuationRepository(session),
            user_id,
            now=NOW,
            **kwargs,
        )
        return {p.key for p in pairs}

    def test_pairs_without_records_are_stale(self, session, cellar) -> None:
        assert self._keys(session, cellar["alice"]) == {
            (cellar["chateau_x"], 2015),
            (cellar["chateau_x"], 2016),
            (cellar["brut"], None),
        }

    def test_window_boundary(self, session, cellar) -> None:
        self._store(session, cellar["chateau_x"], 2015, NOW - timedelta(days=7))
        self._store(session, cellar["chateau_x"], 2016, NOW - timedelta(days=6))
        self._store(session, cellar["brut"], None, NOW - timedelta(days=1))

        assert self._keys(session, cellar["alice"]) == {(cellar["chateau_x"], 2015)}

    def test_record_without_fetch_time_is_stale(self, session, cellar) -> None:
        self._store(session, cellar["brut"], None, None, status=ValuationStatus.MANUAL)
        assert (cellar["brut"], None) in self._keys(session, cellar["alice"])

    def test_protected_statuses_are_skipped(self, session, cellar) -> None:
        old = NOW - timedelta(days=30)
        self._store(session, cellar["chateau_x"], 2015, old, status=ValuationStatus.CONFIRMED)
        self._store(session, cellar["chateau_x"], 2016, old, status=ValuationStatus.MANUAL)
        self._store(session, cellar["brut"], None, old, status=ValuationStatus.PENDING)

        protected = {ValuationStatus.CONFIRMED, ValuationStatus.MANUAL}
        assert self._keys(session, cellar["alice"], protected_statuses=protected) == {
            (cellar["brut"], None)
        }
        assert len(self._keys(session, cellar["alice"])) == 3

    def test_scoped_to_user(self, session, cellar) -> None:
        assert self._keys(session, cellar["bob"]) == {(cellar["bobs_wine"], 2019)}


class TestListPairsNeedingCriticScores:
    """Tests for list_pairs_needing_critic_scores."""

    def _store(self, session, wine_id, vintage, critic, updated_at) -> None:
        CriticScoreRepository(session).upsert(
            CriticScoreRecord(wine_id=wine_id, vintage=vintage, critic=critic, score=90, source="wine-searcher")
        )
        session.flush()
        row = (
            session.query(CriticScoreDB)
            .filter_by(wine_id=wine_id, vintage=vintage, critic=critic.value)
            .one()
        )
        row.updated_at = updated_at
        session.commit()

    def _keys(self, session, user_id) -> set:
        pairs = list_pairs_needing_critic_scores(
            SqlCatalogGateway(session),
            CriticScoreRepository(session),
            user_id,
            window_days=30,
            now=NOW,
        )
        return {p.key for p in pairs}

    def test_pairs_without_scores_are_stale(self, session, cellar) -> None:
        assert len(self._keys(session, cellar["alice"])) == 3

    def test_newest_score_decides(self, session, cellar) -> None:
        self._store(session, cellar["chateau_x"], 2015, Critic.DECANTER, NOW - timedelta(days=90))
        self._store(session, cellar["chateau_x"], 2015, Critic.VINOUS, NOW - timedelta(days=2))
        self._store(session, cellar["chateau_x"], 2016, Critic.DECANTER, NOW - timedelta(days=30))
        self._store(session, cellar["brut"], None, Critic.DECANTER, NOW - timedelta(days=29))

        assert self._keys(session, cellar["alice"]) == {(cellar["chateau_x"], 2016)}
