"""Repository classes for valuation and critic score persistence."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.orm import Session

from cellar_valuation.core.enums import Critic, ValuationStatus
from cellar_valuation.core.errors import DuplicateCriticScoreError
from cellar_valuation.core.schema import CriticScoreRecord, ValuationRecord
from cellar_valuation.db.models import CriticScoreDB, ProducerDB, ValuationDB, WineDB


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def vintage_matches(column, vintage: int | None) -> ColumnElement[bool]:
    """Equality on a vintage column where NULL matches NULL."""
    if vintage is None:
        return column.is_(None)
    return column == vintage


class ValuationRepository:
    """Repository for valuation records, one per (wine, vintage)."""

    def __init__(self, session: Session):
        self.session = session

    def _get_db_by_key(self, wine_id: int, vintage: int | None) -> ValuationDB | None:
        stmt = select(ValuationDB).where(
            ValuationDB.wine_id == wine_id,
            vintage_matches(ValuationDB.vintage, vintage),
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _get_db_for_user(self, valuation_id: UUID | str, user_id: int) -> ValuationDB | None:
        stmt = (
            select(ValuationDB)
            .join(WineDB, ValuationDB.wine_id == WineDB.id)
            .where(ValuationDB.id == str(valuation_id), WineDB.user_id == user_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert(self, record: ValuationRecord) -> ValuationRecord:
        """
        Insert or overwrite the valuation for the record's (wine, vintage).

        Every mutable field is replaced, status included. The existing row
        keeps its id and created_at.

        Args:
            record: Valuation with the fields to persist.

        Returns:
            The persisted ValuationRecord.
        """
        db_item = self._get_db_by_key(record.wine_id, record.vintage)
        if db_item is None:
            db_item = ValuationDB(
                id=str(record.id),
                wine_id=record.wine_id,
                vintage=record.vintage,
                created_at=record.created_at,
            )
            self.session.add(db_item)

        db_item.price_estimate = record.price_estimate
        db_item.price_low = record.price_low
        db_item.price_high = record.price_high
        db_item.source = record.source
        db_item.source_url = record.source_url
        db_item.source_wine_id = record.source_wine_id
        db_item.source_name = record.source_name
        db_item.status = record.status.value
        db_item.confidence = record.confidence
        db_item.fetched_at = record.fetched_at
        db_item.updated_at = _utc_now()

        self.session.flush()
        return self._to_domain(db_item)

    def get_by_key(self, wine_id: int, vintage: int | None) -> ValuationRecord | None:
        """
        Get the valuation for a (wine, vintage) pair.

        Args:
            wine_id: Catalog wine id.
            vintage: Vintage year, None for non-vintage wines.

        Returns:
            The ValuationRecord if found, None otherwise.
        """
        db_item = self._get_db_by_key(wine_id, vintage)
        return self._to_domain(db_item) if db_item else None

    def list_for_user(self, user_id: int) -> list[ValuationRecord]:
        """
        List all valuations for wines owned by a user, with display names.

        Returns:
            ValuationRecords ordered by producer and wine name.
        """
        stmt = (
            select(ValuationDB, WineDB.name, ProducerDB.name)
            .join(WineDB, ValuationDB.wine_id == WineDB.id)
            .join(ProducerDB, WineDB.producer_id == ProducerDB.id)
            .where(WineDB.user_id == user_id)
            .order_by(ProducerDB.name, WineDB.name, ValuationDB.vintage)
        )
        return [
            self._to_domain(db_item, wine_name=wine_name, producer_name=producer_name)
            for db_item, wine_name, producer_name in self.session.execute(stmt).all()
        ]

    def list_for_wines(self, wine_ids: list[int]) -> list[ValuationRecord]:
        """List valuations for a set of wines."""
        if not wine_ids:
            return []
        stmt = select(ValuationDB).where(ValuationDB.wine_id.in_(wine_ids))
        return [self._to_domain(item) for item in self.session.execute(stmt).scalars().all()]

    def confirm(self, valuation_id: UUID | str, user_id: int) -> ValuationRecord | None:
        """
        Mark a valuation as confirmed by the user.

        Only status and updated_at change.

        Returns:
            The updated ValuationRecord, or None if not found for the user.
        """
        db_item = self._get_db_for_user(valuation_id, user_id)
        if db_item is None:
            return None

        db_item.status = ValuationStatus.CONFIRMED.value
        db_item.updated_at = _utc_now()
        self.session.flush()
        return self._to_domain(db_item)

    def set_manual(
        self,
        valuation_id: UUID | str,
        user_id: int,
        price_estimate: float,
        price_low: float | None = None,
        price_high: float | None = None,
    ) -> ValuationRecord | None:
        """
        Overwrite a valuation with user-entered prices.

        Returns:
            The updated ValuationRecord, or None if not found for the user.
        """
        db_item = self._get_db_for_user(valuation_id, user_id)
        if db_item is None:
            return None

        db_item.price_estimate = price_estimate
        db_item.price_low = price_low
        db_item.price_high = price_high
        db_item.source = "manual"
        db_item.source_url = None
        db_item.source_wine_id = None
        db_item.source_name = None
        db_item.status = ValuationStatus.MANUAL.value
        db_item.confidence = None
        db_item.updated_at = _utc_now()
        self.session.flush()
        return self._to_domain(db_item)

    def _to_domain(
        self,
        db_item: ValuationDB,
        wine_name: str | None = None,
        producer_name: str | None = None,
    ) -> ValuationRecord:
        """Convert DB model to domain model."""
        return ValuationRecord(
            id=UUID(db_item.id),
            wine_id=db_item.wine_id,
            vintage=db_item.vintage,
            price_estimate=db_item.price_estimate,
            price_low=db_item.price_low,
            price_high=db_item.price_high,
            source=db_item.source or "",
            source_url=db_item.source_url,
            source_wine_id=db_item.source_wine_id,
            source_name=db_item.source_name,
            status=ValuationStatus(db_item.status),
            confidence=db_item.confidence,
            fetched_at=as_utc(db_item.fetched_at),
            created_at=as_utc(db_item.created_at),
            updated_at=as_utc(db_item.updated_at),
            wine_name=wine_name,
            producer_name=producer_name,
        )


class CriticScoreRepository:
    """Repository for critic scores, one per (wine, vintage, critic)."""

    def __init__(self, session: Session):
        self.session = session

    def _get_db_by_key(
        self,
        wine_id: int,
        vintage: int | None,
        critic: Critic,
    ) -> CriticScoreDB | None:
        stmt = select(CriticScoreDB).where(
            CriticScoreDB.wine_id == wine_id,
            vintage_matches(CriticScoreDB.vintage, vintage),
            CriticScoreDB.critic == critic.value,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert(self, record: CriticScoreRecord) -> CriticScoreRecord:
        """
        Insert or overwrite the score for the record's (wine, vintage, critic).

        Returns:
            The persisted CriticScoreRecord.
        """
        db_item = self._get_db_by_key(record.wine_id, record.vintage, record.critic)
        if db_item is None:
            db_item = CriticScoreDB(
                id=str(record.id),
                wine_id=record.wine_id,
                vintage=record.vintage,
                critic=record.critic.value,
                created_at=record.created_at,
            )
            self.session.add(db_item)

        db_item.score = record.score
        db_item.note = record.note
        db_item.source_url = record.source_url
        db_item.source = record.source
        db_item.updated_at = _utc_now()

        self.session.flush()
        return self._to_domain(db_item)

    def create(self, record: CriticScoreRecord) -> CriticScoreRecord:
        """
        Insert a new critic score.

        Raises:
            DuplicateCriticScoreError: If the (wine, vintage, critic) key exists.
        """
        if self._get_db_by_key(record.wine_id, record.vintage, record.critic) is not None:
            raise DuplicateCriticScoreError(record.wine_id, record.vintage, record.critic.value)

        db_item = CriticScoreDB(
            id=str(record.id),
            wine_id=record.wine_id,
            vintage=record.vintage,
            critic=record.critic.value,
            score=record.score,
            note=record.note,
            source_url=record.source_url,
            source=record.source,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        self.session.add(db_item)
        self.session.flush()
        return self._to_domain(db_item)

    def _get_db_for_user(self, score_id: UUID | str, user_id: int) -> CriticScoreDB | None:
        stmt = (
            select(CriticScoreDB)
            .join(WineDB, CriticScoreDB.wine_id == WineDB.id)
            .where(CriticScoreDB.id == str(score_id), WineDB.user_id == user_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def delete(self, score_id: UUID | str, user_id: int) -> bool:
        """
        Delete a critic score owned by the user.

        Returns:
            True if deleted, False if not found.
        """
        db_item = self._get_db_for_user(score_id, user_id)
        if db_item is None:
            return False
        self.session.delete(db_item)
        self.session.flush()
        return True

    def list_for_user(self, user_id: int) -> list[CriticScoreRecord]:
        """List every critic score for wines owned by the user, with display names."""
        stmt = (
            select(CriticScoreDB, WineDB.name, ProducerDB.name)
            .join(WineDB, CriticScoreDB.wine_id == WineDB.id)
            .join(ProducerDB, WineDB.producer_id == ProducerDB.id)
            .where(WineDB.user_id == user_id)
            .order_by(ProducerDB.name, WineDB.name, CriticScoreDB.vintage, CriticScoreDB.score.desc())
        )
        return [
            self._to_domain(db_item, wine_name=wine_name, producer_name=producer_name)
            for db_item, wine_name, producer_name in self.session.execute(stmt).all()
        ]

    def list_for_wine(
        self,
        wine_id: int,
        vintage: int | None = None,
        non_vintage: bool = False,
    ) -> list[CriticScoreRecord]:
        """
        List scores for one wine, highest first.

        Args:
            wine_id: Catalog wine id.
            vintage: Restrict to one vintage; None returns every vintage.
            non_vintage: Restrict to the rows with no vintage.
        """
        stmt = select(CriticScoreDB).where(CriticScoreDB.wine_id == wine_id)
        if non_vintage:
            stmt = stmt.where(CriticScoreDB.vintage.is_(None))
        elif vintage is not None:
            stmt = stmt.where(CriticScoreDB.vintage == vintage)
        stmt = stmt.order_by(CriticScoreDB.score.desc())
        return [self._to_domain(item) for item in self.session.execute(stmt).scalars().all()]

    def latest_updates(self, wine_ids: list[int]) -> dict[tuple[int, int | None], datetime]:
        """
        Most recent update time per (wine, vintage) across all critics.

        Returns:
            Mapping of (wine_id, vintage) to the latest updated_at.
        """
        if not wine_ids:
            return {}
        stmt = (
            select(CriticScoreDB.wine_id, CriticScoreDB.vintage, func.max(CriticScoreDB.updated_at))
            .where(CriticScoreDB.wine_id.in_(wine_ids))
            .group_by(CriticScoreDB.wine_id, CriticScoreDB.vintage)
        )
        return {
            (wine_id, vintage): as_utc(updated_at)
            for wine_id, vintage, updated_at in self.session.execute(stmt).all()
        }

    def _to_domain(
        self,
        db_item: CriticScoreDB,
        wine_name: str | None = None,
        producer_name: str | None = None,
    ) -> CriticScoreRecord:
        """Convert DB model to domain model."""
        return CriticScoreRecord(
            id=UUID(db_item.id),
            wine_id=db_item.wine_id,
            vintage=db_item.vintage,
            critic=Critic(db_item.critic),
            score=db_item.score,
            note=db_item.note,
            source_url=db_item.source_url,
            source=db_item.source or "",
            created_at=as_utc(db_item.created_at),
            updated_at=as_utc(db_item.updated_at),
            wine_name=wine_name,
            producer_name=producer_name,
        )
