"""
Catalog Gateway
===============

Read-only view of the inventory application's catalog. The reconciliation
engine only needs wine names, the (wine, vintage) pairs a user holds, the
lot figures behind the summary and the list of users.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from cellar_valuation.core.schema import InventoryLot, WineIdentity, WinePair
from cellar_valuation.db.models import InventoryLotDB, ProducerDB, UserDB, WineDB


class CatalogGateway(Protocol):
    """Lookups the reconciliation engine needs from the catalog."""

    def get_wine(self, wine_id: int, user_id: int) -> WineIdentity | None:
        """Wine and producer name, or None if the user does not own the wine."""
        ...

    def list_inventory_pairs(self, user_id: int) -> list[WinePair]:
        """Distinct (wine, vintage) pairs currently held by the user."""
        ...

    def list_inventory_lots(self, user_id: int) -> list[InventoryLot]:
        ...

    def list_user_ids(self) -> list[int]:
        ...


class SqlCatalogGateway:
    """CatalogGateway over the shared SQL database."""

    def __init__(self, session: Session):
        self.session = session

    def get_wine(self, wine_id: int, user_id: int) -> WineIdentity | None:
        stmt = (
            select(WineDB.id, WineDB.name, ProducerDB.name)
            .join(ProducerDB, WineDB.producer_id == ProducerDB.id)
            .where(WineDB.id == wine_id, WineDB.user_id == user_id)
        )
        row = self.session.execute(stmt).first()
        if row is None:
            return None
        return WineIdentity(wine_id=row[0], name=row[1], producer_name=row[2])

    def list_inventory_pairs(self, user_id: int) -> list[WinePair]:
        stmt = (
            select(InventoryLotDB.wine_id, InventoryLotDB.vintage, WineDB.name, ProducerDB.name)
            .distinct()
            .join(WineDB, InventoryLotDB.wine_id == WineDB.id)
            .join(ProducerDB, WineDB.producer_id == ProducerDB.id)
            .where(InventoryLotDB.user_id == user_id)
            .order_by(InventoryLotDB.wine_id, InventoryLotDB.vintage)
        )
        return [
            WinePair(wine_id=wine_id, vintage=vintage, wine_name=wine_name, producer_name=producer_name)
            for wine_id, vintage, wine_name, producer_name in self.session.execute(stmt).all()
        ]

    def list_inventory_lots(self, user_id: int) -> list[InventoryLot]:
        stmt = select(InventoryLotDB).where(InventoryLotDB.user_id == user_id)
        return [
            InventoryLot(
                wine_id=lot.wine_id,
                vintage=lot.vintage,
                quantity=lot.quantity or 0,
                purchase_price_per_bottle=lot.purchase_price_per_bottle,
            )
            for lot in self.session.execute(stmt).scalars().all()
        ]

    def list_user_ids(self) -> list[int]:
        stmt = select(UserDB.id).order_by(UserDB.id)
        return list(self.session.execute(stmt).scalars().all())
