"""Database layer: engine, ORM models, repositories and the catalog gateway."""

from cellar_valuation.db.catalog import CatalogGateway, SqlCatalogGateway
from cellar_valuation.db.engine import get_session, init_db, reset_engine, run_migrations
from cellar_valuation.db.models import Base, CriticScoreDB, ValuationDB
from cellar_valuation.db.repositories import CriticScoreRepository, ValuationRepository

__all__ = [
    "Base",
    "CatalogGateway",
    "CriticScoreDB",
    "CriticScoreRepository",
    "SqlCatalogGateway",
    "ValuationDB",
    "ValuationRepository",
    "get_session",
    "init_db",
    "reset_engine",
    "run_migrations",
]
