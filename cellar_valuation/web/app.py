"""FastAPI application factory for Cellar Valuation."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cellar_valuation import __version__
from cellar_valuation.core.errors import (
    DuplicateCriticScoreError,
    RecordNotFoundError,
    WineNotFoundError,
)
from cellar_valuation.db.engine import init_db

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Initialize database tables
    init_db()
    yield


async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=404)


async def _conflict(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=409)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Cellar Valuation",
        description="External valuation and critic score reconciliation for a wine inventory",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(WineNotFoundError, _not_found)
    app.add_exception_handler(RecordNotFoundError, _not_found)
    app.add_exception_handler(DuplicateCriticScoreError, _conflict)

    # Include routers (import here to avoid circular imports)
    from cellar_valuation.web.routes import critic_scores, valuations

    app.include_router(valuations.router)
    app.include_router(critic_scores.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Application instance
app = create_app()
