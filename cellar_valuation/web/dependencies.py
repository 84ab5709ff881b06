"""FastAPI dependencies shared by the API routes."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Header, HTTPException

from cellar_valuation.db.engine import get_session
from cellar_valuation.valuation.orchestrator import ValuationService


def get_current_user_id(
    x_user_id: Annotated[int | None, Header()] = None,
) -> int:
    """Dependency resolving the caller's user id.

    Authentication lives in front of this service; the authenticated user
    is passed through in the ``X-User-Id`` header.

    Raises:
        HTTPException: 401 when the header is missing.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def get_valuation_service() -> Generator[ValuationService, None, None]:
    """Dependency providing a ValuationService bound to a fresh session."""
    with get_session() as session:
        yield ValuationService(session)


# Type aliases for dependency injection
UserIdDep = Annotated[int, Depends(get_current_user_id)]
ValuationServiceDep = Annotated[ValuationService, Depends(get_valuation_service)]
