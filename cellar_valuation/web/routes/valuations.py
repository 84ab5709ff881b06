"""Valuation API routes."""

from uuid import UUID

from fastapi import APIRouter

from cellar_valuation.core.schema import (
    ManualValuationCreate,
    ManualValuationInput,
    ValuationFetchRequest,
    ValuationFetchResult,
    ValuationRecord,
    ValuationSummary,
    WinePair,
)
from cellar_valuation.valuation.jobs import fetch_all_valuations
from cellar_valuation.web.dependencies import UserIdDep, ValuationServiceDep

router = APIRouter(prefix="/api/valuations", tags=["valuations"])


@router.get("", response_model=list[ValuationRecord])
async def list_valuations(user_id: UserIdDep, service: ValuationServiceDep) -> list[ValuationRecord]:
    """All valuations for the user's wines, with wine and producer names."""
    return service.list_valuations(user_id)


@router.get("/summary", response_model=ValuationSummary)
async def valuation_summary(user_id: UserIdDep, service: ValuationServiceDep) -> ValuationSummary:
    return service.valuation_summary(user_id)


@router.get("/stale", response_model=list[WinePair])
async def stale_valuations(user_id: UserIdDep, service: ValuationServiceDep) -> list[WinePair]:
    """Inventory pairs due for an automatic refresh."""
    return service.list_pairs_needing_valuation(user_id)


@router.post("/fetch", response_model=ValuationFetchResult)
async def fetch_valuation(
    body: ValuationFetchRequest,
    user_id: UserIdDep,
    service: ValuationServiceDep,
) -> ValuationFetchResult:
    """
    Fetch a valuation for one (wine, vintage).

    Always succeeds once the wine is found; the record status carries the
    outcome.
    """
    return await service.fetch_valuation(body.wine_id, body.vintage, user_id)


@router.post("/fetch-all")
async def fetch_all(user_id: UserIdDep, service: ValuationServiceDep) -> dict[str, int]:
    """Refresh every stale valuation for the user, sequentially."""
    result = await fetch_all_valuations(service, user_id)
    return result.to_dict()


@router.post("/manual", response_model=ValuationRecord)
async def create_manual_valuation(
    body: ManualValuationCreate,
    user_id: UserIdDep,
    service: ValuationServiceDep,
) -> ValuationRecord:
    return service.create_manual_valuation(user_id, body)


@router.post("/{valuation_id}/manual", response_model=ValuationRecord)
async def set_manual_valuation(
    valuation_id: UUID,
    body: ManualValuationInput,
    user_id: UserIdDep,
    service: ValuationServiceDep,
) -> ValuationRecord:
    return service.set_manual_valuation(user_id, valuation_id, body)


@router.post("/{valuation_id}/confirm", response_model=ValuationRecord)
async def confirm_valuation(
    valuation_id: UUID,
    user_id: UserIdDep,
    service: ValuationServiceDep,
) -> ValuationRecord:
    return service.confirm_valuation(user_id, valuation_id)
