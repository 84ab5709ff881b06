"""Critic score API routes."""

from uuid import UUID

from fastapi import APIRouter, HTTPException

from cellar_valuation.core.schema import (
    CriticScoreCreate,
    CriticScoreFetchRequest,
    CriticScoreFetchResult,
    CriticScoreRecord,
    WinePair,
)
from cellar_valuation.valuation.jobs import fetch_all_critic_scores
from cellar_valuation.web.dependencies import UserIdDep, ValuationServiceDep

router = APIRouter(prefix="/api", tags=["critic-scores"])


@router.get("/critic-scores", response_model=list[CriticScoreRecord])
async def list_critic_scores(user_id: UserIdDep, service: ValuationServiceDep) -> list[CriticScoreRecord]:
    return service.list_critic_scores(user_id)


@router.get("/critic-scores/stale", response_model=list[WinePair])
async def stale_critic_scores(user_id: UserIdDep, service: ValuationServiceDep) -> list[WinePair]:
    return service.list_pairs_needing_critic_scores(user_id)


@router.post("/critic-scores/fetch", response_model=CriticScoreFetchResult)
async def fetch_critic_scores(
    body: CriticScoreFetchRequest,
    user_id: UserIdDep,
    service: ValuationServiceDep,
) -> CriticScoreFetchResult:
    return await service.fetch_critic_scores(body.wine_id, body.vintage, user_id)


@router.post("/critic-scores/fetch-all")
async def fetch_all(user_id: UserIdDep, service: ValuationServiceDep) -> dict[str, int]:
    """Refresh every stale critic score set for the user, sequentially."""
    result = await fetch_all_critic_scores(service, user_id)
    return result.to_dict()


@router.delete("/critic-scores/{score_id}")
async def delete_critic_score(
    score_id: UUID,
    user_id: UserIdDep,
    service: ValuationServiceDep,
) -> dict[str, bool]:
    service.delete_critic_score(user_id, score_id)
    return {"success": True}


@router.get("/wines/{wine_id}/critic-scores", response_model=list[CriticScoreRecord])
async def list_wine_critic_scores(
    wine_id: int,
    user_id: UserIdDep,
    service: ValuationServiceDep,
    vintage: int | None = None,
    non_vintage: bool = False,
) -> list[CriticScoreRecord]:
    """Scores for one wine, highest first; optionally for one vintage or only the NV scores."""
    if non_vintage and vintage is not None:
        raise HTTPException(status_code=422, detail="vintage and non_vintage are mutually exclusive")
    return service.list_wine_critic_scores(user_id, wine_id, vintage, non_vintage=non_vintage)


@router.post("/wines/{wine_id}/critic-scores", response_model=CriticScoreRecord, status_code=201)
async def create_critic_score(
    wine_id: int,
    body: CriticScoreCreate,
    user_id: UserIdDep,
    service: ValuationServiceDep,
) -> CriticScoreRecord:
    return service.create_critic_score(user_id, wine_id, body)
