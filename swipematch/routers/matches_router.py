from fastapi import APIRouter, Depends, HTTPException, Query, status

from swipematch.core.exceptions import PersistenceFailure, UnknownActor
from swipematch.schemas.match import MatchListOut, MatchOut
from swipematch.services.engine import SwipeEngine, get_engine

router = APIRouter(tags=["matches"])


@router.get("/matches", response_model=MatchListOut, summary="Matches visible to an actor")
async def list_matches(
    actor_id: str = Query(..., alias="actorId", min_length=1),
    engine: SwipeEngine = Depends(get_engine),
):
    try:
        matches = await engine.service.matches_for(actor_id)
    except UnknownActor as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Matches unavailable, please retry",
        )

    items = [MatchOut.from_match(match) for match in matches]
    return MatchListOut(items=items, count=len(items))
