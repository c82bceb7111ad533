from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from swipematch.core.exceptions import PersistenceFailure, UnknownActor
from swipematch.schemas.cards import CardsOut, ListingOut
from swipematch.services.engine import SwipeEngine, get_engine

router = APIRouter(tags=["cards"])


@router.get(
    "/cards",
    response_model=CardsOut,
    summary="Next cards for an actor",
    description=(
        "Returns the next listings to swipe. Pass back `session` and `nextCursor` "
        "to page through the same queue; omit them to start a fresh shuffle."
    ),
)
async def next_cards(
    actor_id: str = Query(..., alias="actorId", min_length=1),
    limit: Optional[int] = Query(None, ge=1, description="Page size"),
    session: Optional[str] = Query(None, pattern=r"^[A-Za-z0-9_-]{1,64}$"),
    cursor: Optional[str] = Query(None, pattern=r"^[0-9a-f]{32}$"),
    engine: SwipeEngine = Depends(get_engine),
):
    if cursor is not None and session is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="cursor requires the session it was issued for",
        )

    try:
        page = await engine.cards.next_cards(actor_id, limit=limit, session=session, cursor=cursor)
    except UnknownActor as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Card queue unavailable, please retry",
        )

    return CardsOut(
        cards=[ListingOut.from_listing(listing) for listing in page.cards],
        session=page.session,
        next_cursor=page.next_cursor,
    )
