"""
Swipe endpoints: submit a swipe, undo the last one, report a listing.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from swipematch.core.exceptions import (
    InvalidSwipe,
    PersistenceFailure,
    UnknownActor,
    UnknownListing,
)
from swipematch.log.logging import logger
from swipematch.schemas.swipe import (
    ReportIn,
    ReportOut,
    SwipeIn,
    SwipeOut,
    SwipeRecordOut,
    UndoOut,
)
from swipematch.services.engine import SwipeEngine, get_engine

router = APIRouter(
    tags=["swipes"],
    responses={
        422: {"description": "Invalid swipe"},
        503: {"description": "Swipe could not be stored, retry"},
    },
)


@router.post(
    "/swipes",
    response_model=SwipeOut,
    summary="Submit a swipe",
    description="Records a like, dislike or superlike and reports whether it created a match.",
)
async def submit_swipe(payload: SwipeIn, engine: SwipeEngine = Depends(get_engine)):
    try:
        outcome = await engine.service.submit_swipe(
            viewer_id=payload.viewer_id,
            target_id=payload.target_id,
            direction=payload.direction,
            timestamp=payload.timestamp,
        )
    except InvalidSwipe as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"reason": e.reason, "message": str(e)},
        )
    except PersistenceFailure as e:
        logger.error(
            "Swipe by {viewer_id} could not be stored",
            viewer_id=payload.viewer_id,
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Swipe could not be stored, please retry",
        )

    return SwipeOut(
        swipe_id=outcome.swipe.id,
        match_created=outcome.match_created,
        match_id=outcome.match.id if outcome.match else None,
    )


@router.delete(
    "/swipes/last",
    response_model=UndoOut,
    summary="Undo the last swipe",
)
async def undo_last_swipe(
    viewer_id: str = Query(..., alias="viewerId", min_length=1),
    engine: SwipeEngine = Depends(get_engine),
):
    try:
        undone = await engine.service.undo_last_swipe(viewer_id)
    except UnknownActor as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Swipe history unavailable, please retry",
        )

    if undone is None:
        return UndoOut(undone=False)
    return UndoOut(undone=True, swipe=SwipeRecordOut.from_record(undone))


@router.post(
    "/reports",
    response_model=ReportOut,
    status_code=status.HTTP_201_CREATED,
    summary="Report a listing",
)
async def report_listing(payload: ReportIn, engine: SwipeEngine = Depends(get_engine)):
    try:
        report = await engine.service.report_listing(
            reporter_id=payload.reporter_id,
            listing_id=payload.listing_id,
            reason=payload.reason,
            details=payload.details,
        )
    except (UnknownActor, UnknownListing) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Report could not be stored, please retry",
        )

    return ReportOut(
        reporter_id=report.reporter_id,
        listing_id=report.listing_id,
        reason=report.reason,
        created_at=report.created_at,
    )
