"""
Internal endpoints for upstream services and operations.

Upstream profile management syncs actors and listings here; operations use
the erasure and recompute endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from swipematch.core.auth import verify_api_key
from swipematch.core.exceptions import PersistenceFailure
from swipematch.log.logging import logger
from swipematch.models.domain import Actor, ActorRole, Listing
from swipematch.schemas.cards import ListingOut, validate_attributes
from swipematch.schemas.directory import ActorIn, ErasureOut, ListingIn
from swipematch.schemas.match import RecomputeOut
from swipematch.services.engine import SwipeEngine, get_engine

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(verify_api_key)],
)


@router.put("/actors", response_model=ActorIn)
async def upsert_actor(payload: ActorIn, engine: SwipeEngine = Depends(get_engine)):
    if payload.acts_for is not None:
        if payload.role != ActorRole.COMPANY:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Only company actors can act for another company",
            )
        principal = await engine.directory.get_actor(payload.acts_for)
        if principal is None or principal.role != ActorRole.COMPANY:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Company {payload.acts_for} not found",
            )
        if principal.acts_for is not None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{payload.acts_for} is itself a delegate of {principal.acts_for}",
            )

    existing = await engine.directory.get_actor(payload.id)
    if existing is not None and (existing.role, existing.acts_for) != (payload.role, payload.acts_for):
        # Stored swipes carry the principal they were submitted under
        if await engine.swipes.latest_for_viewer(payload.id) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Actor {payload.id} has swipes; role and principal cannot change",
            )

    await engine.directory.add_actor(
        Actor(id=payload.id, role=payload.role, acts_for=payload.acts_for)
    )
    return payload


@router.post("/listings", response_model=ListingOut, status_code=status.HTTP_201_CREATED)
async def add_listing(payload: ListingIn, engine: SwipeEngine = Depends(get_engine)):
    owner = await engine.directory.get_actor(payload.owner_id)
    if owner is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Owner {payload.owner_id} not found",
        )
    # Companies own jobs, candidates own their profile
    if owner.acts_for is not None or owner.swipeable_kind == payload.kind:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"A {owner.role.value} cannot own a {payload.kind.value} listing",
        )

    try:
        attributes = validate_attributes(payload.kind, payload.attributes)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False),
        )

    listing = await engine.directory.add_listing(
        Listing(
            id=payload.id,
            owner_id=payload.owner_id,
            kind=payload.kind,
            title=payload.title,
            attributes=attributes,
        )
    )
    return ListingOut.from_listing(listing)


@router.delete("/actors/{actor_id}", response_model=ErasureOut)
async def erase_actor(actor_id: str, engine: SwipeEngine = Depends(get_engine)):
    try:
        counts = await engine.service.erase_actor(actor_id)
    except PersistenceFailure:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Erasure could not be completed, please retry",
        )
    return ErasureOut(actor_id=actor_id, **counts)


@router.post("/matches/recompute", response_model=RecomputeOut)
async def recompute_matches(engine: SwipeEngine = Depends(get_engine)):
    try:
        created = await engine.reconciler.reconcile_all()
    except PersistenceFailure as e:
        logger.error("Match recomputation failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Match recomputation failed, please retry",
        )
    return RecomputeOut(created=len(created), match_ids=[m.id for m in created])
