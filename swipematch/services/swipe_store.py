"""
Swipe Record Store.

Validates swipe submissions against the actor directory and persists them as
upserts keyed by (viewer, target). Persisting a swipe never creates matches.
"""

from datetime import datetime, UTC
from typing import List, Optional, Set

from swipematch.core.exceptions import InvalidSwipe
from swipematch.core.interfaces import ActorDirectory, SwipeRepository
from swipematch.log.logging import logger
from swipematch.metrics.core import MetricNames, increment_counter
from swipematch.models.domain import SwipeDirection, SwipeRecord, new_id, utcnow


def _normalize_timestamp(timestamp: Optional[datetime]) -> datetime:
    now = utcnow()
    if timestamp is None:
        return now
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    else:
        timestamp = timestamp.astimezone(UTC)
    # Never later than server time
    return min(timestamp, now)


class SwipeRecordStore:
    """Durable log of swipe decisions."""

    def __init__(self, swipes: SwipeRepository, directory: ActorDirectory):
        self.swipes = swipes
        self.directory = directory

    def _reject(self, message: str, reason: str, **context) -> InvalidSwipe:
        increment_counter(MetricNames.SWIPES_REJECTED, {"reason": reason})
        logger.warning("Rejected swipe: {message}", message=message, reason=reason, **context)
        return InvalidSwipe(message, reason=reason)

    async def record_swipe(
        self,
        viewer_id: str,
        target_id: str,
        direction: SwipeDirection,
        timestamp: Optional[datetime] = None,
    ) -> SwipeRecord:
        """
        Persist a swipe, replacing any earlier decision on the same target.

        Args:
            viewer_id: Actor submitting the swipe
            target_id: Listing being swiped
            direction: like, dislike or superlike
            timestamp: Submission time; defaults to now and is capped at
                now. An older timestamp than the stored swipe leaves the
                stored swipe in place.

        Returns:
            The swipe record stored for (viewer_id, target_id)

        Raises:
            InvalidSwipe: Unknown viewer or listing, self-swipe, or a listing
                kind the viewer's role cannot swipe
            PersistenceFailure: The store could not be read or written
        """
        viewer = await self.directory.get_actor(viewer_id)
        if viewer is None:
            raise self._reject(f"Unknown viewer {viewer_id}", "unknown_viewer", viewer_id=viewer_id)

        listing = await self.directory.get_listing(target_id)
        if listing is None:
            raise self._reject(f"Listing {target_id} does not exist", "unknown_target", target_id=target_id)

        if listing.owner_id in (viewer.id, viewer.principal_id):
            raise self._reject(
                f"Actor {viewer_id} cannot swipe own listing {target_id}",
                "self_swipe",
                viewer_id=viewer_id,
                target_id=target_id,
            )

        if listing.kind != viewer.swipeable_kind:
            raise self._reject(
                f"A {viewer.role.value} cannot swipe a {listing.kind.value} listing",
                "wrong_kind",
                viewer_id=viewer_id,
                target_id=target_id,
            )

        record = SwipeRecord(
            id=new_id(),
            viewer_id=viewer.id,
            principal_id=viewer.principal_id,
            target_id=listing.id,
            target_kind=listing.kind,
            target_owner_id=listing.owner_id,
            direction=SwipeDirection(direction),
            swiped_at=_normalize_timestamp(timestamp),
        )
        stored = await self.swipes.upsert(record)

        increment_counter(MetricNames.SWIPES_RECORDED, {"direction": stored.direction.value})
        logger.info(
            "Recorded swipe {direction} by {viewer_id} on {target_id}",
            direction=stored.direction.value,
            viewer_id=stored.viewer_id,
            target_id=stored.target_id,
            swipe_id=stored.id,
        )
        return stored

    async def get_swipe(self, swipe_id: str) -> Optional[SwipeRecord]:
        return await self.swipes.get_by_id(swipe_id)

    async def clear_swipe(self, viewer_id: str, target_id: str) -> bool:
        """Delete one swipe so its listing can be delivered again."""
        deleted = await self.swipes.delete(viewer_id, target_id)
        if deleted:
            logger.info(
                "Cleared swipe by {viewer_id} on {target_id}",
                viewer_id=viewer_id,
                target_id=target_id,
            )
        return deleted

    async def undo_last_swipe(self, viewer_id: str) -> Optional[SwipeRecord]:
        """Clear the viewer's most recent swipe and return it, if any."""
        latest = await self.swipes.latest_for_viewer(viewer_id)
        if latest is None:
            return None
        await self.clear_swipe(viewer_id, latest.target_id)
        return latest

    async def erase_viewer(self, viewer_id: str) -> int:
        count = await self.swipes.delete_for_viewer(viewer_id)
        logger.info("Erased {count} swipes of {viewer_id}", count=count, viewer_id=viewer_id)
        return count

    async def list_swipes(self) -> List[SwipeRecord]:
        return await self.swipes.list_all()

    async def swiped_target_ids(self, principal_id: str) -> Set[str]:
        """Listings already swiped by a principal or any of its delegates."""
        return await self.swipes.swiped_target_ids(principal_id)
