"""
Card Queue Provider.

Computes the next cards for an actor. Each queue session has a seed; every
listing's position is ``md5(seed:listing_id)``, so a session's order is a
stable shuffle and the last delivered key is a sufficient pagination cursor.
Listings swiped after a page was served simply drop out of later pages.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from swipematch.core.config import settings
from swipematch.core.exceptions import UnknownActor
from swipematch.core.interfaces import ActorDirectory, ReportRepository
from swipematch.log.logging import logger
from swipematch.metrics.core import MetricNames, increment_counter
from swipematch.models.domain import Listing
from swipematch.services.swipe_store import SwipeRecordStore
from swipematch.utils.ordering import new_session_seed


@dataclass
class CardPage:
    """One page of a card queue session."""

    cards: List[Listing] = field(default_factory=list)
    session: str = ""
    next_cursor: Optional[str] = None


class CardQueueProvider:

    def __init__(
        self,
        directory: ActorDirectory,
        store: SwipeRecordStore,
        reports: ReportRepository,
    ):
        self.directory = directory
        self.store = store
        self.reports = reports

    async def next_cards(
        self,
        actor_id: str,
        limit: Optional[int] = None,
        session: Optional[str] = None,
        cursor: Optional[str] = None,
    ) -> CardPage:
        """
        Return the next page of cards for an actor.

        Args:
            actor_id: Requesting actor
            limit: Page size, clamped to ``CARDS_MAX_LIMIT``
            session: Seed of an existing session; a new session starts when omitted
            cursor: ``next_cursor`` of the previous page in the same session

        Returns:
            CardPage with the listings, the session seed and the cursor for
            the following page (None when the queue is exhausted)

        Raises:
            UnknownActor: If the actor is not in the directory
        """
        actor = await self.directory.get_actor(actor_id)
        if actor is None:
            raise UnknownActor(f"Actor {actor_id} not found")

        limit = max(1, min(limit or settings.cards_default_limit, settings.cards_max_limit))
        if session is None:
            session = new_session_seed()
            cursor = None

        excluded = await self.store.swiped_target_ids(actor.principal_id)
        excluded |= await self.reports.reported_listing_ids(actor.id)

        rows = await self.directory.queue_candidates(
            kind=actor.swipeable_kind,
            exclude_owner_id=actor.principal_id,
            exclude_ids=excluded,
            seed=session,
            after_key=cursor,
            limit=limit,
        )

        cards = [listing for _, listing in rows]
        next_cursor = rows[-1][0] if len(rows) == limit else None

        increment_counter(MetricNames.CARDS_SERVED, {"kind": actor.swipeable_kind.value}, len(cards))
        logger.info(
            "Serving {count} cards to {actor_id}",
            count=len(cards),
            actor_id=actor_id,
            session=session,
            excluded=len(excluded),
        )
        return CardPage(cards=cards, session=session, next_cursor=next_cursor)
