"""
Swipe service.

Orchestrates one swipe submission: persist the swipe, evaluate it for a
match and notify both parties when a match is created. The swipe write is the
only step whose failure fails the request.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from swipematch.core.exceptions import SwipeEngineError, UnknownActor, UnknownListing
from swipematch.core.interfaces import ActorDirectory, MatchRepository, ReportRepository
from swipematch.log.logging import logger
from swipematch.metrics.core import MetricNames, increment_counter
from swipematch.models.domain import (
    ActorRole,
    Match,
    Report,
    ReportReason,
    SwipeDirection,
    SwipeRecord,
)
from swipematch.services.match_detector import MatchDetector
from swipematch.services.notification_dispatcher import MatchNotificationDispatcher
from swipematch.services.reconciler import MatchReconciler
from swipematch.services.swipe_store import SwipeRecordStore


@dataclass
class SwipeOutcome:
    swipe: SwipeRecord
    match: Optional[Match] = None

    @property
    def match_created(self) -> bool:
        return self.match is not None


class SwipeService:
    """Entry point used by the HTTP routers."""

    def __init__(
        self,
        store: SwipeRecordStore,
        detector: MatchDetector,
        dispatcher: MatchNotificationDispatcher,
        reconciler: MatchReconciler,
        directory: ActorDirectory,
        matches: MatchRepository,
        reports: ReportRepository,
    ):
        self.store = store
        self.detector = detector
        self.dispatcher = dispatcher
        self.reconciler = reconciler
        self.directory = directory
        self.matches = matches
        self.reports = reports

    async def submit_swipe(
        self,
        viewer_id: str,
        target_id: str,
        direction: SwipeDirection,
        timestamp: Optional[datetime] = None,
    ) -> SwipeOutcome:
        """
        Record a swipe and create/notify a match if it completes reciprocity.

        Raises:
            InvalidSwipe: The swipe was rejected
            PersistenceFailure: The swipe could not be stored; the client must retry
        """
        swipe = await self.store.record_swipe(viewer_id, target_id, direction, timestamp)

        if not swipe.direction.is_positive:
            return SwipeOutcome(swipe=swipe)

        try:
            match = await self.detector.evaluate_for_match(swipe)
        except SwipeEngineError as e:
            # The swipe is durable; the match is re-derived by the reconciler
            increment_counter(MetricNames.MATCH_EVALUATION_FAILED, {"error_type": type(e).__name__})
            logger.error(
                "Match evaluation failed for swipe {swipe_id}",
                swipe_id=swipe.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self.reconciler.enqueue(swipe.id)
            return SwipeOutcome(swipe=swipe)

        if match is not None:
            await self.dispatcher.notify(match)
        return SwipeOutcome(swipe=swipe, match=match)

    async def matches_for(self, actor_id: str) -> List[Match]:
        """
        Return the matches visible to an actor.

        Candidates see their own matches; companies and their delegates see
        the company's matches.
        """
        actor = await self.directory.get_actor(actor_id)
        if actor is None:
            raise UnknownActor(f"Actor {actor_id} not found")
        if actor.role == ActorRole.CANDIDATE:
            return await self.matches.list_by_candidate(actor.principal_id)
        return await self.matches.list_by_company(actor.principal_id)

    async def undo_last_swipe(self, viewer_id: str) -> Optional[SwipeRecord]:
        """Clear the viewer's last swipe. Matches it produced are kept."""
        if await self.directory.get_actor(viewer_id) is None:
            raise UnknownActor(f"Actor {viewer_id} not found")
        return await self.store.undo_last_swipe(viewer_id)

    async def report_listing(
        self,
        reporter_id: str,
        listing_id: str,
        reason: ReportReason,
        details: Optional[str] = None,
    ) -> Report:
        if await self.directory.get_actor(reporter_id) is None:
            raise UnknownActor(f"Actor {reporter_id} not found")
        if await self.directory.get_listing(listing_id) is None:
            raise UnknownListing(f"Listing {listing_id} not found")

        report = await self.reports.add(
            Report(reporter_id=reporter_id, listing_id=listing_id, reason=ReportReason(reason), details=details)
        )
        logger.warning(
            "Listing {listing_id} reported as {reason}",
            listing_id=listing_id,
            reason=report.reason.value,
            reporter_id=reporter_id,
        )
        return report

    async def erase_actor(self, actor_id: str) -> Dict[str, int]:
        """Delete the swipe history and reports an actor authored."""
        swipes = await self.store.erase_viewer(actor_id)
        reports = await self.reports.delete_for_reporter(actor_id)
        logger.info(
            "Erased engine data for {actor_id}",
            actor_id=actor_id,
            swipes=swipes,
            reports=reports,
        )
        return {"swipes": swipes, "reports": reports}
