"""
Match reconciliation.

Swipes whose match evaluation failed are queued here and re-evaluated by a
background loop. ``reconcile_all`` re-derives matches from the whole swipe
log for recovery.
"""

import asyncio
from typing import List, Optional, Set

from swipematch.core.exceptions import SwipeEngineError
from swipematch.core.interfaces import SwipeRepository
from swipematch.log.logging import logger
from swipematch.metrics.core import report_gauge, timing
from swipematch.models.domain import Match
from swipematch.services.match_detector import MatchDetector
from swipematch.services.notification_dispatcher import MatchNotificationDispatcher


class MatchReconciler:
    """Re-evaluates swipes until their match state is settled."""

    def __init__(
        self,
        swipes: SwipeRepository,
        detector: MatchDetector,
        dispatcher: MatchNotificationDispatcher,
        interval: int = 60,
    ):
        self.swipes = swipes
        self.detector = detector
        self.dispatcher = dispatcher
        self.interval = interval
        self._pending: Set[str] = set()
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    async def enqueue(self, swipe_id: str) -> None:
        async with self._lock:
            self._pending.add(swipe_id)
        logger.info("Queued swipe {swipe_id} for match reconciliation", swipe_id=swipe_id)

    async def pending(self) -> Set[str]:
        async with self._lock:
            return set(self._pending)

    async def run_pending(self) -> List[Match]:
        """
        Re-evaluate every queued swipe once.

        Swipes that fail again stay queued; swipes cleared in the meantime are
        dropped.

        Returns:
            Matches created in this pass
        """
        async with self._lock:
            swipe_ids, self._pending = self._pending, set()
        report_gauge("reconciler.pending", len(swipe_ids))

        created = []
        with timing("reconciler.pass.duration"):
            for swipe_id in swipe_ids:
                created.extend(await self._reevaluate(swipe_id))

        if swipe_ids:
            logger.info(
                "Reconciliation pass finished",
                evaluated=len(swipe_ids),
                created=len(created),
            )
        return created

    async def _reevaluate(self, swipe_id: str) -> List[Match]:
        try:
            swipe = await self.swipes.get_by_id(swipe_id)
            if swipe is None:
                return []
            match = await self.detector.evaluate_for_match(swipe)
        except SwipeEngineError as e:
            logger.warning(
                "Reconciliation of swipe {swipe_id} failed, will retry",
                swipe_id=swipe_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self.enqueue(swipe_id)
            return []

        if match is None:
            return []
        await self.dispatcher.notify(match)
        return [match]

    async def reconcile_all(self) -> List[Match]:
        """Recompute matches from the full swipe log and notify new ones."""
        swipes = await self.swipes.list_all()
        created = await self.detector.recompute_matches(swipes)
        for match in created:
            await self.dispatcher.notify(match)
        return created

    async def _loop(self) -> None:
        logger.info("Starting match reconciliation loop", interval=self.interval)
        while True:
            try:
                await asyncio.sleep(self.interval)
                await self.run_pending()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(
                    "Error during match reconciliation",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def start(self) -> None:
        """Start the background reconciliation loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Stop the background loop."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Stopped match reconciliation loop")
        self._task = None
