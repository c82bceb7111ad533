"""
Match Detector.

Given a persisted swipe, decides whether the counterpart has already liked
back and creates the Match for the (candidate, company) pair exactly once.

Reciprocity is checked across listings, not per listing: a candidate likes a
company's job, the company (or one of its delegates) likes the candidate's
profile.
"""

from typing import Iterable, List, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from swipematch.core.config import settings
from swipematch.core.exceptions import ConcurrentMatchConflict
from swipematch.core.interfaces import MatchRepository, SwipeRepository
from swipematch.log.logging import logger
from swipematch.metrics.core import MetricNames, async_timer, increment_counter
from swipematch.models.domain import ListingKind, Match, SwipeRecord, new_id, utcnow


def _log_conflict_retry(retry_state: RetryCallState) -> None:
    increment_counter(MetricNames.MATCH_CONFLICT_RETRIES)
    logger.warning(
        "Match creation conflicted, retrying (attempt {attempt})",
        attempt=retry_state.attempt_number,
    )


class MatchDetector:
    """Creates matches from reciprocal likes."""

    def __init__(
        self,
        swipes: SwipeRepository,
        matches: MatchRepository,
        conflict_retries: Optional[int] = None,
    ):
        self.swipes = swipes
        self.matches = matches
        self.conflict_retries = (
            settings.match_conflict_retries if conflict_retries is None else conflict_retries
        )

    async def has_reciprocal_like(self, swipe: SwipeRecord) -> bool:
        """Whether the owner of the swiped listing liked one of the viewer's listings."""
        if swipe.target_kind == ListingKind.JOB:
            # Candidate liked a job; the company must have liked the candidate's profile
            return await self.swipes.has_positive_swipe(
                principal_id=swipe.target_owner_id,
                target_owner_id=swipe.principal_id,
                target_kind=ListingKind.CANDIDATE_PROFILE,
            )
        # Company liked a profile; the candidate must have liked one of the company's jobs
        return await self.swipes.has_positive_swipe(
            principal_id=swipe.target_owner_id,
            target_owner_id=swipe.principal_id,
            target_kind=ListingKind.JOB,
        )

    async def _create_match(self, swipe: SwipeRecord) -> tuple:
        candidate_id, company_id = swipe.match_pair()
        candidate = Match(
            id=new_id(),
            candidate_id=candidate_id,
            company_id=company_id,
            created_at=utcnow(),
            swipe_id=swipe.id,
        )
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.conflict_retries),
            wait=wait_exponential(multiplier=0.05, max=1),
            retry=retry_if_exception_type(ConcurrentMatchConflict),
            before_sleep=_log_conflict_retry,
            reraise=True,
        ):
            with attempt:
                return await self.matches.create_if_absent(candidate)

    @async_timer("matches.evaluation.duration")
    async def evaluate_for_match(self, swipe: SwipeRecord) -> Optional[Match]:
        """
        Evaluate a swipe for reciprocity.

        Args:
            swipe: A swipe that is already persisted

        Returns:
            The Match if this evaluation created it, otherwise None (dislike,
            no reciprocal like yet, or the pair already has a match)

        Raises:
            PersistenceFailure: The stores could not be read or written
            ConcurrentMatchConflict: Conflicts persisted through every retry
        """
        if not swipe.direction.is_positive:
            return None

        candidate_id, company_id = swipe.match_pair()
        if await self.matches.get_for_pair(candidate_id, company_id) is not None:
            logger.debug(
                "Match already exists for ({candidate_id}, {company_id})",
                candidate_id=candidate_id,
                company_id=company_id,
            )
            return None

        if not await self.has_reciprocal_like(swipe):
            return None

        match, created = await self._create_match(swipe)
        if not created:
            logger.info(
                "Concurrent evaluation already created match {match_id}",
                match_id=match.id,
            )
            return None

        increment_counter(MetricNames.MATCHES_CREATED)
        logger.success(
            "Match created between candidate {candidate_id} and company {company_id}",
            candidate_id=candidate_id,
            company_id=company_id,
            match_id=match.id,
            swipe_id=swipe.id,
        )
        return match

    async def recompute_matches(self, swipes: Iterable[SwipeRecord]) -> List[Match]:
        """
        Replay a swipe log and create every match it implies.

        Safe to run repeatedly, in any order, over duplicated input: existing
        pairs are skipped.

        Returns:
            Matches created by this run
        """
        created = []
        for swipe in swipes:
            match = await self.evaluate_for_match(swipe)
            if match is not None:
                created.append(match)
        logger.info("Recomputed matches from swipe log", created=len(created))
        return created
