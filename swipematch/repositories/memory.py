"""
In-memory store implementations.

Used for local development (``STORAGE_BACKEND=memory``) and the test suite.
Writes on the same key are serialized with per-key asyncio locks, which gives
the same guarantees the PostgreSQL store gets from its primary key and unique
constraints.
"""
import asyncio
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set, Tuple

from swipematch.core.interfaces import (
    ActorDirectory,
    MatchRepository,
    ReportRepository,
    SwipeRepository,
)
from swipematch.log.logging import logger
from swipematch.models.domain import (
    Actor,
    Listing,
    ListingKind,
    Match,
    Report,
    SwipeRecord,
)
from swipematch.utils.ordering import card_sort_key


class KeyedLocks:
    """
    Lazily created asyncio locks, one per key.

    Locks are never evicted, so memory grows with the number of distinct
    keys seen; fine for development and tests, not for long-lived processes.
    """

    def __init__(self) -> None:
        self._locks: Dict[tuple, asyncio.Lock] = defaultdict(asyncio.Lock)

    def __call__(self, key: tuple) -> asyncio.Lock:
        return self._locks[key]


class InMemoryActorDirectory(ActorDirectory):

    def __init__(self) -> None:
        self._actors: Dict[str, Actor] = {}
        self._listings: Dict[str, Listing] = {}

    async def get_actor(self, actor_id: str) -> Optional[Actor]:
        return self._actors.get(actor_id)

    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        return self._listings.get(listing_id)

    async def add_actor(self, actor: Actor) -> Actor:
        self._actors[actor.id] = actor
        return actor

    async def add_listing(self, listing: Listing) -> Listing:
        existing = self._listings.get(listing.id)
        if existing is not None:
            logger.debug("Listing {listing_id} already registered", listing_id=listing.id)
            return existing
        self._listings[listing.id] = listing
        return listing

    async def queue_candidates(
        self,
        kind: ListingKind,
        exclude_owner_id: str,
        exclude_ids: Iterable[str],
        seed: str,
        after_key: Optional[str],
        limit: int,
    ) -> List[Tuple[str, Listing]]:
        excluded = set(exclude_ids)
        keyed = []
        for listing in self._listings.values():
            if listing.kind != kind or listing.owner_id == exclude_owner_id:
                continue
            if listing.id in excluded:
                continue
            key = card_sort_key(seed, listing.id)
            if after_key is not None and key <= after_key:
                continue
            keyed.append((key, listing))
        keyed.sort(key=lambda item: item[0])
        return keyed[:limit]


class InMemorySwipeRepository(SwipeRepository):

    def __init__(self) -> None:
        self._swipes: Dict[tuple, SwipeRecord] = {}
        self._locks = KeyedLocks()

    async def upsert(self, record: SwipeRecord) -> SwipeRecord:
        async with self._locks(record.pair_key):
            current = self._swipes.get(record.pair_key)
            if current is not None and current.swiped_at > record.swiped_at:
                logger.info(
                    "Ignoring stale swipe for {viewer_id} on {target_id}",
                    viewer_id=record.viewer_id,
                    target_id=record.target_id,
                    stored_at=current.swiped_at,
                    submitted_at=record.swiped_at,
                )
                return current
            # Keep the stored id so the (viewer, target) row stays one record
            if current is not None:
                record = SwipeRecord(
                    id=current.id,
                    viewer_id=record.viewer_id,
                    principal_id=record.principal_id,
                    target_id=record.target_id,
                    target_kind=record.target_kind,
                    target_owner_id=record.target_owner_id,
                    direction=record.direction,
                    swiped_at=record.swiped_at,
                )
            self._swipes[record.pair_key] = record
            return record

    async def get(self, viewer_id: str, target_id: str) -> Optional[SwipeRecord]:
        return self._swipes.get((viewer_id, target_id))

    async def get_by_id(self, swipe_id: str) -> Optional[SwipeRecord]:
        for record in self._swipes.values():
            if record.id == swipe_id:
                return record
        return None

    async def has_positive_swipe(
        self, principal_id: str, target_owner_id: str, target_kind: ListingKind
    ) -> bool:
        return any(
            record.principal_id == principal_id
            and record.target_owner_id == target_owner_id
            and record.target_kind == target_kind
            and record.direction.is_positive
            for record in self._swipes.values()
        )

    async def swiped_target_ids(self, principal_id: str) -> Set[str]:
        return {
            record.target_id
            for record in self._swipes.values()
            if record.principal_id == principal_id
        }

    async def latest_for_viewer(self, viewer_id: str) -> Optional[SwipeRecord]:
        own = [r for r in self._swipes.values() if r.viewer_id == viewer_id]
        if not own:
            return None
        return max(own, key=lambda r: r.swiped_at)

    async def delete(self, viewer_id: str, target_id: str) -> bool:
        async with self._locks((viewer_id, target_id)):
            return self._swipes.pop((viewer_id, target_id), None) is not None

    async def delete_for_viewer(self, viewer_id: str) -> int:
        keys = [key for key in self._swipes if key[0] == viewer_id]
        for key in keys:
            async with self._locks(key):
                self._swipes.pop(key, None)
        return len(keys)

    async def list_all(self) -> List[SwipeRecord]:
        return sorted(self._swipes.values(), key=lambda r: r.swiped_at)


class InMemoryMatchRepository(MatchRepository):

    def __init__(self) -> None:
        self._matches: Dict[tuple, Match] = {}
        self._locks = KeyedLocks()

    async def create_if_absent(self, match: Match) -> Tuple[Match, bool]:
        async with self._locks(match.pair_key):
            existing = self._matches.get(match.pair_key)
            if existing is not None:
                return existing, False
            self._matches[match.pair_key] = match
            return match, True

    async def get_for_pair(self, candidate_id: str, company_id: str) -> Optional[Match]:
        return self._matches.get((candidate_id, company_id))

    async def list_by_candidate(self, candidate_id: str) -> List[Match]:
        return sorted(
            (m for m in self._matches.values() if m.candidate_id == candidate_id),
            key=lambda m: m.created_at,
            reverse=True,
        )

    async def list_by_company(self, company_id: str) -> List[Match]:
        return sorted(
            (m for m in self._matches.values() if m.company_id == company_id),
            key=lambda m: m.created_at,
            reverse=True,
        )


class InMemoryReportRepository(ReportRepository):

    def __init__(self) -> None:
        self._reports: Dict[tuple, Report] = {}

    async def add(self, report: Report) -> Report:
        key = (report.reporter_id, report.listing_id)
        return self._reports.setdefault(key, report)

    async def reported_listing_ids(self, reporter_id: str) -> Set[str]:
        return {listing_id for (rid, listing_id) in self._reports if rid == reporter_id}

    async def delete_for_reporter(self, reporter_id: str) -> int:
        keys = [key for key in self._reports if key[0] == reporter_id]
        for key in keys:
            del self._reports[key]
        return len(keys)
