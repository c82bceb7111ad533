"""
Core interfaces for the swipe/match engine.

This module defines the abstract stores the engine depends on. The services
only talk to these interfaces; concrete implementations live in
``swipematch.repositories`` (in-memory and PostgreSQL).
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from swipematch.models.domain import (
    Actor,
    Listing,
    ListingKind,
    Match,
    Report,
    SwipeRecord,
)


class ActorDirectory(ABC):
    """Read access to actors and listings owned by upstream profile management."""

    @abstractmethod
    async def get_actor(self, actor_id: str) -> Optional[Actor]:
        """Retrieve an actor by ID."""
        pass

    @abstractmethod
    async def get_listing(self, listing_id: str) -> Optional[Listing]:
        """Retrieve a listing by ID."""
        pass

    @abstractmethod
    async def add_actor(self, actor: Actor) -> Actor:
        """Register an actor (used by seeding and upstream sync)."""
        pass

    @abstractmethod
    async def add_listing(self, listing: Listing) -> Listing:
        """Register a listing. Listings are immutable once stored."""
        pass

    @abstractmethod
    async def queue_candidates(
        self,
        kind: ListingKind,
        exclude_owner_id: str,
        exclude_ids: Iterable[str],
        seed: str,
        after_key: Optional[str],
        limit: int,
    ) -> List[Tuple[str, Listing]]:
        """
        Return up to ``limit`` listings of ``kind`` ordered by their seeded sort key.

        Args:
            kind: Listing kind to return
            exclude_owner_id: Listings owned by this actor are skipped
            exclude_ids: Listing IDs that must not be returned
            seed: Session seed the sort keys are derived from
            after_key: Only listings whose key sorts after this one
            limit: Maximum number of listings

        Returns:
            List of (sort_key, listing) tuples in ascending key order
        """
        pass


class SwipeRepository(ABC):
    """Durable log of swipe decisions, unique per (viewer, target)."""

    @abstractmethod
    async def upsert(self, record: SwipeRecord) -> SwipeRecord:
        """
        Insert or replace the swipe for ``record.pair_key``.

        A record older than the stored one does not overwrite it.

        Returns:
            The record that is stored after the call
        """
        pass

    @abstractmethod
    async def get(self, viewer_id: str, target_id: str) -> Optional[SwipeRecord]:
        pass

    @abstractmethod
    async def get_by_id(self, swipe_id: str) -> Optional[SwipeRecord]:
        pass

    @abstractmethod
    async def has_positive_swipe(
        self, principal_id: str, target_owner_id: str, target_kind: ListingKind
    ) -> bool:
        """Whether ``principal_id`` liked any listing of ``target_kind`` owned by ``target_owner_id``."""
        pass

    @abstractmethod
    async def swiped_target_ids(self, principal_id: str) -> Set[str]:
        pass

    @abstractmethod
    async def latest_for_viewer(self, viewer_id: str) -> Optional[SwipeRecord]:
        pass

    @abstractmethod
    async def delete(self, viewer_id: str, target_id: str) -> bool:
        pass

    @abstractmethod
    async def delete_for_viewer(self, viewer_id: str) -> int:
        pass

    @abstractmethod
    async def list_all(self) -> List[SwipeRecord]:
        """Return the whole swipe log ordered by swipe time."""
        pass


class MatchRepository(ABC):
    """Matches, unique per (candidate, company)."""

    @abstractmethod
    async def create_if_absent(self, match: Match) -> Tuple[Match, bool]:
        """
        Store ``match`` unless its pair already has one.

        Returns:
            Tuple of (stored match, created flag). A caller that lost the race
            receives the existing match with ``created=False``.
        """
        pass

    @abstractmethod
    async def get_for_pair(self, candidate_id: str, company_id: str) -> Optional[Match]:
        pass

    @abstractmethod
    async def list_by_candidate(self, candidate_id: str) -> List[Match]:
        pass

    @abstractmethod
    async def list_by_company(self, company_id: str) -> List[Match]:
        pass


class ReportRepository(ABC):
    """Listing reports filed by actors."""

    @abstractmethod
    async def add(self, report: Report) -> Report:
        pass

    @abstractmethod
    async def reported_listing_ids(self, reporter_id: str) -> Set[str]:
        pass

    @abstractmethod
    async def delete_for_reporter(self, reporter_id: str) -> int:
        pass


class NotificationChannel(ABC):
    """Transport for match notification events."""

    @abstractmethod
    async def publish(self, event: Dict[str, Any]) -> None:
        """
        Deliver one event.

        Raises:
            NotificationDeliveryFailure: If the event could not be delivered
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None
