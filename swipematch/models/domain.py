"""
Domain models for the swipe/match engine.

Actors and listings are owned by upstream profile management; swipes, matches
and reports are owned by the engine's stores.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, Optional


class ActorRole(str, Enum):
    """Which side of the market an actor is on."""
    CANDIDATE = "candidate"
    COMPANY = "company"


class ListingKind(str, Enum):
    """Tagged variant for the swipeable subject."""
    JOB = "job"
    CANDIDATE_PROFILE = "candidate_profile"


class SwipeDirection(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    SUPERLIKE = "superlike"

    @property
    def is_positive(self) -> bool:
        return self in (SwipeDirection.LIKE, SwipeDirection.SUPERLIKE)


class ReportReason(str, Enum):
    INAPPROPRIATE = "inappropriate"
    FAKE = "fake"
    SPAM = "spam"
    OTHER = "other"


# A candidate swipes jobs, a company (or its delegate) swipes candidate profiles
SWIPEABLE_KIND: Dict[ActorRole, ListingKind] = {
    ActorRole.CANDIDATE: ListingKind.JOB,
    ActorRole.COMPANY: ListingKind.CANDIDATE_PROFILE,
}


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Actor:
    """
    A candidate or a company account.

    ``acts_for`` is set for delegates (e.g. recruiters) swiping on behalf of
    a company; their swipes count for that company.
    """

    id: str
    role: ActorRole
    acts_for: Optional[str] = None

    @property
    def principal_id(self) -> str:
        return self.acts_for or self.id

    @property
    def swipeable_kind(self) -> ListingKind:
        return SWIPEABLE_KIND[self.role]


@dataclass(frozen=True)
class Listing:
    """A job (owned by a company) or a candidate profile (owned by the candidate)."""

    id: str
    owner_id: str
    kind: ListingKind
    title: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "kind": self.kind.value,
            "title": self.title,
            "attributes": dict(self.attributes),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class SwipeRecord:
    """One viewer's latest decision on one listing."""

    id: str
    viewer_id: str
    principal_id: str
    target_id: str
    target_kind: ListingKind
    target_owner_id: str
    direction: SwipeDirection
    swiped_at: datetime

    @property
    def pair_key(self) -> tuple:
        return (self.viewer_id, self.target_id)

    def match_pair(self) -> tuple:
        """Return the (candidate_id, company_id) pair this swipe could produce."""
        if self.target_kind == ListingKind.JOB:
            return (self.principal_id, self.target_owner_id)
        return (self.target_owner_id, self.principal_id)


@dataclass(frozen=True)
class Match:
    """Mutual interest between a candidate and a company."""

    id: str
    candidate_id: str
    company_id: str
    created_at: datetime
    swipe_id: Optional[str] = None

    @property
    def pair_key(self) -> tuple:
        return (self.candidate_id, self.company_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "candidate_id": self.candidate_id,
            "company_id": self.company_id,
            "created_at": self.created_at,
            "swipe_id": self.swipe_id,
        }


@dataclass(frozen=True)
class Report:
    reporter_id: str
    listing_id: str
    reason: ReportReason
    details: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
