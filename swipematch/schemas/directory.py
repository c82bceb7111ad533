"""
Schemas for the internal directory sync endpoints used by upstream profile
management.
"""

from typing import Any, Dict, Optional

from pydantic import Field

from swipematch.models.domain import ActorRole, ListingKind
from swipematch.schemas.base import CamelModel


class ActorIn(CamelModel):
    id: str = Field(..., min_length=1)
    role: ActorRole
    acts_for: Optional[str] = Field(
        None, description="Company a delegate swipes for; only valid for company actors"
    )


class ListingIn(CamelModel):
    id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    kind: ListingKind
    title: str = Field(..., min_length=1)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ErasureOut(CamelModel):
    actor_id: str
    swipes: int
    reports: int
